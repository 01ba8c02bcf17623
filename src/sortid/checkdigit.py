"""Check digits for arbitrary payloads and alphabets.

Classical check digit algorithms (Luhn, ISIN, Verhoeff) accept decimal strings
and produce a decimal digit.  :func:`compute_check_digit` extends them to any
text and any target alphabet: decimal payloads are used as-is, so credit card
style numbers keep their usual check digit, while other payloads are first
rewritten as the concatenated decimal code points of their characters.  The
algorithm's integer result is then projected onto the alphabet with a modulo,
so ``"abc"`` maps 1 to ``"b"`` and rolls 3 over to ``"a"``.  An algorithm that
returns a single digit only ever reaches the first ten characters.

The result is an integrity check for catching typos before a lookup, not a
cryptographic signature.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum
from typing import Callable, Final, Union

from .exceptions import ConfigurationError, InvalidInputError

__all__ = [
    "CheckDigitAlgorithm",
    "compute_check_digit",
    "is_valid_check_digit",
]

_ALL_DECIMALS = re.compile(r"[0-9]+", re.ASCII)

# Verhoeff dihedral group D5 multiplication, position permutation and inverse tables.
_VERHOEFF_D: Final[tuple[tuple[int, ...], ...]] = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 2, 3, 4, 0, 6, 7, 8, 9, 5),
    (2, 3, 4, 0, 1, 7, 8, 9, 5, 6),
    (3, 4, 0, 1, 2, 8, 9, 5, 6, 7),
    (4, 0, 1, 2, 3, 9, 5, 6, 7, 8),
    (5, 9, 8, 7, 6, 0, 4, 3, 2, 1),
    (6, 5, 9, 8, 7, 1, 0, 4, 3, 2),
    (7, 6, 5, 9, 8, 2, 1, 0, 4, 3),
    (8, 7, 6, 5, 9, 3, 2, 1, 0, 4),
    (9, 8, 7, 6, 5, 4, 3, 2, 1, 0),
)
_VERHOEFF_P: Final[tuple[tuple[int, ...], ...]] = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 5, 7, 6, 2, 8, 3, 0, 9, 4),
    (5, 8, 0, 3, 7, 9, 6, 1, 4, 2),
    (8, 9, 1, 6, 0, 4, 3, 5, 2, 7),
    (9, 4, 5, 3, 1, 2, 6, 8, 7, 0),
    (4, 2, 8, 6, 5, 7, 3, 9, 0, 1),
    (2, 7, 9, 3, 8, 0, 6, 4, 1, 5),
    (7, 0, 4, 6, 9, 1, 3, 2, 5, 8),
)
_VERHOEFF_INV: Final[tuple[int, ...]] = (0, 4, 3, 2, 1, 5, 6, 7, 8, 9)


def _decimal_value(char: str) -> int:
    if not ("0" <= char <= "9"):
        raise InvalidInputError(f"Invalid character {char!r}, expected a decimal digit")
    return ord(char) - 48


def _alphanumeric_value(char: str) -> int:
    if "0" <= char <= "9":
        return ord(char) - 48
    lowered = char.lower()
    if "a" <= lowered <= "z":
        return ord(lowered) - ord("a") + 10
    raise InvalidInputError(f"Invalid character {char!r}, expected [0-9A-Za-z]")


def _mod10_check_digit(digits: list[int]) -> str:
    # The check digit will occupy the rightmost position, so the last payload
    # digit is doubled, then every second one moving left.
    total = 0
    for position, value in enumerate(reversed(digits), start=2):
        weighted = value * 2 if position % 2 == 0 else value
        total += weighted - 9 if weighted > 9 else weighted
    if total == 0:
        raise InvalidInputError("Invalid code, sum is zero")
    return str((10 - total % 10) % 10)


def _luhn(code: str) -> str:
    if not code:
        raise InvalidInputError("No code provided")
    return _mod10_check_digit([_decimal_value(char) for char in code])


def _isin(code: str) -> str:
    if not code:
        raise InvalidInputError("No code provided")
    transformed = "".join(str(_alphanumeric_value(char)) for char in code)
    return _mod10_check_digit([int(char) for char in transformed])


def _verhoeff(code: str) -> str:
    if not code:
        raise InvalidInputError("No code provided")
    checksum = 0
    for index, char in enumerate(reversed(code)):
        checksum = _VERHOEFF_D[checksum][_VERHOEFF_P[(index + 1) % 8][_decimal_value(char)]]
    return str(_VERHOEFF_INV[checksum])


def _sha256(code: str) -> str:
    digest = hashlib.sha256(code.encode("utf-8")).digest()
    return str(int.from_bytes(digest, "big"))


class CheckDigitAlgorithm(str, Enum):
    """Interchangeable payload-to-integer functions usable with :func:`compute_check_digit`.

    ``LUHN`` and ``ISIN`` are modulus based and reject all-zero input.  ``ISIN``
    additionally accepts letters (A=10 ... Z=35) and ignores their case.
    ``VERHOEFF`` tolerates all-zero input, catches more transcription errors
    than Luhn and accepts decimal digits only.  ``SHA_256`` renders the digest
    as a decimal integer so it can be projected onto long alphabets.
    """

    LUHN = "luhn"
    ISIN = "isin"
    VERHOEFF = "verhoeff"
    SHA_256 = "sha256"

    @property
    def max_output_length(self) -> int:
        """Maximum number of characters :meth:`compute` returns."""

        return _MAX_OUTPUT_LENGTHS[self]

    def compute(self, source: bytes) -> bytes:
        """Run the algorithm on UTF-8 ``source`` and return the decimal result as bytes."""

        try:
            code = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInputError("Check digit input must be valid UTF-8") from exc
        return _IMPLEMENTATIONS[self](code).encode("ascii")


_IMPLEMENTATIONS: Final[dict[CheckDigitAlgorithm, Callable[[str], str]]] = {
    CheckDigitAlgorithm.LUHN: _luhn,
    CheckDigitAlgorithm.ISIN: _isin,
    CheckDigitAlgorithm.VERHOEFF: _verhoeff,
    CheckDigitAlgorithm.SHA_256: _sha256,
}

_MAX_OUTPUT_LENGTHS: Final[dict[CheckDigitAlgorithm, int]] = {
    CheckDigitAlgorithm.LUHN: 1,
    CheckDigitAlgorithm.ISIN: 1,
    CheckDigitAlgorithm.VERHOEFF: 1,
    CheckDigitAlgorithm.SHA_256: len(str(2**256 - 1)),
}

Algorithm = Union[CheckDigitAlgorithm, Callable[[bytes], bytes]]


def _check_alphabet(alphabet: str) -> None:
    if not isinstance(alphabet, str) or not alphabet.strip():
        raise ConfigurationError("Check digit alphabet must not be blank")
    if len(set(alphabet)) != len(alphabet):
        raise ConfigurationError("Check digit alphabet contains duplicate characters")


def _run(algorithm: Algorithm, source: bytes) -> bytes:
    if isinstance(algorithm, CheckDigitAlgorithm):
        return algorithm.compute(source)
    if not callable(algorithm):
        raise ConfigurationError("Check digit algorithm must be a CheckDigitAlgorithm or a callable")
    return algorithm(source)


def compute_check_digit(payload: str, algorithm: Algorithm, alphabet: str) -> str:
    """Return the character of ``alphabet`` that checks ``payload``.

    ``algorithm`` is a :class:`CheckDigitAlgorithm` or any callable mapping UTF-8
    bytes of a decimal string to the bytes of an integer; negative results are
    inverted and the length is unbounded.  Algorithm rejections propagate.
    """

    if not isinstance(payload, str) or not payload:
        raise InvalidInputError("Check digit payload must not be empty")
    _check_alphabet(alphabet)

    if _ALL_DECIMALS.fullmatch(payload):
        digits = payload
    else:
        digits = "".join(str(ord(char)) for char in payload)

    result = _run(algorithm, digits.encode("utf-8"))
    if not result:
        raise InvalidInputError("Missing check digit")
    try:
        number = abs(int(result.decode("ascii")))
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidInputError(f"Check digit algorithm returned a non-integer value: {result!r}") from exc
    return alphabet[number % len(alphabet)]


def is_valid_check_digit(value: str | None, algorithm: Algorithm, alphabet: str) -> bool:
    """Return whether the last character of ``value`` checks the rest of it.

    Non-string values and values shorter than two characters have no room for a
    check digit and are invalid.  Algorithm rejections (such as an all-zero
    payload for ``LUHN``) still propagate.
    """

    if not isinstance(value, str) or len(value) < 2:
        return False
    return compute_check_digit(value[:-1], algorithm, alphabet) == value[-1]
