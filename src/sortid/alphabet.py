"""Base-N numeral conversion over caller supplied alphabets."""

from __future__ import annotations

import logging
from typing import Final

from .exceptions import ConfigurationError, InvalidInputError

__all__ = [
    "CROCKFORD_BASE32",
    "CROCKFORD_BASE32_ALPHABET",
    "DECIMAL",
    "MAX_SEQUENCE_VALUE",
    "BaseNSequenceEncoder",
]

logger = logging.getLogger(__name__)

# Largest value a signed 64-bit sequence column can hold.
MAX_SEQUENCE_VALUE: Final[int] = 2**63 - 1

_MAX_ALPHABET_LENGTH: Final[int] = 2**31 - 1

# Crockford's Base32 in ascending code-point order.  The usual decoding aliases
# (i/l -> 1, o -> 0, u -> v) are not accepted.
CROCKFORD_BASE32_ALPHABET: Final[str] = "0123456789abcdefghjkmnpqrstvwxyz"


class BaseNSequenceEncoder:
    """Numeric (not bytewise) conversion of non-negative integers to base-N strings.

    Any alphabet of unique, non-whitespace characters works.  Encoded values only
    compare like the numbers they represent when the alphabet is sorted and the
    encodings are padded to a common width; pass ``retains_sort_order=True`` to
    assert the former; the alphabet is then checked at construction.
    """

    __slots__ = (
        "_alphabet",
        "_decode_table",
        "_encoded_zero",
        "_max_encoded_length",
        "_radix",
        "_retains_sort_order",
    )

    def __init__(self, alphabet: str, *, retains_sort_order: bool = False) -> None:
        if not isinstance(alphabet, str) or not 2 <= len(alphabet) <= _MAX_ALPHABET_LENGTH:
            raise ConfigurationError("Alphabet must contain between 2 and 2**31 - 1 characters")
        if any(char.isspace() for char in alphabet):
            raise ConfigurationError("Alphabet must not contain whitespace")
        if len(set(alphabet)) != len(alphabet):
            raise ConfigurationError("Alphabet must not contain duplicate characters")
        if retains_sort_order and list(alphabet) != sorted(alphabet):
            raise ConfigurationError(f"Alphabet {alphabet!r} is not sorted and cannot retain sort order")

        self._alphabet = alphabet
        self._decode_table = {char: index for index, char in enumerate(alphabet)}
        self._radix = len(alphabet)
        self._encoded_zero = alphabet[0]
        self._retains_sort_order = retains_sort_order

        max_encoded = self.encode(MAX_SEQUENCE_VALUE)
        self._max_encoded_length = len(max_encoded)
        logger.debug(
            "Radix: %d (alphabet: %r), max. value encoded: %r (%d chars)",
            self._radix,
            alphabet,
            max_encoded,
            self._max_encoded_length,
        )

    @property
    def alphabet(self) -> str:
        return self._alphabet

    @property
    def radix(self) -> int:
        return self._radix

    @property
    def encoded_zero(self) -> str:
        return self._encoded_zero

    @property
    def max_encoded_length(self) -> int:
        """Length of :data:`MAX_SEQUENCE_VALUE` once encoded."""

        return self._max_encoded_length

    @property
    def retains_sort_order(self) -> bool:
        return self._retains_sort_order

    def encode(self, value: int) -> str:
        """Encode ``value`` most-significant digit first, without padding."""

        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInputError(f"Expected an integer, got {type(value).__name__}")
        if value < 0:
            raise InvalidInputError("Only non-negative integers can be encoded")
        if value > MAX_SEQUENCE_VALUE:
            raise InvalidInputError(f"Value exceeds {MAX_SEQUENCE_VALUE}")
        if value == 0:
            return self._encoded_zero

        digits: list[str] = []
        number = value
        while number:
            number, remainder = divmod(number, self._radix)
            digits.append(self._alphabet[remainder])
        return "".join(reversed(digits))

    def decode(self, value: str) -> int:
        """Decode ``value``; leading zero symbols are ignored."""

        if not isinstance(value, str) or not value:
            raise InvalidInputError("Encoded value must be a non-empty string")
        normalized = value.lstrip(self._encoded_zero) or self._encoded_zero
        if len(normalized) > self._max_encoded_length:
            raise InvalidInputError(
                f"Encoded value has {len(normalized)} significant characters, "
                f"at most {self._max_encoded_length} are allowed"
            )

        number = 0
        for char in normalized:
            digit = self._decode_table.get(char)
            if digit is None:
                raise InvalidInputError(f"Character {char!r} is not part of the alphabet")
            number = number * self._radix + digit

        if number > MAX_SEQUENCE_VALUE:
            raise InvalidInputError(f"Decoded value exceeds {MAX_SEQUENCE_VALUE}")
        return number

    def pad(self, encoded: str, width: int) -> str:
        """Left-pad ``encoded`` with the zero symbol up to ``width``; never truncates."""

        if len(encoded) >= width:
            return encoded
        return self._encoded_zero * (width - len(encoded)) + encoded

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._alphabet!r}, retains_sort_order={self._retains_sort_order})"


CROCKFORD_BASE32: Final[BaseNSequenceEncoder] = BaseNSequenceEncoder(
    CROCKFORD_BASE32_ALPHABET, retains_sort_order=True
)
DECIMAL: Final[BaseNSequenceEncoder] = BaseNSequenceEncoder("0123456789", retains_sort_order=True)
