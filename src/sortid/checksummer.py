"""Check digit handling for composed identifiers."""

from __future__ import annotations

from .checkdigit import Algorithm, compute_check_digit
from .composer import EncodedIdComponents, IdComposer
from .encoding import Encoder

__all__ = ["SortableIdChecksummer"]


class SortableIdChecksummer:
    """Computes and verifies the check digit of a sortable identifier.

    The digit is the rightmost decimal position of the sequence, so verification
    decodes the sequence, splits that digit off, and recomputes it over the
    identifier rebuilt without it.
    """

    __slots__ = ("_algorithm", "_alphabet", "_composer", "_sequence_encoder")

    def __init__(
        self,
        composer: IdComposer,
        sequence_encoder: Encoder[int],
        algorithm: Algorithm,
        alphabet: str = "0123456789",
    ) -> None:
        self._composer = composer
        self._sequence_encoder = sequence_encoder
        self._algorithm = algorithm
        self._alphabet = alphabet

    def compute(self, value: str) -> str:
        """Return the decimal check digit for the identifier ``value`` composed without one."""

        return compute_check_digit(value, self._algorithm, self._alphabet)

    def is_valid(self, value: str) -> bool:
        components = self._composer.decode(value)
        sequence_with_checksum = self._sequence_encoder.decode(components.encoded_sequence)
        sequence, expected = divmod(sequence_with_checksum, 10)

        bare = EncodedIdComponents(
            encoded_timestamp=components.encoded_timestamp,
            encoded_sequence=self._sequence_encoder.encode(sequence),
        )
        return self.compute(self._composer.encode(bare)) == str(expected)
