"""Joining and splitting the encoded parts of an identifier."""

from __future__ import annotations

from msgspec import Struct

from .exceptions import ConfigurationError, InvalidInputError

__all__ = ["EncodedIdComponents", "IdComposer"]


class EncodedIdComponents(Struct, frozen=True):
    """Identifier parts after encoding.

    The check digit is not a separate part: it lives inside ``encoded_sequence``.
    """

    encoded_timestamp: str
    encoded_sequence: str


class IdComposer:
    """Concatenates a fixed-width timestamp with a variable-width sequence."""

    __slots__ = ("_timestamp_width",)

    def __init__(self, timestamp_width: int) -> None:
        if isinstance(timestamp_width, bool) or not isinstance(timestamp_width, int) or timestamp_width <= 0:
            raise ConfigurationError("Timestamp width must be a positive integer")
        self._timestamp_width = timestamp_width

    @property
    def timestamp_width(self) -> int:
        return self._timestamp_width

    @property
    def retains_sort_order(self) -> bool:
        return True

    def encode(self, value: EncodedIdComponents) -> str:
        if len(value.encoded_timestamp) != self._timestamp_width:
            raise InvalidInputError(
                f"Encoded timestamp must be exactly {self._timestamp_width} characters, "
                f"got {len(value.encoded_timestamp)}"
            )
        if not value.encoded_sequence:
            raise InvalidInputError("Encoded sequence must not be empty")
        return value.encoded_timestamp + value.encoded_sequence

    def decode(self, value: str) -> EncodedIdComponents:
        if not isinstance(value, str) or len(value) <= self._timestamp_width:
            raise InvalidInputError(f"Identifier must be longer than {self._timestamp_width} characters")
        return EncodedIdComponents(
            encoded_timestamp=value[: self._timestamp_width],
            encoded_sequence=value[self._timestamp_width :],
        )
