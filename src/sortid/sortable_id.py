"""Lexicographically sortable, checksum protected identifiers.

An identifier is a fixed-width encoded timestamp followed by the encoded
sequence number whose rightmost decimal position holds a check digit::

    id := encoded_timestamp encoded(sequence * 10 + check_digit)

The check digit is computed over the identifier composed without it.  A single
decimal digit catches most typos but not all: replacing one character with
another from the alphabet still yields a valid identifier about one time in
ten, when the altered payload happens to share the check digit.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Mapping

from msgspec import Struct

from .alphabet import CROCKFORD_BASE32, CROCKFORD_BASE32_ALPHABET, BaseNSequenceEncoder
from .checksummer import SortableIdChecksummer
from .composer import EncodedIdComponents, IdComposer
from .config import SortableIdSettings, load_settings
from .encoding import PaddingEncoder
from .exceptions import ConfigurationError, ConsistencyError, InvalidInputError, SortidError
from .timestamp import SubsecondTimestampEncoder, to_utc

__all__ = [
    "SortableId",
    "SortableIdCodec",
    "configure_default_codec",
    "decode_sortable_id",
    "default_codec",
    "generate_sortable_id",
    "is_valid_sortable_id",
]

logger = logging.getLogger(__name__)


class SortableId(Struct, frozen=True):
    """An identifier together with the values it encodes.

    Instances decoded from a string carry the decoded timestamp, which may differ
    from the one originally encoded by the rounding of the subsecond field.
    """

    id: str
    timestamp: dt.datetime
    sequence: int

    def __str__(self) -> str:
        return self.id


def _sequence_encoder_for(alphabet: str) -> BaseNSequenceEncoder:
    if alphabet == CROCKFORD_BASE32_ALPHABET:
        return CROCKFORD_BASE32
    return BaseNSequenceEncoder(alphabet, retains_sort_order=True)


class SortableIdCodec:
    """Generate and decode identifiers for one set of :class:`SortableIdSettings`."""

    def __init__(
        self,
        settings: SortableIdSettings | Mapping[str, Any] | None = None,
        *,
        sequence_encoder: PaddingEncoder[int] | None = None,
    ) -> None:
        self.settings = load_settings(settings)
        self._sequence_encoder = sequence_encoder or _sequence_encoder_for(self.settings.alphabet)
        self._timestamp_encoder = SubsecondTimestampEncoder(
            self._sequence_encoder,
            self.settings.timestamp_width,
            self.settings.subsecond_bits,
            self.settings.rounding_digits,
            epoch=self.settings.custom_epoch,
        )
        self._composer = IdComposer(self.settings.timestamp_width)
        self._checksummer = SortableIdChecksummer(
            self._composer,
            self._sequence_encoder,
            self.settings.check_digit_algorithm,
            self.settings.check_digit_alphabet,
        )

        for name, encoder in (("timestamp", self._timestamp_encoder), ("sequence", self._sequence_encoder)):
            if not encoder.retains_sort_order:
                raise ConfigurationError(f"The {name} encoder {encoder!r} does not retain sort order")

    @property
    def epoch(self) -> dt.datetime:
        return self._timestamp_encoder.epoch

    @property
    def max_encodable_sequence(self) -> int:
        return self.settings.max_encodable_sequence

    def create(self, sequence: int, timestamp: dt.datetime | None = None) -> SortableId:
        """Encode ``sequence`` at ``timestamp`` (now by default) and verify the result decodes back."""

        if isinstance(sequence, bool) or not isinstance(sequence, int):
            raise InvalidInputError(f"Sequence must be an integer, got {type(sequence).__name__}")
        if not 0 <= sequence <= self.max_encodable_sequence:
            raise InvalidInputError(f"Sequence must be between 0 and {self.max_encodable_sequence}, got {sequence}")
        original = to_utc(timestamp if timestamp is not None else dt.datetime.now(dt.UTC))

        bare = EncodedIdComponents(
            encoded_timestamp=self._timestamp_encoder.encode(original),
            encoded_sequence=self._sequence_encoder.encode(sequence),
        )
        # computed over the encoded form because the timestamp does not survive encoding exactly
        check_digit = int(self._checksummer.compute(self._composer.encode(bare)))
        if not 0 <= check_digit <= 9:
            raise ConsistencyError(f"Check digit {check_digit} is not a decimal digit")

        identifier = self._composer.encode(
            EncodedIdComponents(
                encoded_timestamp=bare.encoded_timestamp,
                encoded_sequence=self._sequence_encoder.encode(sequence * 10 + check_digit),
            )
        )

        decoded = self.decode(identifier)
        if decoded is None:
            raise ConsistencyError(f"Generated ID {identifier!r} can't be decoded")
        self._verify(original, sequence, decoded)
        return SortableId(id=identifier, timestamp=original, sequence=sequence)

    def decode(self, identifier: str) -> SortableId | None:
        """Decode ``identifier``, returning ``None`` when it is malformed or fails its checksum."""

        try:
            if not self._checksummer.is_valid(identifier):
                raise InvalidInputError("Invalid checksum")

            components = self._composer.decode(identifier)
            timestamp = self._timestamp_encoder.decode(components.encoded_timestamp)
            sequence_with_checksum = self._sequence_encoder.decode(components.encoded_sequence)
            if self._sequence_encoder.encode(sequence_with_checksum) != components.encoded_sequence:
                raise InvalidInputError("Sequence is not canonically encoded")
            # rightmost decimal position is the check digit
            sequence = sequence_with_checksum // 10
            if sequence > self.max_encodable_sequence:
                raise InvalidInputError(f"Sequence {sequence} exceeds {self.max_encodable_sequence}")
        except (SortidError, ValueError) as exc:
            logger.debug("ID can't be decoded: %s", exc, exc_info=True)
            return None

        return SortableId(id=identifier, timestamp=timestamp, sequence=sequence)

    def is_valid(self, identifier: str) -> bool:
        return self.decode(identifier) is not None

    def _verify(self, original: dt.datetime, sequence: int, decoded: SortableId) -> None:
        if decoded.sequence != sequence:
            raise ConsistencyError(
                f"Generated ID {decoded.id!r} decodes incorrectly (sequence): {sequence} -> {decoded.sequence}"
            )
        if decoded.timestamp == original:
            return

        limit_ms = self.settings.timestamp_delta_ms
        logger.debug(
            "Subseconds altered after encoding (limit %dms): %s -> %s",
            limit_ms,
            original.isoformat(),
            decoded.timestamp.isoformat(),
        )
        # too much drift has no strict definition, so it is reported rather than raised
        if abs(decoded.timestamp - original) > dt.timedelta(milliseconds=limit_ms):
            logger.error(
                "Generated ID %r decodes incorrectly (timestamp): %s -> %s - delta exceeds %dms",
                decoded.id,
                original.isoformat(),
                decoded.timestamp.isoformat(),
                limit_ms,
            )


_default_codec: SortableIdCodec | None = None


def configure_default_codec(
    settings: SortableIdSettings | Mapping[str, Any] | None = None,
) -> SortableIdCodec:
    """Replace the codec used by the module level helpers."""

    global _default_codec
    _default_codec = SortableIdCodec(settings)
    return _default_codec


def default_codec() -> SortableIdCodec:
    """Return the module level codec, building it from default settings on first use."""

    codec = _default_codec
    if codec is None:
        codec = configure_default_codec()
    return codec


def generate_sortable_id(sequence: int, *, timestamp: dt.datetime | None = None) -> SortableId:
    """Generate an identifier for ``sequence`` using the default codec."""

    return default_codec().create(sequence, timestamp)


def decode_sortable_id(identifier: str) -> SortableId | None:
    return default_codec().decode(identifier)


def is_valid_sortable_id(identifier: str) -> bool:
    return default_codec().is_valid(identifier)
