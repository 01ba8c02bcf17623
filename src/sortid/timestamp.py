"""Timestamp encoding with variable-precision subseconds, similar to UUIDv7."""

from __future__ import annotations

import datetime as dt
import math
from decimal import ROUND_HALF_UP, Decimal

from .encoding import PaddingEncoder
from .exceptions import ConfigurationError, InvalidInputError

__all__ = [
    "MAX_SUBSECOND_BITS",
    "SubsecondTimestampEncoder",
    "duration_since_epoch",
    "get_custom_epoch",
    "set_custom_epoch",
    "to_utc",
]

MAX_SUBSECOND_BITS = 62

_NANOS_PER_SECOND = 1_000_000_000

# Written once during process start-up, read without locking afterwards.  Codecs
# copy it when they are built, so later writes never affect existing codecs.
_custom_epoch: dt.datetime | None = None


def to_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""

    if not isinstance(value, dt.datetime):
        raise InvalidInputError(f"Expected a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


def set_custom_epoch(value: dt.datetime) -> None:
    """Set the process-wide zero point used by codecs built without an explicit epoch."""

    global _custom_epoch
    try:
        _custom_epoch = to_utc(value)
    except InvalidInputError as exc:
        raise ConfigurationError(str(exc)) from exc


def get_custom_epoch() -> dt.datetime:
    """Return the process-wide custom epoch, failing if it was never set."""

    if _custom_epoch is None:
        raise ConfigurationError("Custom epoch is not set; call set_custom_epoch() during start-up")
    return _custom_epoch


def duration_since_epoch(timestamp: dt.datetime, epoch: dt.datetime) -> tuple[int, int]:
    """Return ``(seconds, nanoseconds)`` elapsed between ``epoch`` and ``timestamp``."""

    delta = to_utc(timestamp) - to_utc(epoch)
    if delta < dt.timedelta(0):
        raise InvalidInputError(f"Timestamp {timestamp.isoformat()} precedes the custom epoch {epoch.isoformat()}")
    return delta.days * 86_400 + delta.seconds, delta.microseconds * 1_000


class SubsecondTimestampEncoder:
    """Encode timestamps as whole seconds plus an approximate binary fraction of a second.

    The packed integer is ``seconds << subsecond_bits | subseconds`` where the
    subseconds approximate ``nanos / 1e9`` using ``subsecond_bits`` binary digits
    (``1 = 1/2 + 1/4 + 1/8 + ...``).  Ten bits are enough to lose at most a
    millisecond; zero bits keeps whole seconds only.

    Decoding rounds the recovered fraction to ``rounding_digits`` decimal digits
    so repeated round trips settle on the same value instead of exposing binary
    noise.
    """

    __slots__ = (
        "_encoder",
        "_epoch",
        "_fraction_quantum",
        "_rounding_digits",
        "_subsecond_bits",
        "_subsecond_factor",
        "_subsecond_mask",
        "_width",
    )

    def __init__(
        self,
        encoder: PaddingEncoder[int],
        width: int,
        subsecond_bits: int,
        rounding_digits: int = 3,
        *,
        epoch: dt.datetime | None = None,
    ) -> None:
        if encoder is None:
            raise ConfigurationError("Timestamp encoder requires an integer encoder")
        if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
            raise ConfigurationError("Timestamp width must be a positive integer")
        if isinstance(subsecond_bits, bool) or not isinstance(subsecond_bits, int):
            raise ConfigurationError("Subsecond bits must be an integer")
        if not 0 <= subsecond_bits <= MAX_SUBSECOND_BITS:
            raise ConfigurationError(f"Subsecond bits must be between 0 and {MAX_SUBSECOND_BITS}")
        # the rounding precision only matters when subseconds are encoded (9 digits are nanoseconds)
        if subsecond_bits > 0 and not 1 <= rounding_digits <= 9:
            raise ConfigurationError("Rounding digits must be between 1 and 9")

        self._encoder = encoder
        self._width = width
        self._subsecond_bits = subsecond_bits
        self._subsecond_factor = 1 << subsecond_bits
        self._subsecond_mask = self._subsecond_factor - 1
        self._rounding_digits = rounding_digits
        self._fraction_quantum = Decimal(1).scaleb(-rounding_digits)
        if epoch is None:
            self._epoch = get_custom_epoch()
        else:
            try:
                self._epoch = to_utc(epoch)
            except InvalidInputError as exc:
                raise ConfigurationError(str(exc)) from exc

    @property
    def width(self) -> int:
        return self._width

    @property
    def subsecond_bits(self) -> int:
        return self._subsecond_bits

    @property
    def rounding_digits(self) -> int:
        return self._rounding_digits

    @property
    def epoch(self) -> dt.datetime:
        return self._epoch

    @property
    def retains_sort_order(self) -> bool:
        return self._encoder.retains_sort_order

    def pack(self, timestamp: dt.datetime) -> int:
        """Return the integer that :meth:`encode` renders for ``timestamp``."""

        seconds, nanos = duration_since_epoch(timestamp, self._epoch)
        if self._subsecond_bits == 0:
            return seconds

        fraction = nanos / _NANOS_PER_SECOND
        subseconds = math.floor(fraction * self._subsecond_factor + 0.5)
        # Rounding may fill the field completely (e.g. 128 with 7 bits), which is a whole second.
        if subseconds == self._subsecond_factor:
            return (seconds + 1) << self._subsecond_bits
        return (seconds << self._subsecond_bits) | subseconds

    def unpack(self, number: int) -> dt.datetime:
        """Inverse of :meth:`pack`, subject to the configured rounding."""

        seconds = number >> self._subsecond_bits
        micros = 0
        if self._subsecond_bits > 0:
            subseconds = number & self._subsecond_mask
            fraction = (Decimal(subseconds) / Decimal(self._subsecond_factor)).quantize(
                self._fraction_quantum, rounding=ROUND_HALF_UP
            )
            nanos = int((fraction * _NANOS_PER_SECOND).to_integral_value(rounding=ROUND_HALF_UP))
            micros = (nanos + 500) // 1_000
        try:
            return self._epoch + dt.timedelta(seconds=seconds, microseconds=micros)
        except OverflowError as exc:
            raise InvalidInputError("Decoded timestamp is out of range") from exc

    def encode(self, value: dt.datetime) -> str:
        encoded = self._encoder.pad(self._encoder.encode(self.pack(value)), self._width)
        if len(encoded) > self._width:
            raise InvalidInputError(
                f"Encoded timestamp {encoded!r} exceeds {self._width} characters; "
                "widen the timestamp or use fewer subsecond bits"
            )
        return encoded

    def decode(self, value: str) -> dt.datetime:
        return self.unpack(self._encoder.decode(value))
