"""Identifier configuration objects."""

from __future__ import annotations

import datetime as dt
import math
import os
from pathlib import Path
from typing import Any, Final, Mapping

import msgspec
from msgspec import Struct

from .alphabet import CROCKFORD_BASE32_ALPHABET, MAX_SEQUENCE_VALUE
from .checkdigit import CheckDigitAlgorithm
from .exceptions import ConfigurationError
from .serialization import json_decode
from .timestamp import MAX_SUBSECOND_BITS

__all__ = [
    "SETTINGS_ENV_VAR",
    "SETTINGS_FILE_ENV_VAR",
    "SortableIdSettings",
    "load_settings",
    "load_settings_from_env",
]

SETTINGS_ENV_VAR: Final[str] = "SORTID_SETTINGS"
SETTINGS_FILE_ENV_VAR: Final[str] = "SORTID_SETTINGS_FILE"


class SortableIdSettings(Struct, frozen=True):
    """Typed configuration for a :class:`~sortid.sortable_id.SortableIdCodec`.

    The defaults cover roughly 544 years after the custom epoch.  Identifiers are
    10 to 22 characters long; sequences between 1_050_000 and 3_355_442 yield
    14 characters, so starting a database sequence at 1_050_000 keeps the length
    stable for a long time.
    """

    alphabet: str = CROCKFORD_BASE32_ALPHABET
    timestamp_width: int = 9
    # 10 bits (1024 steps) resolve milliseconds, 11 bits half-milliseconds.
    subsecond_bits: int = 11
    rounding_digits: int = 3
    check_digit_alphabet: str = "0123456789"
    check_digit_algorithm: CheckDigitAlgorithm = CheckDigitAlgorithm.VERHOEFF
    custom_epoch: dt.datetime | None = None
    max_timestamp_delta_ms: int | None = None

    def __post_init__(self) -> None:
        if self.timestamp_width <= 0:
            raise ConfigurationError("timestamp_width must be positive")
        if not 0 <= self.subsecond_bits <= MAX_SUBSECOND_BITS:
            raise ConfigurationError(f"subsecond_bits must be between 0 and {MAX_SUBSECOND_BITS}")
        if self.subsecond_bits > 0 and not 1 <= self.rounding_digits <= 9:
            raise ConfigurationError("rounding_digits must be between 1 and 9")
        # the check digit is folded into the sequence as its last decimal position
        if not self.check_digit_alphabet or not all("0" <= char <= "9" for char in self.check_digit_alphabet):
            raise ConfigurationError("check_digit_alphabet must consist of decimal digits")
        if len(set(self.check_digit_alphabet)) != len(self.check_digit_alphabet):
            raise ConfigurationError("check_digit_alphabet contains duplicate characters")
        if self.max_timestamp_delta_ms is not None and self.max_timestamp_delta_ms < 0:
            raise ConfigurationError("max_timestamp_delta_ms must not be negative")

    @property
    def max_encodable_sequence(self) -> int:
        """Largest sequence accepted; one decimal position is reserved for the check digit."""

        return MAX_SEQUENCE_VALUE // 10 - 1

    @property
    def timestamp_delta_ms(self) -> int:
        """Tolerated difference between a timestamp and its decoded value, for logging only.

        Without an explicit ``max_timestamp_delta_ms`` this is the coarser of one
        subsecond step and one step of the decoded ``rounding_digits``, at least 1ms.
        """

        if self.max_timestamp_delta_ms is not None:
            return self.max_timestamp_delta_ms
        if self.subsecond_bits == 0:
            return 1_000
        subsecond_step = math.ceil(1_000 / (1 << self.subsecond_bits))
        rounding_step = math.ceil(1_000 / 10**self.rounding_digits)
        return max(1, subsecond_step, rounding_step)


def load_settings(source: SortableIdSettings | Mapping[str, Any] | None = None) -> SortableIdSettings:
    """Convert ``source`` into :class:`SortableIdSettings`, raising :class:`ConfigurationError`."""

    if source is None:
        return SortableIdSettings()
    if isinstance(source, SortableIdSettings):
        return source
    try:
        return msgspec.convert(dict(source), type=SortableIdSettings)
    except msgspec.ValidationError as exc:
        raise ConfigurationError(f"Invalid identifier settings: {exc}") from exc


def _read_env_blob(name: str, env: Mapping[str, str]) -> str | None:
    path = env.get(f"{name}_FILE")
    if path:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Identifier settings file at '{path}' not found") from exc
    value = env.get(name)
    if value:
        return value
    return None


def load_settings_from_env(*, env: Mapping[str, str] | None = None) -> SortableIdSettings:
    """Decode settings from ``SORTID_SETTINGS`` JSON or the file named by ``SORTID_SETTINGS_FILE``.

    Missing variables yield the defaults.
    """

    source = _read_env_blob(SETTINGS_ENV_VAR, os.environ if env is None else env)
    if source is None:
        return SortableIdSettings()
    try:
        payload = json_decode(source)
    except msgspec.DecodeError as exc:
        raise ConfigurationError(f"Failed to decode {SETTINGS_ENV_VAR} as JSON") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{SETTINGS_ENV_VAR} must hold a JSON object")
    return load_settings(payload)
