"""Compact, lexicographically sortable, checksum protected identifiers."""

from .alphabet import CROCKFORD_BASE32, CROCKFORD_BASE32_ALPHABET, DECIMAL, MAX_SEQUENCE_VALUE, BaseNSequenceEncoder
from .checkdigit import CheckDigitAlgorithm, compute_check_digit, is_valid_check_digit
from .checksummer import SortableIdChecksummer
from .composer import EncodedIdComponents, IdComposer
from .config import SortableIdSettings, load_settings, load_settings_from_env
from .encoding import Encoder, PaddingEncoder
from .exceptions import ConfigurationError, ConsistencyError, InvalidInputError, SortidError
from .sortable_id import (
    SortableId,
    SortableIdCodec,
    configure_default_codec,
    decode_sortable_id,
    default_codec,
    generate_sortable_id,
    is_valid_sortable_id,
)
from .timestamp import SubsecondTimestampEncoder, duration_since_epoch, get_custom_epoch, set_custom_epoch

__all__ = [
    "CROCKFORD_BASE32",
    "CROCKFORD_BASE32_ALPHABET",
    "DECIMAL",
    "MAX_SEQUENCE_VALUE",
    "BaseNSequenceEncoder",
    "CheckDigitAlgorithm",
    "ConfigurationError",
    "ConsistencyError",
    "EncodedIdComponents",
    "Encoder",
    "IdComposer",
    "InvalidInputError",
    "PaddingEncoder",
    "SortableId",
    "SortableIdChecksummer",
    "SortableIdCodec",
    "SortableIdSettings",
    "SortidError",
    "SubsecondTimestampEncoder",
    "compute_check_digit",
    "configure_default_codec",
    "decode_sortable_id",
    "default_codec",
    "duration_since_epoch",
    "generate_sortable_id",
    "get_custom_epoch",
    "is_valid_check_digit",
    "is_valid_sortable_id",
    "load_settings",
    "load_settings_from_env",
    "set_custom_epoch",
]
