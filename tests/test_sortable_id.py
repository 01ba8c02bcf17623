from __future__ import annotations

import datetime as dt
import logging

import msgspec
import pytest

from sortid import (
    CROCKFORD_BASE32,
    CROCKFORD_BASE32_ALPHABET,
    BaseNSequenceEncoder,
    CheckDigitAlgorithm,
    ConfigurationError,
    ConsistencyError,
    IdComposer,
    InvalidInputError,
    SortableId,
    SortableIdChecksummer,
    SortableIdCodec,
    SortableIdSettings,
    compute_check_digit,
    configure_default_codec,
    decode_sortable_id,
    default_codec,
    generate_sortable_id,
    is_valid_sortable_id,
    set_custom_epoch,
)
from sortid.serialization import json_decode, json_encode

DIGITS = "0123456789"


@pytest.fixture
def codec(epoch: dt.datetime) -> SortableIdCodec:
    return SortableIdCodec(SortableIdSettings(custom_epoch=epoch))


def test_create_and_decode(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    timestamp = epoch + dt.timedelta(seconds=100, milliseconds=250)
    created = codec.create(1_050_000, timestamp)

    assert created.sequence == 1_050_000
    assert created.timestamp == timestamp
    assert str(created) == created.id
    assert len(created.id) == 14
    assert all(char in CROCKFORD_BASE32_ALPHABET for char in created.id)

    decoded = codec.decode(created.id)
    assert decoded == SortableId(id=created.id, timestamp=timestamp, sequence=1_050_000)
    assert codec.is_valid(created.id)


def test_check_digit_is_last_decimal_position_of_sequence(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(77, epoch + dt.timedelta(seconds=1))
    timestamp_part, sequence_part = created.id[:9], created.id[9:]
    with_digit = CROCKFORD_BASE32.decode(sequence_part)
    assert with_digit // 10 == 77
    payload = timestamp_part + CROCKFORD_BASE32.encode(77)
    assert str(with_digit % 10) == compute_check_digit(payload, CheckDigitAlgorithm.VERHOEFF, DIGITS)


def test_decimal_alphabet_whole_seconds(epoch: dt.datetime) -> None:
    codec = SortableIdCodec(
        {"alphabet": DIGITS, "timestamp_width": 12, "subsecond_bits": 0, "custom_epoch": epoch}
    )
    timestamp = epoch + dt.timedelta(seconds=12_345)
    created = codec.create(42, timestamp)

    digit = compute_check_digit("00000001234542", CheckDigitAlgorithm.VERHOEFF, DIGITS)
    assert created.id == "000000012345" + str(420 + int(digit))
    decoded = codec.decode(created.id)
    assert decoded is not None
    assert decoded.timestamp == timestamp
    assert decoded.sequence == 42


def test_identifier_length_bounds(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    shortest = codec.create(0, epoch)
    assert len(shortest.id) == 10
    assert shortest.id.startswith("000000000")

    longest = codec.create(codec.max_encodable_sequence, epoch + dt.timedelta(days=365))
    assert len(longest.id) == 22
    decoded = codec.decode(longest.id)
    assert decoded is not None
    assert decoded.sequence == codec.max_encodable_sequence


def test_sequence_above_encodable_range_decodes_to_none(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    too_large = codec.max_encodable_sequence + 1
    checksummer = SortableIdChecksummer(IdComposer(9), CROCKFORD_BASE32, CheckDigitAlgorithm.VERHOEFF)
    for seconds in range(50):
        prefix = codec.create(1, epoch + dt.timedelta(seconds=seconds)).id[:9]
        digit = int(checksummer.compute(prefix + CROCKFORD_BASE32.encode(too_large)))
        # too_large * 10 + digit only fits in 63 bits for digits up to 7
        if digit <= 7:
            break
    else:
        pytest.fail("no timestamp produced a usable check digit")

    identifier = prefix + CROCKFORD_BASE32.encode(too_large * 10 + digit)
    assert checksummer.is_valid(identifier)
    assert codec.decode(identifier) is None
    assert not codec.is_valid(identifier)
    with pytest.raises(InvalidInputError):
        codec.create(too_large, epoch)


def test_identifiers_sort_by_timestamp_then_sequence(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = []
    for offset in range(0, 5_000, 250):
        timestamp = epoch + dt.timedelta(days=offset % 3, milliseconds=offset)
        for sequence in (1_050_000, 1_050_001, 2_000_000):
            created.append(codec.create(sequence, timestamp))

    ordered = sorted(created, key=lambda item: (item.timestamp, item.sequence))
    assert sorted(item.id for item in created) == [item.id for item in ordered]


def test_naive_timestamp_is_utc(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(9, (epoch + dt.timedelta(hours=1)).replace(tzinfo=None))
    assert created.timestamp == epoch + dt.timedelta(hours=1)
    assert created.timestamp.tzinfo is not None


def test_create_defaults_to_now(codec: SortableIdCodec) -> None:
    before = dt.datetime.now(dt.UTC)
    created = codec.create(1)
    after = dt.datetime.now(dt.UTC)
    assert before <= created.timestamp <= after
    assert codec.is_valid(created.id)


@pytest.mark.parametrize("sequence", [-1, 922_337_203_685_477_580, True, "1", 1.0])
def test_create_rejects_invalid_sequences(codec: SortableIdCodec, epoch: dt.datetime, sequence: object) -> None:
    with pytest.raises(InvalidInputError):
        codec.create(sequence, epoch)  # type: ignore[arg-type]


def test_create_rejects_timestamps_before_epoch(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    with pytest.raises(InvalidInputError):
        codec.create(1, epoch - dt.timedelta(seconds=1))


def test_algorithm_rejection_propagates(epoch: dt.datetime) -> None:
    codec = SortableIdCodec(
        {
            "alphabet": DIGITS,
            "timestamp_width": 3,
            "subsecond_bits": 0,
            "check_digit_algorithm": "luhn",
            "custom_epoch": epoch,
        }
    )
    with pytest.raises(InvalidInputError):
        codec.create(0, epoch)
    assert codec.is_valid(codec.create(5, epoch + dt.timedelta(seconds=3)).id)


def test_changed_timestamp_character_is_detected(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(1_050_000, epoch + dt.timedelta(seconds=100))
    assert created.id[0] == "0"
    altered = "1" + created.id[1:]
    assert codec.decode(altered) is None
    assert not codec.is_valid(altered)


def test_most_single_character_changes_are_detected(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(1_234_567, epoch + dt.timedelta(days=12, milliseconds=345))
    accepted = 0
    attempts = 0
    for index, original in enumerate(created.id):
        for replacement in CROCKFORD_BASE32_ALPHABET:
            if replacement == original:
                continue
            attempts += 1
            if codec.is_valid(created.id[:index] + replacement + created.id[index + 1 :]):
                accepted += 1
    # one decimal check digit lets roughly a tenth of substitutions through
    assert accepted / attempts < 0.15


@pytest.mark.parametrize("identifier", ["", "0000", "000000000", "00000000!1", "0000000001B"])
def test_malformed_identifiers_decode_to_none(codec: SortableIdCodec, identifier: str) -> None:
    assert codec.decode(identifier) is None
    assert codec.is_valid(identifier) is False


def test_non_string_decodes_to_none(codec: SortableIdCodec) -> None:
    assert codec.decode(None) is None  # type: ignore[arg-type]


def test_non_canonical_sequence_is_rejected(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(1_050_000, epoch + dt.timedelta(seconds=5))
    padded = created.id[:9] + "0" + created.id[9:]
    assert codec.decode(padded) is None


def test_uppercase_identifiers_are_rejected(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(1_050_000, epoch + dt.timedelta(days=30))
    assert created.id != created.id.upper()
    assert codec.decode(created.id.upper()) is None


def test_decode_failures_are_logged_at_debug(codec: SortableIdCodec, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="sortid.sortable_id"):
        assert codec.decode("not-an-id!") is None
    assert any("can't be decoded" in record.getMessage() for record in caplog.records)


def test_undecodable_result_raises_consistency_error(
    codec: SortableIdCodec, epoch: dt.datetime, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(codec, "decode", lambda identifier: None)
    with pytest.raises(ConsistencyError):
        codec.create(1, epoch)


def test_sequence_mismatch_raises_consistency_error(
    codec: SortableIdCodec, epoch: dt.datetime, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        codec, "decode", lambda identifier: SortableId(id=identifier, timestamp=epoch, sequence=2)
    )
    with pytest.raises(ConsistencyError):
        codec.create(1, epoch)


def test_timestamp_drift_beyond_limit_is_logged(epoch: dt.datetime, caplog: pytest.LogCaptureFixture) -> None:
    codec = SortableIdCodec({"subsecond_bits": 1, "max_timestamp_delta_ms": 0, "custom_epoch": epoch})
    timestamp = epoch + dt.timedelta(milliseconds=300)
    with caplog.at_level(logging.DEBUG, logger="sortid.sortable_id"):
        created = codec.create(10, timestamp)

    assert created.timestamp == timestamp
    decoded = codec.decode(created.id)
    assert decoded is not None
    assert decoded.timestamp == epoch + dt.timedelta(milliseconds=500)
    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "decodes incorrectly (timestamp)" in errors[0].getMessage()


def test_timestamp_drift_within_limit_is_not_an_error(epoch: dt.datetime, caplog: pytest.LogCaptureFixture) -> None:
    codec = SortableIdCodec({"subsecond_bits": 1, "custom_epoch": epoch})
    with caplog.at_level(logging.DEBUG, logger="sortid.sortable_id"):
        codec.create(10, epoch + dt.timedelta(milliseconds=300))
    assert not [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert any("Subseconds altered" in record.getMessage() for record in caplog.records)


def test_codec_requires_sort_preserving_encoders(epoch: dt.datetime) -> None:
    with pytest.raises(ConfigurationError):
        SortableIdCodec(
            SortableIdSettings(custom_epoch=epoch), sequence_encoder=BaseNSequenceEncoder("9876543210")
        )


def test_codec_uses_process_epoch_when_settings_have_none(epoch: dt.datetime) -> None:
    with pytest.raises(ConfigurationError):
        SortableIdCodec()
    set_custom_epoch(epoch)
    assert SortableIdCodec().epoch == epoch


def test_custom_alphabet_codec(epoch: dt.datetime) -> None:
    codec = SortableIdCodec({"alphabet": "0123456789ABCDEF", "timestamp_width": 11, "custom_epoch": epoch})
    created = codec.create(1_050_000, epoch + dt.timedelta(minutes=7))
    assert set(created.id) <= set("0123456789ABCDEF")
    assert codec.decode(created.id) == created


def test_codec_rejects_unsorted_alphabet(epoch: dt.datetime) -> None:
    with pytest.raises(ConfigurationError):
        SortableIdCodec({"alphabet": "ba", "custom_epoch": epoch})


def test_checksummer(epoch: dt.datetime) -> None:
    checksummer = SortableIdChecksummer(IdComposer(9), CROCKFORD_BASE32, CheckDigitAlgorithm.VERHOEFF)
    digit = checksummer.compute("0000000001")
    assert digit in DIGITS
    assert checksummer.is_valid("000000000" + CROCKFORD_BASE32.encode(10 + int(digit)))
    assert not checksummer.is_valid("000000000" + CROCKFORD_BASE32.encode(10 + (int(digit) + 1) % 10))


def test_module_helpers_use_default_codec(epoch: dt.datetime) -> None:
    with pytest.raises(ConfigurationError):
        default_codec()

    set_custom_epoch(epoch)
    created = generate_sortable_id(1_050_000, timestamp=epoch + dt.timedelta(seconds=42))
    assert default_codec() is default_codec()
    assert decode_sortable_id(created.id) == created
    assert is_valid_sortable_id(created.id)
    assert not is_valid_sortable_id(created.id.upper())


def test_configure_default_codec(epoch: dt.datetime) -> None:
    codec = configure_default_codec({"subsecond_bits": 0, "custom_epoch": epoch})
    assert default_codec() is codec
    created = generate_sortable_id(3, timestamp=epoch + dt.timedelta(seconds=2, milliseconds=700))
    decoded = decode_sortable_id(created.id)
    assert decoded is not None
    assert decoded.timestamp == epoch + dt.timedelta(seconds=2)


def test_sortable_id_serializes_to_json(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    created = codec.create(1_050_000, epoch + dt.timedelta(seconds=100, milliseconds=250))
    payload = json_decode(json_encode(created))
    assert payload["id"] == created.id
    assert payload["sequence"] == 1_050_000
    assert msgspec.json.decode(json_encode(created), type=SortableId) == created


def test_small_sequence_sorts_before_large_at_same_timestamp(codec: SortableIdCodec, epoch: dt.datetime) -> None:
    timestamp = epoch + dt.timedelta(hours=2, milliseconds=5)
    first = codec.create(0, timestamp)
    second = codec.create(1_000_000, timestamp)
    assert first.id[:9] == second.id[:9]
    assert first.id < second.id


def test_coarse_rounding_is_within_default_drift_limit(
    epoch: dt.datetime, caplog: pytest.LogCaptureFixture
) -> None:
    codec = SortableIdCodec({"subsecond_bits": 20, "rounding_digits": 1, "custom_epoch": epoch})
    timestamp = epoch + dt.timedelta(seconds=4, milliseconds=140)
    with caplog.at_level(logging.DEBUG, logger="sortid.sortable_id"):
        created = codec.create(1_050_000, timestamp)

    decoded = codec.decode(created.id)
    assert decoded is not None
    assert decoded.timestamp == epoch + dt.timedelta(seconds=4, milliseconds=100)
    assert not [record for record in caplog.records if record.levelno >= logging.ERROR]
