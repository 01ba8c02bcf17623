from __future__ import annotations

import datetime as dt

import pytest

import sortid.sortable_id as sortable_id_module
import sortid.timestamp as timestamp_module

EPOCH = dt.datetime(2024, 8, 24, tzinfo=dt.UTC)


@pytest.fixture(autouse=True)
def _reset_process_state(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(timestamp_module, "_custom_epoch", None)
    monkeypatch.setattr(sortable_id_module, "_default_codec", None)
    monkeypatch.delenv("SORTID_SETTINGS", raising=False)
    monkeypatch.delenv("SORTID_SETTINGS_FILE", raising=False)


@pytest.fixture
def epoch() -> dt.datetime:
    return EPOCH
