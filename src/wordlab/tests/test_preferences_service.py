"""Tests for study preferences."""
from unittest.mock import MagicMock

import pytest

from wordlab.services.preferences_service import PreferencesService, StudyPreferences
from wordlab.services.word_store import SqlWordStore, WordStore


def test_from_dict_merges_over_defaults() -> None:
    """Test persisted values win and unknown keys are ignored."""
    prefs = StudyPreferences.from_dict({"audio": False, "masterCard": 1, "theme": "dark"})

    assert prefs.audio is False
    assert prefs.masterCard is True
    assert prefs.showWord is True
    assert "theme" not in prefs.to_dict()


@pytest.mark.asyncio
async def test_toggle_persists(sql_store: SqlWordStore) -> None:
    """Test toggling flips the value and saves all preferences."""
    service = PreferencesService(sql_store)
    await service.load()

    assert await service.toggle("showEx2") is False

    reloaded = await PreferencesService(sql_store).load()
    assert reloaded.showEx2 is False
    assert reloaded.showEx1 is True


@pytest.mark.asyncio
async def test_toggle_unknown_preference(sql_store: SqlWordStore) -> None:
    """Test unknown names are rejected."""
    service = PreferencesService(sql_store)

    with pytest.raises(ValueError):
        await service.toggle("sparkles")


@pytest.mark.asyncio
async def test_toggle_survives_save_failure(caplog) -> None:
    """Test a failed save keeps the local toggle and logs it."""
    store = MagicMock(spec=WordStore)
    store.load_settings.return_value = None
    store.save_settings.side_effect = RuntimeError("offline")
    service = PreferencesService(store)
    await service.load()

    assert await service.toggle("audio") is False
    assert service.preferences.audio is False
    assert "offline" in caplog.text
