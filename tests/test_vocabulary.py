"""
Tests for the permission vocabulary and its one-time loader.
"""
import asyncio
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from myradio.core.exceptions import UnknownPermission
from myradio.features.permissions.vocabulary import PermissionVocabulary, VocabularyLoader

from helpers import add_type


def test_lookup_both_ways():
    vocabulary = PermissionVocabulary({269: "AUTH_SHOWERRORS", 42: "AUTH_FINDSHOWS"})

    assert vocabulary.type_id("AUTH_SHOWERRORS") == 269
    assert vocabulary.symbol(42) == "AUTH_FINDSHOWS"
    assert "AUTH_FINDSHOWS" in vocabulary
    assert 269 in vocabulary
    assert "AUTH_LOCK" not in vocabulary
    assert len(vocabulary) == 2


def test_unknown_symbol_raises():
    vocabulary = PermissionVocabulary({1: "AUTH_LOCK"})

    with pytest.raises(UnknownPermission):
        vocabulary.type_id("AUTH_NOPE")
    with pytest.raises(UnknownPermission):
        vocabulary.symbol(2)


def test_vocabulary_is_immutable():
    entries = {1: "AUTH_LOCK"}
    vocabulary = PermissionVocabulary(entries)
    entries[2] = "AUTH_LATE"

    assert "AUTH_LATE" not in vocabulary
    with pytest.raises(TypeError):
        vocabulary._by_id[3] = "AUTH_HACK"


async def test_ensure_loaded_reads_store(db):
    await add_type(db, 269, "AUTH_SHOWERRORS")
    await add_type(db, 42, "AUTH_FINDSHOWS")
    loader = VocabularyLoader()

    assert not loader.loaded
    vocabulary = await loader.ensure_loaded(db)

    assert loader.loaded
    assert vocabulary == PermissionVocabulary({269: "AUTH_SHOWERRORS", 42: "AUTH_FINDSHOWS"})
    assert loader.vocabulary is vocabulary


async def test_ensure_loaded_is_idempotent():
    db = AsyncMock()
    db.execute.return_value = [SimpleNamespace(typeid=1, phpconstant="AUTH_LOCK")]
    loader = VocabularyLoader()

    first = await loader.ensure_loaded(db)
    second = await loader.ensure_loaded(db)

    assert first is second
    db.execute.assert_awaited_once()


async def test_concurrent_first_calls_load_once():
    db = AsyncMock()
    db.execute.return_value = [SimpleNamespace(typeid=1, phpconstant="AUTH_LOCK")]
    loader = VocabularyLoader()

    results = await asyncio.gather(*(loader.ensure_loaded(db) for _ in range(10)))

    assert all(result is results[0] for result in results)
    db.execute.assert_awaited_once()


def test_vocabulary_property_before_load():
    with pytest.raises(RuntimeError):
        VocabularyLoader().vocabulary


async def test_empty_store_loads_with_warning(db, caplog):
    loader = VocabularyLoader()

    with caplog.at_level(logging.WARNING, logger="myradio"):
        vocabulary = await loader.ensure_loaded(db)

    assert len(vocabulary) == 0
    assert "empty permission vocabulary" in caplog.text
