"""
Tests for the bottle store — create, list, record, update, remove.
"""

import asyncio
import json
import uuid
from pathlib import Path

import pytest

from alloy.core.errors import InvalidInputError, NotFoundError, StorageError
from alloy.core.models.bottle import WineRuntime
from alloy.core.persistence.bottle_store import (
    BOTTLE_META,
    BottleStore,
    sanitize_bottle_name,
)


def _runtime() -> WineRuntime:
    return WineRuntime(
        label="wine x86_64 7.0",
        wine64_path=Path("/opt/wine-x86_64-7.0/bin/wine64"),
        version="7.0",
        channel="rossetta",
    )


class TestSanitizeBottleName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("My Game", "my-game"),
            ("  Steam  ", "steam"),
            ("diablo_2", "diablo_2"),
            ("GTA: Vice City!", "gta-vice-city"),
            ("-edge-", "edge"),
        ],
    )
    def test_slugs(self, raw: str, expected: str):
        assert sanitize_bottle_name(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "!!!", "---", "日本語"])
    def test_rejects_unusable(self, raw: str):
        with pytest.raises(InvalidInputError, match="please pick a bottle name"):
            sanitize_bottle_name(raw)


class TestCreate:
    def test_create_then_record(self, store: BottleStore):
        record = asyncio.run(store.create("My Game", _runtime()))
        assert record.name == "my-game"
        assert record.environment == []

        loaded = asyncio.run(store.record(record.id))
        assert loaded.id == record.id
        assert loaded.name == "my-game"
        assert loaded.wine_runtime == _runtime()
        assert store.bottle_prefix(record.id).is_dir()

    def test_metadata_is_pretty_json(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        raw = store.metadata_path(record.id).read_text()
        assert raw.startswith("{\n")
        assert json.loads(raw)["id"] == str(record.id)

    def test_no_temp_files_left(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        names = {p.name for p in store.bottle_dir(record.id).iterdir()}
        assert names == {BOTTLE_META, "prefix"}

    def test_invalid_name_creates_nothing(self, store: BottleStore):
        with pytest.raises(InvalidInputError):
            asyncio.run(store.create("???", _runtime()))
        assert list(store.root.iterdir()) == []

    def test_unwritable_root(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            BottleStore(blocker / "bottles")


class TestList:
    def test_empty(self, store: BottleStore):
        assert asyncio.run(store.list()) == []

    def test_sorted_by_name(self, store: BottleStore):
        for name in ("zeta", "alpha", "mid"):
            asyncio.run(store.create(name, _runtime()))
        names = [b.name for b in asyncio.run(store.list())]
        assert names == ["alpha", "mid", "zeta"]

    def test_skips_corrupt_and_foreign_entries(self, store: BottleStore):
        good = asyncio.run(store.create("good", _runtime()))

        broken = store.root / str(uuid.uuid4())
        broken.mkdir()
        (broken / BOTTLE_META).write_text("{not json")

        (store.root / "stray-dir").mkdir()
        (store.root / "stray.txt").write_text("hello")

        bottles = asyncio.run(store.list())
        assert [b.id for b in bottles] == [good.id]

    def test_skips_undecodable_metadata(self, store: BottleStore):
        good = asyncio.run(store.create("good", _runtime()))
        foreign = store.root / "foreign"
        foreign.mkdir()
        (foreign / BOTTLE_META).write_bytes(b"\xff\xfe{garbage")

        assert [b.id for b in asyncio.run(store.list())] == [good.id]


class TestRecordAndUpdate:
    def test_record_unknown(self, store: BottleStore):
        with pytest.raises(NotFoundError):
            asyncio.run(store.record(uuid.uuid4()))

    def test_update_persists_environment(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        record.set_env("DXVK_HUD", "fps")
        asyncio.run(store.update(record.id, record))

        loaded = asyncio.run(store.record(record.id))
        assert loaded.environment == [("DXVK_HUD", "fps")]

    def test_update_never_creates(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        asyncio.run(store.remove(record.id))
        with pytest.raises(NotFoundError):
            asyncio.run(store.update(record.id, record))
        assert not store.bottle_dir(record.id).exists()

    def test_update_rejects_mismatched_id(self, store: BottleStore):
        a = asyncio.run(store.create("a", _runtime()))
        b = asyncio.run(store.create("b", _runtime()))
        with pytest.raises(InvalidInputError):
            asyncio.run(store.update(a.id, b))

    def test_corrupt_record(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        store.metadata_path(record.id).write_text("[]")
        with pytest.raises(StorageError):
            asyncio.run(store.record(record.id))

    def test_undecodable_record(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        store.metadata_path(record.id).write_bytes(b"\xff\xfe{garbage")
        with pytest.raises(StorageError, match="corrupt bottle metadata"):
            asyncio.run(store.record(record.id))


class TestRemove:
    def test_remove_then_record(self, store: BottleStore):
        record = asyncio.run(store.create("game", _runtime()))
        (store.bottle_prefix(record.id) / "drive_c").mkdir()
        asyncio.run(store.remove(record.id))

        assert not store.bottle_dir(record.id).exists()
        with pytest.raises(NotFoundError):
            asyncio.run(store.record(record.id))

    def test_remove_unknown(self, store: BottleStore):
        with pytest.raises(NotFoundError):
            asyncio.run(store.remove(uuid.uuid4()))
