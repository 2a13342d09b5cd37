import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from nebula_sync.errors import NotFound, ParseError, StoreIOError
from nebula_sync.models import InventoryItem
from nebula_sync.storage.table import TableStore


def _item(name: str, day: int = 1) -> InventoryItem:
    return InventoryItem(
        user_id="u1", item_name=name, acquired_at=datetime(2025, 1, day, tzinfo=timezone.utc)
    )


def test_missing_and_empty_files_raise_not_found(tmp_path: Path):
    table = TableStore(tmp_path / "inv.json", InventoryItem)
    with pytest.raises(NotFound):
        table.load()

    (tmp_path / "inv.json").write_text("  \n", encoding="utf-8")
    with pytest.raises(NotFound):
        table.load()


def test_malformed_content_raises_parse_error(tmp_path: Path):
    path = tmp_path / "inv.json"
    path.write_text('{"not": "a list"}', encoding="utf-8")
    with pytest.raises(ParseError):
        TableStore(path, InventoryItem).load()

    path.write_text("[{broken", encoding="utf-8")
    with pytest.raises(ParseError):
        TableStore(path, InventoryItem).load()


def test_non_utf8_content_raises_parse_error(tmp_path: Path):
    path = tmp_path / "inv.json"
    path.write_bytes(b"[\xff\xfe]")
    with pytest.raises(ParseError):
        TableStore(path, InventoryItem).load()


def test_save_then_load_preserves_rows(tmp_path: Path):
    path = tmp_path / "db" / "inv.json"
    table = TableStore(path, InventoryItem)
    table.add(_item("nova"))
    table.add(_item("comet", 2))
    assert table.dirty
    table.save()
    assert not table.dirty

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [row["item_name"] for row in data] == ["nova", "comet"]

    reloaded = TableStore(path, InventoryItem).load()
    assert reloaded == [_item("nova"), _item("comet", 2)]


def test_save_without_changes_does_not_touch_disk(tmp_path: Path):
    path = tmp_path / "inv.json"
    table = TableStore(path, InventoryItem)
    table.save()
    assert not path.exists()


def test_remove_where_and_add_if_absent(tmp_path: Path):
    table = TableStore(tmp_path / "ids.json", int)
    assert table.add_if_absent(3)
    assert not table.add_if_absent(3)
    table.add(4)
    assert table.remove_where(lambda i: i == 3) == 1
    assert table.remove_where(lambda i: i == 99) == 0
    table.save()
    assert TableStore(tmp_path / "ids.json", int).load() == [4]


def test_failed_rename_keeps_previous_content(tmp_path: Path, monkeypatch):
    path = tmp_path / "inv.json"
    table = TableStore(path, InventoryItem)
    table.add(_item("nova"))
    table.save()
    before = path.read_bytes()

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    table.add(_item("comet", 2))
    with pytest.raises(StoreIOError):
        table.save()

    assert path.read_bytes() == before
    assert [p.name for p in tmp_path.iterdir()] == ["inv.json"]
    assert table.dirty


def test_rename_is_retried_on_permission_error(tmp_path: Path, monkeypatch):
    path = tmp_path / "inv.json"
    real_replace = os.replace
    attempts = []

    def flaky(src, dst):
        attempts.append(src)
        if len(attempts) == 1:
            raise PermissionError("file in use")
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", flaky)
    table = TableStore(path, InventoryItem)
    table.add(_item("nova"))
    table.save()

    assert len(attempts) == 2
    assert TableStore(path, InventoryItem).load()[0].item_name == "nova"
