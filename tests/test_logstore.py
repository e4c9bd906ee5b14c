from __future__ import annotations

import json
from pathlib import Path

import pytest

from newsrewriter.errors import LogStoreCorrupted
from newsrewriter.logstore import InMemoryLogStore, JsonLogStore, store_json
from newsrewriter.models import ProcessedRecord


def record(campaign_id: str, url: str) -> ProcessedRecord:
    return ProcessedRecord(campaign_id=campaign_id, source_url=url, status="draft", messages=["[INFO] ok"])


def test_json_log_store_round_trip(tmp_path: Path) -> None:
    store = JsonLogStore(tmp_path / "blobs")

    assert store.has_url_been_processed("1", "https://example.com/a") is False

    first_id = store.append_record(record("1", "https://example.com/a"))
    second_id = store.append_record(record("2", "https://example.com/a"))

    assert first_id != second_id
    assert store.has_url_been_processed("1", "https://example.com/a") is True
    assert store.has_url_been_processed("1", "https://example.com/b") is False
    assert store.count_for_campaign("1") == 1
    assert store.count_for_campaign("2") == 1
    assert (tmp_path / "blobs" / "processed_log.json").exists()

    reloaded = JsonLogStore(tmp_path / "blobs").records()
    assert [r.source_url for r in reloaded] == ["https://example.com/a", "https://example.com/a"]
    assert reloaded[0].messages == ["[INFO] ok"]


def test_json_log_store_refuses_corrupt_index(tmp_path: Path) -> None:
    store = JsonLogStore(tmp_path)
    store.append_record(record("1", "https://example.com/a"))
    index = tmp_path / "processed_log.json"
    truncated = index.read_text(encoding="utf-8")[:-3]
    index.write_text(truncated, encoding="utf-8")

    with pytest.raises(LogStoreCorrupted) as excinfo:
        store.append_record(record("1", "https://example.com/b"))

    assert "processed_log.json" in str(excinfo.value)
    assert excinfo.value.benign is False
    assert index.read_text(encoding="utf-8") == truncated

    with pytest.raises(LogStoreCorrupted):
        store.has_url_been_processed("1", "https://example.com/a")
    with pytest.raises(LogStoreCorrupted):
        store.count_for_campaign("1")


def test_json_log_store_rejects_index_without_records(tmp_path: Path) -> None:
    (tmp_path / "processed_log.json").write_text('{"records": "nope"}', encoding="utf-8")

    with pytest.raises(LogStoreCorrupted):
        JsonLogStore(tmp_path).count_for_campaign("1")


def test_json_log_store_reads_bare_list_index(tmp_path: Path) -> None:
    payload = [{"id": "x", "campaign_id": "1", "source_url": "https://example.com/a"}]
    (tmp_path / "processed_log.json").write_text(json.dumps(payload), encoding="utf-8")

    assert JsonLogStore(tmp_path).has_url_been_processed("1", "https://example.com/a") is True


def test_store_json_replaces_file_without_leftovers(tmp_path: Path) -> None:
    target = store_json("nested/item.json", {"title": "First"}, blob_root=tmp_path)
    store_json("nested/item.json", {"title": "Second"}, blob_root=tmp_path)

    assert target == tmp_path / "nested" / "item.json"
    assert json.loads(target.read_text(encoding="utf-8")) == {"title": "Second"}
    assert [p.name for p in target.parent.iterdir()] == ["item.json"]


def test_store_json_keeps_previous_file_when_serialisation_fails(tmp_path: Path) -> None:
    target = store_json("item.json", {"title": "Kept"}, blob_root=tmp_path)

    with pytest.raises(TypeError):
        store_json("item.json", {"title": object()}, blob_root=tmp_path)

    assert json.loads(target.read_text(encoding="utf-8")) == {"title": "Kept"}
    assert [p.name for p in tmp_path.iterdir()] == ["item.json"]


def test_in_memory_log_store() -> None:
    store = InMemoryLogStore()
    store.append_record(record("1", "https://example.com/a"))

    assert store.has_url_been_processed("1", "https://example.com/a")
    assert not store.has_url_been_processed("2", "https://example.com/a")
    assert store.count_for_campaign("1") == 1
