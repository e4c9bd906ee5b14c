"""Processed-article log used for dedup and auditing.

Two adapters are provided: :class:`InMemoryLogStore` for tests and one-off
runs, and :class:`JsonLogStore` which keeps a single JSON index file under a
blob root directory.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Dict, List, Protocol, Union

from newsrewriter.errors import LogStoreCorrupted
from newsrewriter.models import ProcessedRecord

__all__ = [
    "DEFAULT_BLOB_ROOT",
    "InMemoryLogStore",
    "JsonLogStore",
    "PROCESSED_LOG_INDEX",
    "ProcessedLogStore",
    "ensure_blob_root",
    "resolve_blob_root",
    "store_json",
]

logger = logging.getLogger(__name__)

#: Default location for runtime artefacts.
DEFAULT_BLOB_ROOT = Path(__file__).resolve().parents[2] / "data" / "blobstore"

PROCESSED_LOG_INDEX = "processed_log.json"

_Pathish = Union[str, Path]


def resolve_blob_root(blob_root: _Pathish | None = None) -> Path:
    """Return ``blob_root`` as a :class:`Path`, defaulting to :data:`DEFAULT_BLOB_ROOT`.

    The directory is not created; see :func:`ensure_blob_root`.
    """

    if blob_root is None:
        return DEFAULT_BLOB_ROOT
    return Path(blob_root)


def ensure_blob_root(blob_root: _Pathish | None = None) -> Path:
    root = resolve_blob_root(blob_root)
    root.mkdir(parents=True, exist_ok=True)
    return root


def store_json(path: _Pathish, payload: object, *, blob_root: _Pathish | None = None) -> Path:
    """Write ``payload`` as JSON to ``path`` below the blob root, atomically.

    The data goes to a temporary file in the target directory first and is
    moved into place with :func:`os.replace`.
    """

    full_path = resolve_blob_root(blob_root) / path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    handle, temp_name = tempfile.mkstemp(
        prefix=f".{full_path.name}.", suffix=".tmp", dir=full_path.parent
    )
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as file:
            json.dump(payload, file, ensure_ascii=False, indent=2)
        os.replace(temp_name, full_path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    return full_path


class ProcessedLogStore(Protocol):
    def has_url_been_processed(self, campaign_id: str, url: str) -> bool:  # pragma: no cover - protocol
        ...

    def append_record(self, record: ProcessedRecord) -> str:  # pragma: no cover - protocol
        ...

    def count_for_campaign(self, campaign_id: str) -> int:  # pragma: no cover - protocol
        ...


class InMemoryLogStore:
    """Keep processed records in a list."""

    def __init__(self) -> None:
        self.records: List[ProcessedRecord] = []

    def has_url_been_processed(self, campaign_id: str, url: str) -> bool:
        return any(
            record.campaign_id == campaign_id and record.source_url == url
            for record in self.records
        )

    def append_record(self, record: ProcessedRecord) -> str:
        self.records.append(record)
        return str(len(self.records))

    def count_for_campaign(self, campaign_id: str) -> int:
        return sum(1 for record in self.records if record.campaign_id == campaign_id)


class JsonLogStore:
    """Persist processed records in ``processed_log.json`` under a blob root.

    The index is rewritten through a temporary file and :func:`os.replace`, so
    a crash mid-write leaves the previous index intact. An index that exists
    but cannot be read raises :class:`LogStoreCorrupted`; it is never treated
    as empty, since that would drop the dedup history.
    """

    def __init__(self, blob_root: _Pathish | None = None, index_filename: str = PROCESSED_LOG_INDEX) -> None:
        self.root = resolve_blob_root(blob_root)
        self.index_path = self.root / index_filename

    def load_entries(self) -> List[Dict[str, object]]:
        if not self.index_path.exists():
            return []

        try:
            with self.index_path.open("r", encoding="utf-8") as file:
                data = json.load(file)
        except (OSError, json.JSONDecodeError) as exc:
            raise LogStoreCorrupted(f"Could not read processed log {self.index_path}: {exc}") from exc

        if isinstance(data, dict):
            entries = data.get("records")
        else:
            entries = data
        if not isinstance(entries, list):
            raise LogStoreCorrupted(f"Processed log {self.index_path} has no record list")
        return [entry for entry in entries if isinstance(entry, dict)]

    def _write_entries(self, entries: List[Dict[str, object]]) -> None:
        store_json(self.index_path.name, {"records": entries}, blob_root=self.root)

    def has_url_been_processed(self, campaign_id: str, url: str) -> bool:
        return any(
            entry.get("campaign_id") == campaign_id and entry.get("source_url") == url
            for entry in self.load_entries()
        )

    def append_record(self, record: ProcessedRecord) -> str:
        entries = self.load_entries()
        record_id = uuid.uuid4().hex
        entry = {"id": record_id, **record.model_dump(mode="json")}
        entries.append(entry)
        self._write_entries(entries)
        logger.info("Recorded %s for campaign %s", record.source_url, record.campaign_id)
        return record_id

    def count_for_campaign(self, campaign_id: str) -> int:
        return sum(1 for entry in self.load_entries() if entry.get("campaign_id") == campaign_id)

    def records(self) -> List[ProcessedRecord]:
        return [
            ProcessedRecord.model_validate({k: v for k, v in entry.items() if k != "id"})
            for entry in self.load_entries()
        ]
