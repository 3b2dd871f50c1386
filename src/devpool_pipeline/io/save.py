"""Utilities for saving pipeline outputs as CSV tables."""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import uuid
from collections.abc import Callable, Sequence
from contextlib import suppress
from datetime import UTC, datetime
from pathlib import Path

from devpool_pipeline.pipeline.embedding import format_embedding
from devpool_pipeline.schemas import EnrichedEntry

logger = logging.getLogger(__name__)

ISSUE_COLUMNS: tuple[str, ...] = (
    "id",
    "plaintext",
    "embedding",
    "payload",
    "author_id",
    "created_at",
    "modified_at",
    "markdown",
)

COMMENT_COLUMNS: tuple[str, ...] = (
    "id",
    "plaintext",
    "markdown",
    "embedding",
    "payload",
    "author_id",
    "created_at",
    "modified_at",
    "issue_id",
)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory if it does not exist and return it."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _fsync_directory(path: Path) -> None:
    """Best-effort fsync for a directory."""

    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        logger.debug("fsync: unable to open directory %s", path)
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("fsync: sync failed for directory %s", path)
    finally:
        os.close(fd)


def _atomic_write_text(path: Path, content: str) -> None:
    """Atomically replace file contents via temp-write + rename."""

    ensure_directory(path.parent)
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        with temp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        _fsync_directory(path.parent)
    finally:
        if temp_path.exists():
            with suppress(OSError):
                temp_path.unlink()


def save_json(path: str | Path, payload: dict) -> Path:
    """Save a JSON object to disk."""

    file_path = Path(path)
    content = json.dumps(payload, ensure_ascii=True, indent=2) + "\n"
    _atomic_write_text(file_path, content)
    return file_path


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a `Z` suffix."""

    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _base_row(entry: EnrichedEntry) -> dict[str, str | int]:
    return {
        "id": entry.id,
        "plaintext": entry.plaintext,
        "markdown": entry.markdown,
        "embedding": format_embedding(entry.embedding),
        "payload": json.dumps(entry.payload.model_dump(mode="json")),
        "author_id": entry.author_id,
        "created_at": format_timestamp(entry.created_at),
        "modified_at": format_timestamp(entry.modified_at),
    }


def issue_row(entry: EnrichedEntry) -> dict[str, str | int]:
    row = _base_row(entry)
    return {column: row[column] for column in ISSUE_COLUMNS}


def comment_row(entry: EnrichedEntry) -> dict[str, str | int]:
    row = {**_base_row(entry), "issue_id": entry.issue_id}
    return {column: row[column] for column in COMMENT_COLUMNS}


def _serialize_csv(
    columns: Sequence[str],
    entries: Sequence[EnrichedEntry],
    to_row: Callable[[EnrichedEntry], dict[str, str | int]],
) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), quoting=csv.QUOTE_ALL)
    writer.writeheader()
    for entry in entries:
        writer.writerow(to_row(entry))
    return buffer.getvalue()


def save_issues_csv(path: str | Path, entries: Sequence[EnrichedEntry]) -> Path:
    """Write the issues table; the header row is written even when empty."""

    file_path = Path(path)
    _atomic_write_text(file_path, _serialize_csv(ISSUE_COLUMNS, entries, issue_row))
    return file_path


def save_comments_csv(path: str | Path, entries: Sequence[EnrichedEntry]) -> Path:
    """Write the comments table; the header row is written even when empty."""

    file_path = Path(path)
    _atomic_write_text(file_path, _serialize_csv(COMMENT_COLUMNS, entries, comment_row))
    return file_path


def save_tables(
    *,
    issues: Sequence[EnrichedEntry],
    comments: Sequence[EnrichedEntry],
    issues_path: str | Path,
    comments_path: str | Path,
) -> dict[str, Path | None]:
    """Write both tables; a failure on one is logged and does not stop the other."""

    written: dict[str, Path | None] = {"issues": None, "comments": None}

    try:
        written["issues"] = save_issues_csv(issues_path, issues)
        logger.info("Issue data has been saved to %s.", written["issues"])
    except OSError:
        logger.exception("Failed to save issue data to %s.", issues_path)

    try:
        written["comments"] = save_comments_csv(comments_path, comments)
        logger.info("Comments data has been saved to %s.", written["comments"])
    except OSError:
        logger.exception("Failed to save comments data to %s.", comments_path)

    return written
