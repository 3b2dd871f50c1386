"""Loaders for the seed issue list."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from devpool_pipeline.schemas import SeedIssue


class SeedIssueDatasetError(ValueError):
    """Raised when the seed issue file cannot be read or fails schema checks."""


@dataclass(frozen=True)
class ValidationErrorRecord:
    """One problem found in a seed issue record."""

    index: int
    code: str
    message: str


@dataclass(frozen=True)
class InputValidationReport:
    """Validation results for a seed issue file."""

    input_path: str
    record_count: int
    valid_issue_count: int
    empty_body_count: int
    duplicate_node_id_count: int
    repository_count: int
    error_count: int
    dropped_error_count: int
    is_valid: bool
    errors: list[ValidationErrorRecord]

    def to_dict(self) -> dict:
        """Render report as a JSON-serializable dictionary."""

        payload = asdict(self)
        payload["errors"] = [asdict(item) for item in self.errors]
        return payload


def _read_records(file_path: Path) -> list[Any]:
    if not file_path.exists():
        raise SeedIssueDatasetError(f"Seed issue file does not exist: {file_path}")
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SeedIssueDatasetError(f"Invalid JSON in {file_path}: {exc.msg}") from exc
    if not isinstance(payload, list):
        raise SeedIssueDatasetError(
            f"Expected a JSON array of issues in {file_path}, got {type(payload).__name__}."
        )
    return payload


def load_seed_issues(path: str | Path) -> list[SeedIssue]:
    """Load seed issues from a JSON array of GitHub issue payloads."""

    file_path = Path(path)
    issues: list[SeedIssue] = []
    for index, record in enumerate(_read_records(file_path)):
        try:
            issues.append(SeedIssue.model_validate(record))
        except ValidationError as exc:
            raise SeedIssueDatasetError(
                f"Issue record {index} in {file_path} failed validation: {exc}"
            ) from exc
    return issues


def validate_seed_issues(path: str | Path, *, max_errors: int = 100) -> InputValidationReport:
    """Scan every record and report problems instead of stopping at the first one.

    Empty bodies are counted but are not errors; the pipeline skips them.
    """

    if max_errors < 0:
        raise ValueError(f"max_errors must be >= 0, got {max_errors}.")

    file_path = Path(path)
    records = _read_records(file_path)

    errors: list[ValidationErrorRecord] = []
    error_count = 0
    dropped_error_count = 0
    valid_issue_count = 0
    empty_body_count = 0
    duplicate_node_id_count = 0
    seen_node_ids: set[str] = set()
    repositories: set[tuple[str, str]] = set()

    def _record_error(*, index: int, code: str, message: str) -> None:
        nonlocal error_count, dropped_error_count
        error_count += 1
        if len(errors) < max_errors:
            errors.append(ValidationErrorRecord(index=index, code=code, message=message))
        else:
            dropped_error_count += 1

    for index, record in enumerate(records):
        try:
            issue = SeedIssue.model_validate(record)
        except ValidationError as exc:
            _record_error(index=index, code="schema_validation_failed", message=str(exc))
            continue

        try:
            repositories.add(issue.owner_and_repo())
        except ValueError as exc:
            _record_error(index=index, code="invalid_repository_url", message=str(exc))
            continue

        if issue.node_id in seen_node_ids:
            duplicate_node_id_count += 1
        seen_node_ids.add(issue.node_id)

        if not issue.body:
            empty_body_count += 1
        valid_issue_count += 1

    return InputValidationReport(
        input_path=str(file_path),
        record_count=len(records),
        valid_issue_count=valid_issue_count,
        empty_body_count=empty_body_count,
        duplicate_node_id_count=duplicate_node_id_count,
        repository_count=len(repositories),
        error_count=error_count,
        dropped_error_count=dropped_error_count,
        is_valid=bool(records) and error_count == 0,
        errors=errors,
    )
