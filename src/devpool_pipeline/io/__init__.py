"""I/O utilities for reading seed issues and writing output tables."""

from devpool_pipeline.io.load import (
    InputValidationReport,
    SeedIssueDatasetError,
    ValidationErrorRecord,
    load_seed_issues,
    validate_seed_issues,
)
from devpool_pipeline.io.save import (
    COMMENT_COLUMNS,
    ISSUE_COLUMNS,
    comment_row,
    ensure_directory,
    format_timestamp,
    issue_row,
    save_comments_csv,
    save_issues_csv,
    save_json,
    save_tables,
)

__all__ = [
    "COMMENT_COLUMNS",
    "ISSUE_COLUMNS",
    "InputValidationReport",
    "SeedIssueDatasetError",
    "ValidationErrorRecord",
    "comment_row",
    "ensure_directory",
    "format_timestamp",
    "issue_row",
    "load_seed_issues",
    "save_comments_csv",
    "save_issues_csv",
    "save_json",
    "save_tables",
    "validate_seed_issues",
]
