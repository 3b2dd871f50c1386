"""CLI entrypoint for the devpool embedding pipeline."""

import argparse
import logging
import sys
import time
from pathlib import Path

from devpool_pipeline import __version__
from devpool_pipeline.config import Settings
from devpool_pipeline.io import (
    SeedIssueDatasetError,
    load_seed_issues,
    save_json,
    save_tables,
    validate_seed_issues,
)
from devpool_pipeline.models import GitHubClient, VoyageEmbeddingClient
from devpool_pipeline.pipeline import run_pipeline

logger = logging.getLogger("devpool_pipeline")


def _format_duration(seconds: float) -> str:
    if seconds < 0 or seconds == float("inf"):
        return "--:--"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class _IssueProgressPrinter:
    """Print throttled per-issue progress; the first and last issue always print."""

    def __init__(self, *, min_interval_seconds: float = 2.0) -> None:
        self._started_at = time.perf_counter()
        self._last_print_at: float | None = None
        self._min_interval_seconds = min_interval_seconds

    def __call__(self, done: int, total: int, detail: str = "") -> None:
        now = time.perf_counter()
        is_edge = done <= 1 or done >= total
        if (
            not is_edge
            and self._last_print_at is not None
            and now - self._last_print_at < self._min_interval_seconds
        ):
            return

        elapsed = now - self._started_at
        remaining = float("inf")
        if done > 0:
            remaining = elapsed / done * max(total - done, 0)
        print(
            f"    issue {done}/{total} | {detail or '-'} | "
            f"elapsed {_format_duration(elapsed)} | left {_format_duration(remaining)}"
        )
        self._last_print_at = now


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devpool",
        description="Embed GitHub issue and pull request conversations into CSV tables",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to YAML config file (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("info", help="Show current configuration")

    validate_parser = sub.add_parser(
        "validate-input",
        help="Validate the seed issue JSON file without calling any API.",
    )
    validate_parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Path to seed issue JSON. Defaults to configured input_issues_path.",
    )
    validate_parser.add_argument(
        "--max-errors",
        type=int,
        default=100,
        help="Maximum detailed record-level errors to retain in report output.",
    )
    validate_parser.add_argument(
        "--report-json",
        type=str,
        default=None,
        help="Optional path to write full validation report as JSON.",
    )

    run_parser = sub.add_parser("run", help="Run the pipeline")
    run_parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Seed issue JSON for this run. Defaults to configured input_issues_path.",
    )
    run_parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for issues_data.csv and comments_data.csv.",
    )
    run_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Process only the first N seed issues.",
    )
    run_parser.add_argument(
        "--drop-boilerplate",
        action="store_true",
        help="Blank out texts containing bot commands or assignment boilerplate.",
    )

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_info(settings: Settings) -> None:
    print(f"devpool-embeddings v{__version__}")
    print(f"  GitHub API:       {settings.github_api_url}")
    print(f"  GitHub GraphQL:   {settings.github_graphql_url}")
    print(f"  GitHub token set: {bool(settings.github_token.strip())}")
    print(f"  Voyage endpoint:  {settings.voyage_base_url}")
    print(f"  Voyage key set:   {bool(settings.voyage_api_key.strip())}")
    print(f"  Embedding model:  {settings.embedding_model}")
    print(f"  Client timeout:   {settings.client_timeout_seconds}s")
    print(f"  Client attempts:  {settings.client_max_retries}")
    print(f"  Backoff seconds:  {settings.client_backoff_seconds}")
    print(f"  GitHub max pages: {settings.github_max_pages}")
    print(f"  Drop boilerplate: {settings.drop_boilerplate}")
    print(f"  Input file:       {settings.input_issues_path}")
    print(f"  Issues CSV:       {settings.issues_output_path()}")
    print(f"  Comments CSV:     {settings.comments_output_path()}")


def cmd_validate_input(settings: Settings, args: argparse.Namespace) -> None:
    """Validate seed issue input and print a report."""

    input_path = args.input or str(settings.input_issues_path)
    try:
        report = validate_seed_issues(input_path, max_errors=args.max_errors)
    except SeedIssueDatasetError as exc:
        print(f"Input validation failed: {exc}")
        sys.exit(1)
    except ValueError as exc:
        print(f"Input validation configuration error: {exc}")
        sys.exit(1)

    print("Input validation complete.")
    print(f"  Input path:         {report.input_path}")
    print(f"  Records:            {report.record_count}")
    print(f"  Valid issues:       {report.valid_issue_count}")
    print(f"  Empty bodies:       {report.empty_body_count}")
    print(f"  Duplicate node IDs: {report.duplicate_node_id_count}")
    print(f"  Repositories:       {report.repository_count}")

    if args.report_json:
        report_path = save_json(args.report_json, report.to_dict())
        print(f"  Report JSON:        {report_path}")

    if report.is_valid:
        print("Validation passed: every record matches the seed issue shape.")
        return

    print("Validation failed: fix input errors before running the pipeline.")
    if report.errors:
        print("  Sample errors:")
        for item in report.errors[:5]:
            print(f"    - record {item.index} [{item.code}] {item.message}")
        if report.dropped_error_count > 0:
            print(
                "    - "
                f"... {report.dropped_error_count} additional errors omitted "
                f"(max-errors={args.max_errors})."
            )
    sys.exit(1)


def cmd_run(settings: Settings, args: argparse.Namespace) -> None:
    """Fetch, embed and write both tables for every seed issue."""

    if args.limit is not None and args.limit < 0:
        print(f"--limit must be >= 0, got {args.limit}.")
        sys.exit(2)

    missing = settings.missing_secrets()
    if missing:
        print(f"Missing required secrets: {', '.join(missing)}")
        sys.exit(2)

    input_path = Path(args.input).expanduser() if args.input else settings.input_issues_path
    if args.output_dir:
        settings = settings.model_copy(update={"output_dir": Path(args.output_dir)})
    drop_boilerplate = args.drop_boilerplate or settings.drop_boilerplate

    try:
        seeds = load_seed_issues(input_path)
    except SeedIssueDatasetError as exc:
        print(f"Could not load seed issues: {exc}")
        sys.exit(1)

    github = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        graphql_url=settings.github_graphql_url,
        api_version=settings.github_api_version,
        timeout_seconds=settings.client_timeout_seconds,
        max_retries=settings.client_max_retries,
        backoff_seconds=settings.client_backoff_seconds,
    )
    embedding_client = VoyageEmbeddingClient(
        api_key=settings.voyage_api_key,
        model=settings.embedding_model,
        base_url=settings.voyage_base_url,
        timeout_seconds=settings.client_timeout_seconds,
        max_retries=settings.client_max_retries,
        backoff_seconds=settings.client_backoff_seconds,
    )

    started_at = time.perf_counter()
    try:
        result = run_pipeline(
            seeds,
            github=github,
            embedding_client=embedding_client,
            drop_boilerplate=drop_boilerplate,
            max_pages=settings.github_max_pages,
            limit=args.limit,
            progress_callback=_IssueProgressPrinter(),
        )
    except Exception:
        logger.exception("Pipeline run failed; no output files were written.")
        sys.exit(1)
    finally:
        github.close()
        embedding_client.close()

    written = save_tables(
        issues=result.issues,
        comments=result.comments,
        issues_path=settings.issues_output_path(),
        comments_path=settings.comments_output_path(),
    )

    print("Run complete.")
    print(f"  Issues processed:  {result.processed_issue_count}")
    print(f"  Issues skipped:    {result.skipped_issue_count}")
    print(f"  Issue rows:        {len(result.issues)}")
    print(f"  Comment rows:      {len(result.comments)}")
    print(f"  Duplicates:        {result.duplicate_count}")
    print(f"  Elapsed:           {_format_duration(time.perf_counter() - started_at)}")
    print(f"  Issues CSV:        {written['issues'] or '(write failed)'}")
    print(f"  Comments CSV:      {written['comments'] or '(write failed)'}")

    if None in written.values():
        sys.exit(1)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)

    settings = Settings.from_yaml(args.config)

    if args.command == "info":
        cmd_info(settings)
    elif args.command == "validate-input":
        cmd_validate_input(settings, args)
    elif args.command == "run":
        cmd_run(settings, args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
