#!/usr/bin/env python3
"""
repo_miner.py

A command-line tool to:
  1) Export pull requests, commits or issues of a GitHub repository to CSV,
     page by page, keeping a raw JSON copy of every page
  2) Rebuild a commit CSV from those JSON copies without the network
  3) Summarize commits per contributor and per year

Sub-commands:
  - fetch-pulls
  - fetch-commits
  - fetch-issues
  - reprocess
  - summarize
  - per-year

The API token is read from GITHUB_API_TOKEN (or GITHUB_TOKEN).
"""

import argparse
import logging
import signal
import sys

from src import errors
from src.aggregation import (AggregationState, commits_per_year, contributor_summary_rows,
                             node_id_rows, pull_requests_by_contributor, record_node_ids, tally,
                             tally_csv_column, yearly_totals)
from src.checkpoint import PageCheckpointer, iter_checkpoint_records
from src.config import (DEFAULT_JSON_DIR, DEFAULT_TIMEOUT, ExportConfig, GuardField,
                        ResourceKind, build_query_parameters, checkpoint_name_for, load_config,
                        resource_path)
from src.csv_sink import CsvSink
from src.fetcher import PageFetcher, PageRequest, RateLimitGuard
from src.pagination import PaginationDriver, RetryPolicy
from src.projection import COMMIT_HEADERS, contributor_of, headers_for, project_commit, projector_for

logger = logging.getLogger(__name__)

FETCH_COMMANDS = {
    'fetch-pulls': ResourceKind.PULLS,
    'fetch-commits': ResourceKind.COMMITS,
    'fetch-issues': ResourceKind.ISSUES,
}
COMMITS_CHECKPOINT = checkpoint_name_for(ResourceKind.COMMITS)


def build_driver(config: ExportConfig) -> PaginationDriver:
    return PaginationDriver(
        fetcher=PageFetcher(config.token, timeout=config.timeout),
        guard=RateLimitGuard(config.guard_field),
        checkpointer=PageCheckpointer(config.json_dir, config.checkpoint_name),
        retry_policy=RetryPolicy(max_retries=config.max_retries,
                                 skip_failed_pages=config.skip_failed_pages),
    )


def export_resource(config: ExportConfig, sink: CsvSink = None, driver: PaginationDriver = None):
    """
    Page through one resource of `config.repo` and append a row per record
    to `config.output_file`. Returns (RunResult, AggregationState), where the
    state counts records per contributor.
    """
    sink = sink or CsvSink()
    driver = driver or build_driver(config)

    # 1) Create the CSV with its header unless an earlier run already did
    sink.ensure(config.output_file, headers_for(config.kind))

    path = resource_path(config.repo, config.kind)
    project = projector_for(config.kind)
    state = AggregationState()

    def request_for_page(page_number):
        params = build_query_parameters(config.kind, page_number, config.per_page,
                                        config.since, config.until)
        return PageRequest(path=path, page_number=page_number, params=params)

    def on_records(records):
        nonlocal state
        # 2) Flatten and append this page before the next one is requested
        sink.append_rows(config.output_file, [project(r) for r in records])
        if config.kind is ResourceKind.ISSUES:
            # only issues that are pull requests count towards a contributor
            state = pull_requests_by_contributor(records, state)
        else:
            state = tally(state, (contributor_of(config.kind, r) for r in records))
        if config.kind is ResourceKind.COMMITS:
            state = record_node_ids(state, records)

    result = driver.run(request_for_page, on_records, start_page=config.start_page)
    return result, state


def reprocess_checkpoints(json_dir: str, output_file: str, sink: CsvSink = None,
                          name: str = COMMITS_CHECKPOINT) -> int:
    """
    Project every commit in the JSON checkpoints of `json_dir` into
    `output_file`. Returns the number of rows written.
    """
    sink = sink or CsvSink()
    sink.ensure(output_file, COMMIT_HEADERS)
    rows = [project_commit(commit) for commit in iter_checkpoint_records(json_dir, name)]
    return sink.append_rows(output_file, rows)


def summarize_csv(csv_file: str, column: str, output_file: str,
                  label: str = 'Commits', sink: CsvSink = None) -> AggregationState:
    """
    Count `column` values of an exported CSV and append the contributor
    summary rows to `output_file`.
    """
    sink = sink or CsvSink()
    state = tally_csv_column(csv_file, column)
    sink.append_rows(output_file, contributor_summary_rows(state, label))
    return state


def report_commits_per_year(json_dir: str, output_file: str = None,
                            name: str = COMMITS_CHECKPOINT):
    summary = commits_per_year(iter_checkpoint_records(json_dir, name))
    totals = yearly_totals(summary)

    print(f"Total commits: {int(totals.sum())}")
    for year, count in totals.items():
        print(f"{year} had {count} commits")

    if output_file:
        summary.to_csv(output_file, index=False)
        print(f"Saved {len(summary)} rows to {output_file}")
    return summary


def _install_stop_handler(driver: PaginationDriver):
    def handler(signum, frame):
        print("\nStop requested; finishing the current page ...", file=sys.stderr)
        driver.cancel()
    return signal.signal(signal.SIGINT, handler)


def _run_fetch(args, kind: ResourceKind) -> int:
    config = load_config(
        args.repo, kind, args.output, start_page=args.page,
        json_dir=args.json_dir,
        timeout=args.timeout,
        max_retries=args.retries,
        skip_failed_pages=args.skip_failed_pages,
        guard_field=GuardField.REMAINING if args.guard_remaining else GuardField.LIMIT,
        since=args.since,
        until=args.until,
    )
    print(f"Searching for {kind.value} on {config.repo} and saving to {config.output_file}")

    driver = build_driver(config)
    previous = _install_stop_handler(driver)
    try:
        result, state = export_resource(config, driver=driver)
    finally:
        signal.signal(signal.SIGINT, previous)

    print(f"Saved {result.records} {kind.value} from {result.pages_fetched} pages to {config.output_file}")
    if result.skipped_pages:
        print(f"Skipped pages: {', '.join(map(str, result.skipped_pages))}", file=sys.stderr)

    if args.summary:
        label = 'Commits' if kind is ResourceKind.COMMITS else 'Pull Requests'
        CsvSink().append_rows(args.summary, contributor_summary_rows(state, label))
        print(f"Saved contributor summary to {args.summary}")

    if args.node_ids and state.node_ids:
        CsvSink().append_rows(args.node_ids, node_id_rows(state))
        print(f"Saved {len(state.node_ids)} contributor node ids to {args.node_ids}")

    if result.cancelled:
        logger.warning("Run stopped before the last page; restart from page %s to resume",
                       config.start_page + result.pages_fetched + len(result.skipped_pages))
        return errors.EXIT_INTERRUPTED
    return errors.EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo_miner",
        description="Export GitHub pull requests/commits/issues to CSV and summarize them"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sub-commands: fetch-pulls, fetch-commits, fetch-issues
    for name, kind in FETCH_COMMANDS.items():
        c = subparsers.add_parser(name, help=f"Fetch {kind.value} page by page and save to CSV")
        c.add_argument("repo", help="Repository in owner/repo format")
        c.add_argument("output", help="Path to output CSV (appended to if it exists)")
        c.add_argument("page", nargs="?", default=1, help="Page to start from (default 1)")
        c.add_argument("--json-dir", default=DEFAULT_JSON_DIR,
                       help="Folder for raw JSON page checkpoints")
        c.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT,
                       help="Per-request timeout in seconds")
        c.add_argument("--retries", type=int, default=1,
                       help="Retries for a page that fails at the network level")
        c.add_argument("--skip-failed-pages", action="store_true",
                       help="Log and skip a page whose retries are exhausted")
        c.add_argument("--guard-remaining", action="store_true",
                       help="Check remaining calls instead of the rate-limit ceiling")
        c.add_argument("--since", help="Only records after this ISO 8601 date")
        c.add_argument("--until", help="Only commits before this ISO 8601 date")
        c.add_argument("--summary", help="Append per-contributor summary rows to this CSV")
        c.add_argument("--node-ids", help="Append contributor login and node id rows to this CSV")

    # Sub-command: reprocess
    c = subparsers.add_parser("reprocess", help="Rebuild a commit CSV from JSON checkpoints")
    c.add_argument("json_dir", help="Folder of JSON page checkpoints")
    c.add_argument("output", help="Path to output commits CSV")

    # Sub-command: summarize
    c = subparsers.add_parser("summarize", help="Append per-contributor counts of a CSV column")
    c.add_argument("csv", help="Exported CSV to read")
    c.add_argument("output", help="CSV to append the summary rows to")
    c.add_argument("--column", default="commit_committer_login", help="Column to count")
    c.add_argument("--label", default="Commits", help="Name used in the total row")

    # Sub-command: per-year
    c = subparsers.add_parser("per-year", help="Commits per year and author from JSON checkpoints")
    c.add_argument("json_dir", help="Folder of JSON page checkpoints")
    c.add_argument("--out", help="Optional CSV for the per-year breakdown")

    return parser


def main(argv=None) -> int:
    """
    Parse command-line arguments and dispatch to sub-commands.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        # Dispatch based on selected command
        if args.command in FETCH_COMMANDS:
            return _run_fetch(args, FETCH_COMMANDS[args.command])
        if args.command == "reprocess":
            count = reprocess_checkpoints(args.json_dir, args.output)
            print(f"Saved {count} commits to {args.output}")
        elif args.command == "summarize":
            state = summarize_csv(args.csv, args.column, args.output, args.label)
            print(f"Saved {len(state.counts)} contributors to {args.output}")
        elif args.command == "per-year":
            report_commits_per_year(args.json_dir, args.out)
    except errors.ExportError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return errors.EXIT_INTERRUPTED

    return errors.EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
