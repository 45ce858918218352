"""Command line entry point for repository health metrics.

Usage:
    project-health-metric --metric review-coverage --org Polymer --repo polymer
    project-health-metric --metric issue-counts --org WebComponents --raw
    project-health-metric --metric review-latency --org Polymer --since 2017-01-01

The GitHub token is read from --token, $GITHUB_TOKEN or `github-token` in config.yaml.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from logging import Logger

from project_health.libs.config import Config
from project_health.libs.exceptions import (
    MetricArgumentError,
    MetricNotFoundError,
    NoApiTokenError,
    SchemaMismatchError,
)
from project_health.libs.graphql.graphql_client import GraphQLError
from project_health.libs.metrics import METRICS, MetricResult, get_metric
from project_health.libs.metrics.common import validate_since
from project_health.libs.metrics.issue_counts import IssueCountResult
from project_health.utils.helpers import get_graphql_client, get_logger_with_params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-health-metric",
        description="Measure the health of a GitHub org or repository",
    )
    parser.add_argument("--metric", help=f"Name of the metric to measure ({', '.join(METRICS)})")
    parser.add_argument("--org", help="Name of the GitHub org to measure")
    parser.add_argument("--repo", help="Name (or owner/name) of the GitHub repo to measure")
    parser.add_argument(
        "--raw",
        action="store_true",
        default=False,
        help="Dumps the raw data relevant to the provided metric",
    )
    parser.add_argument("--since", help="Only measure activity since this ISO-8601 date")
    parser.add_argument("--token", help="GitHub token (defaults to $GITHUB_TOKEN)")
    return parser


def format_result(result: MetricResult, raw: bool) -> str:
    if not raw:
        return result.summary()

    if isinstance(result, IssueCountResult):
        return "\n".join(
            "\t".join([point.date.isoformat(), str(point.num_opened), str(point.num_closed)])
            for point in result.time_series()
        )

    return json.dumps(result.raw_data(), indent=2)


async def run(argv: Sequence[str] | None = None, logger: Logger | None = None) -> str:
    """
    Parse arguments, compute the requested metric and return its rendering.

    Raises:
        MetricArgumentError: If --metric or --org is missing, or --since is not a date
        MetricNotFoundError: If the metric name is unknown
        NoApiTokenError: If no GitHub token is available
    """
    args = build_parser().parse_args(argv)

    if not args.metric:
        raise MetricArgumentError("No metric specified")

    if not args.org:
        raise MetricArgumentError("No GitHub org specified")

    metric = get_metric(args.metric)
    since = validate_since(args.since)

    logger = logger or get_logger_with_params()
    config = Config(logger=logger, required=False)

    async with get_graphql_client(config=config, logger=logger, token=args.token) as client:
        result = await metric(client, org=args.org, repo=args.repo, since=since)

    return format_result(result, raw=args.raw)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        output = asyncio.run(run(argv))
    except (MetricArgumentError, MetricNotFoundError, NoApiTokenError, SchemaMismatchError, GraphQLError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
