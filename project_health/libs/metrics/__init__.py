"""Repository health metrics computed from the GitHub GraphQL API."""

from collections.abc import Awaitable, Callable

from project_health.libs.exceptions import MetricNotFoundError
from project_health.libs.metrics.common import MetricResult
from project_health.libs.metrics.issue_counts import get_issue_counts
from project_health.libs.metrics.review_coverage import get_review_coverage
from project_health.libs.metrics.review_latency import get_review_latency

MetricFunction = Callable[..., Awaitable[MetricResult]]

METRICS: dict[str, MetricFunction] = {
    "review-coverage": get_review_coverage,
    "review-latency": get_review_latency,
    "issue-counts": get_issue_counts,
}


def get_metric(name: str) -> MetricFunction:
    """Look up a metric by its command-line name."""
    try:
        return METRICS[name]
    except KeyError:
        raise MetricNotFoundError(f"Metric not found: {name}. Available metrics: {', '.join(METRICS)}") from None


__all__ = [
    "METRICS",
    "MetricFunction",
    "MetricResult",
    "get_issue_counts",
    "get_metric",
    "get_review_coverage",
    "get_review_latency",
]
