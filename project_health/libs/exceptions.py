class MetricNotFoundError(Exception):
    """Raised when a metric name does not match any known metric."""

    pass


class MetricArgumentError(Exception):
    """Raised when a metric is invoked without its required arguments."""

    pass


class NoApiTokenError(Exception):
    """Raised when no API token is available for GitHub API operations."""

    pass


class SchemaMismatchError(Exception):
    """Raised when a GraphQL response does not have the shape a metric relies on."""

    pass
