from __future__ import annotations

import os
from logging import Logger

from simple_logger.logger import get_logger

from project_health.libs.config import Config
from project_health.libs.exceptions import NoApiTokenError
from project_health.libs.graphql.graphql_client import GraphQLClient


def get_logger_with_params(log_file_name: str | None = None) -> Logger:
    mask_sensitive_patterns: list[str] = [
        "token",
        "github_token",
        "github-token",
        "GITHUB_TOKEN",
        "access_token",
        "client_secret",
        "secret",
        "password",
        "cookie",
        "Authorization",
    ]

    _config = Config(required=False)

    log_level: str = _config.get_value(value="log-level", return_on_none="INFO")
    log_file: str | None = log_file_name or _config.get_value(value="log-file")
    mask_sensitive: bool = _config.get_value(value="mask-sensitive-data", return_on_none=True)

    if log_file and not log_file.startswith("/"):
        log_file_path = os.path.join(_config.data_dir, "logs")

        if not os.path.isdir(log_file_path):
            os.makedirs(log_file_path, exist_ok=True)

        log_file = os.path.join(log_file_path, log_file)

    # One logger per log file so a single handler owns file rotation
    logger_cache_key = os.path.basename(log_file) if log_file else "project-health"

    return get_logger(
        name=logger_cache_key,
        filename=log_file,
        level=log_level,
        file_max_bytes=1024 * 1024 * 10,
        mask_sensitive=mask_sensitive,
        mask_sensitive_patterns=mask_sensitive_patterns,
        console=True,
    )


def get_graphql_client(config: Config, logger: Logger, token: str | None = None) -> GraphQLClient:
    """
    Build a GraphQLClient from configuration.

    Args:
        config: Loaded configuration
        logger: Logger passed to the client
        token: Explicit token, takes precedence over environment and config

    Raises:
        NoApiTokenError: If no token is configured anywhere
    """
    token = token or config.get_github_token()
    if not token:
        raise NoApiTokenError("No GitHub token found. Set GITHUB_TOKEN or `github-token` in config.yaml")

    return GraphQLClient(
        token=token,
        logger=logger,
        retry_count=int(config.get_value("graphql.retry-count", return_on_none=3)),
        timeout=int(config.get_value("graphql.timeout", return_on_none=90)),
    )
