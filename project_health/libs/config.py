import os
from logging import Logger
from typing import Any

import yaml
from simple_logger.logger import get_logger

DEFAULT_DATA_DIR = "/home/app/data"


class Config:
    def __init__(self, logger: Logger | None = None, required: bool = True) -> None:
        self.logger = logger or get_logger(name="config")
        self.data_dir: str = os.environ.get("PROJECT_HEALTH_DATA_DIR", DEFAULT_DATA_DIR)
        self.config_path: str = os.path.join(self.data_dir, "config.yaml")
        self.required = required
        if required:
            self.exists()

    def exists(self) -> None:
        if not os.path.isfile(self.config_path):
            raise FileNotFoundError(f"Config file {self.config_path} not found")

    @property
    def root_data(self) -> dict[str, Any]:
        if not self.required and not os.path.isfile(self.config_path):
            return {}

        try:
            with open(self.config_path) as fd:
                return yaml.safe_load(fd) or {}
        except FileNotFoundError:
            self.logger.exception(f"Config file not found: {self.config_path}")
            raise
        except yaml.YAMLError:
            self.logger.exception(f"Config file has invalid YAML syntax: {self.config_path}")
            raise
        except PermissionError:
            self.logger.exception(f"Permission denied reading config file: {self.config_path}")
            raise

    def get_value(self, value: str, return_on_none: Any = None) -> Any:
        """
        Get value from config

        Supports dot notation for nested values (e.g., "graphql.retry-count")
        """
        result = self._get_nested_value(value, self.root_data)
        if result is not None:
            return result

        return return_on_none

    def _get_nested_value(self, key: str, data: dict[str, Any]) -> Any:
        """
        Get value from nested dict using dot notation.

        Args:
            key: Key with optional dot notation (e.g., "graphql.timeout")
            data: Dictionary to search

        Returns:
            Value if found, None otherwise
        """
        keys = key.split(".")
        current = data

        for k in keys:
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return None

        return current

    def get_github_token(self) -> str | None:
        """
        Get the GitHub token used for metric queries.

        Order of precedence:
            1. GITHUB_TOKEN environment variable
            2. `github-token` in config.yaml
        """
        return os.environ.get("GITHUB_TOKEN") or self.get_value("github-token")
