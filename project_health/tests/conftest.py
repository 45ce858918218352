import logging as python_logging
import os

import pytest

os.environ["PROJECT_HEALTH_DATA_DIR"] = os.path.join(os.path.dirname(__file__), "manifests")
os.environ.pop("GITHUB_TOKEN", None)


@pytest.fixture
def test_logger() -> python_logging.Logger:
    # Standard Python logger for caplog compatibility
    logger = python_logging.getLogger("project-health-tests")
    logger.setLevel(python_logging.DEBUG)
    return logger
