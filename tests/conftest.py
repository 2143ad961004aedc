import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def _restore_logging():
    """setup_logging() rewires the root logger and structlog globally."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
