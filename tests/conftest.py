"""
Shared fixtures for reqcheck tests.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_reqcheck_logger():
    """Undo setup_logging so later tests see records through caplog."""
    yield
    logger = logging.getLogger("reqcheck")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
