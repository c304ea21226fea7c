from __future__ import annotations

import logging
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def _reset_taskmake_logger() -> Iterator[None]:
    # run_cli binds a handler to the stderr of the test that called it
    yield
    logger = logging.getLogger("taskmake")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
