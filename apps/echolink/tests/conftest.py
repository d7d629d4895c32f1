from __future__ import annotations

import pytest

from echolink.common.error_log import ErrorLog


@pytest.fixture
def error_log() -> ErrorLog:
    return ErrorLog(max_items=10)
