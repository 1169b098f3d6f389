from typing import Any, Dict, List

import pytest


class RecordingSink:
    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    def record(self, tool: str, **fields: Any) -> None:
        self.records.append({"tool": tool, **fields})


@pytest.fixture
def audit_sink():
    return RecordingSink()


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite://{tmp_path / 'gateway_test.db'}"
