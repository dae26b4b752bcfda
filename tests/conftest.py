from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest


FIXTURES_DIR = Path(__file__).parent / "fixtures"


_MINIMAL_DOCUMENT: dict[str, Any] = {
    "network": {"name": "TestNet"},
    "server": {
        "name": "irc.test.net",
        "listen": [":6667"],
    },
    "datastore": {"path": "ircd.db"},
    "limits": {
        "nicklen": 32,
        "channellen": 64,
        "awaylen": 200,
        "kicklen": 390,
        "topiclen": 390,
        "linelen": {"tags": 2048, "rest": 512},
    },
}


@pytest.fixture
def minimal_document() -> dict[str, Any]:
    return copy.deepcopy(_MINIMAL_DOCUMENT)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR
