from __future__ import annotations

import pytest

from config import AppSettings, EngineSecrets
from utils.store import PreferenceStore

from .fakes import RecordingSleep


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the developer's environment variables."""
    return AppSettings(
        secrets=EngineSecrets(gemini_api_key=None, openai_api_key=None, claude_api_key=None),
        preferences_path=tmp_path / "preferences.json",
        log_file=None,
    )


@pytest.fixture
def store():
    return PreferenceStore(None)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def log_lines():
    """Messages emitted through loguru while the test runs."""
    from loguru import logger

    lines = []
    handler_id = logger.add(lambda message: lines.append(message.record["message"]), level="DEBUG")
    yield lines
    logger.remove(handler_id)
