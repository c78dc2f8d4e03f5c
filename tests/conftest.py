"""
Shared pytest fixtures for toolplan tests.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest

from toolplan.utils import logging_config
from toolplan.utils.config import ConfigManager

# Test data
# task_2 references task_0 explicitly; task_1 is independent
SAMPLE_BATCH: List[Dict[str, Any]] = [
    {"toolName": "sf_create_lead", "arguments": {"LastName": "Doe", "Company": "Acme"}},
    {"toolName": "web_search", "arguments": {"query": "Acme news"}},
    {"toolName": "sf_create_task", "arguments": {"WhoId": "$task_0.leadId", "Subject": "Call"}},
]

INDEPENDENT_BATCH: List[Dict[str, Any]] = [
    {"toolName": "sf_search", "arguments": {"term": "Acme"}},
    {"toolName": "research_company", "arguments": {"name": "Acme"}},
]


@pytest.fixture
def sample_batch() -> List[Dict[str, Any]]:
    """Three calls where only the last one depends on the first."""
    return [dict(call) for call in SAMPLE_BATCH]


@pytest.fixture
def independent_batch() -> List[Dict[str, Any]]:
    """Two calls with no dependency between them."""
    return [dict(call) for call in INDEPENDENT_BATCH]


@pytest.fixture(autouse=True)
def temp_config_dir(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point the config manager at an empty config directory and clear overrides."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    for key in list(os.environ):
        if key.startswith("TOOLPLAN_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("TOOLPLAN_CONFIG_DIR", str(config_dir))

    ConfigManager.reset()
    yield config_dir
    # Reset singleton for other tests
    ConfigManager.reset()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo logging configuration done by the CLI so caplog keeps working."""
    yield
    logger = logging.getLogger("toolplan")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    logging_config._configured = False


class FakeTools:
    """
    Async stand-in for a tool backend.

    Records every call with its (already resolved) arguments and tracks how many
    calls are in flight at once.
    """

    def __init__(
        self,
        delay: float = 0.01,
        failing: Optional[List[str]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.delay = delay
        self.failing = set(failing or [])
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, tool_name: str, arguments: Any) -> Any:
        self.calls.append((tool_name, arguments))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(tool_name, self.delay))
            if tool_name in self.failing:
                raise RuntimeError(f"{tool_name} exploded")
            return {"id": f"{tool_name}-id", "leadId": "00Q1", "tool": tool_name}
        finally:
            self.in_flight -= 1

    def arguments_for(self, tool_name: str) -> Any:
        return next(args for name, args in self.calls if name == tool_name)


@pytest.fixture
def fake_tools() -> FakeTools:
    return FakeTools()


@pytest.fixture
def tools_factory():
    """Build a :class:`FakeTools` with custom delays or failures."""
    return FakeTools
