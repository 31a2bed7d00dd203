"""
Shared pytest fixtures for driftgraph.
"""

from pathlib import Path

import pytest
from loguru import logger


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def write_project(tmp_path):
    """
    Write a small project from a {relative path: content} mapping.

    Returns the resolved project root.
    """

    def write(files: dict[str, str], root: Path | None = None) -> Path:
        base = (root or tmp_path / "project").resolve()
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return base

    return write
