"""Pytest configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
import structlog
from builders import to_jsonl

FIXED_MILLIS = 1_768_644_000_000


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def simple_session(fixtures_dir: Path) -> Path:
    """Return path to simple.jsonl fixture."""
    return fixtures_dir / "simple.jsonl"


@pytest.fixture
def with_tools_session(fixtures_dir: Path) -> Path:
    """Return path to with_tools.jsonl fixture."""
    return fixtures_dir / "with_tools.jsonl"


@pytest.fixture
def with_compaction_session(fixtures_dir: Path) -> Path:
    """Return path to with_compaction.jsonl fixture."""
    return fixtures_dir / "with_compaction.jsonl"


@pytest.fixture
def writable_copy(tmp_path: Path) -> Callable[[Path], Path]:
    """Copy a fixture into tmp_path so mutating operations can run on it."""

    def copy(src: Path) -> Path:
        dest = tmp_path / src.name
        dest.write_bytes(src.read_bytes())
        return dest

    return copy


@pytest.fixture
def write_stream(tmp_path: Path) -> Callable[[list[dict]], Path]:
    """Write records as a JSONL stream and return its path."""

    def write(records: list[dict], name: str = "session.jsonl") -> Path:
        path = tmp_path / name
        path.write_text(to_jsonl(records), encoding="utf-8")
        return path

    return write


@pytest.fixture
def fixed_clock() -> Callable[[], int]:
    """Clock frozen at a known unix-millis value."""
    return lambda: FIXED_MILLIS
