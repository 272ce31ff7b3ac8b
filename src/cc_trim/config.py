"""Configuration for cc-trim operations."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

Clock = Callable[[], int]

DEFAULT_PLACEHOLDER = "Tool executed successfully"

DEFAULT_FAILURE_INDICATORS = (
    "error",
    "failed",
    "exception",
    "traceback",
    "stderr",
    "not found",
    "permission denied",
    "timeout",
    "invalid",
    "unable to",
    "could not",
    "cannot",
    "missing",
)


def system_clock() -> int:
    """Current time in unix milliseconds."""
    return time.time_ns() // 1_000_000


class EditorConfig(BaseModel):
    """Settings passed explicitly into each edit operation."""

    base_dir: Path = Field(
        default_factory=lambda: Path.home() / ".claude" / "projects",
        description="Directory holding one sub-directory of conversation streams per project.",
    )

    placeholder: str = Field(
        default=DEFAULT_PLACEHOLDER,
        description="Text written over tool inputs and results by compaction.",
    )

    failure_indicators: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FAILURE_INDICATORS),
        description="Case-insensitive substrings that mark a tool result as failed.",
    )

    backup_infix: str = ".backup"
    """Inserted between the stream path and the timestamp in backup names."""

    @field_validator("placeholder")
    @classmethod
    def validate_placeholder(cls, value: str) -> str:
        if not value:
            raise ValueError("placeholder must not be empty")
        return value

    @field_validator("failure_indicators")
    @classmethod
    def validate_indicators(cls, value: list[str]) -> list[str]:
        cleaned = [v.lower() for v in value]
        if not cleaned or any(not v.strip() for v in cleaned):
            raise ValueError("failure_indicators must be a non-empty list of non-blank strings")
        return cleaned
