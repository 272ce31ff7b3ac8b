"""JSONL parser and serializer for Claude Code transcripts."""

import json
from pathlib import Path
from typing import Any

import structlog

from .errors import StreamNotFoundError, StreamReadError
from .models import (
    BlockType,
    ContentBlock,
    Entry,
    ImageBlock,
    OpaqueBlock,
    RawLine,
    Record,
    RecordKind,
    TextBlock,
    ThinkingBlock,
    ToolInvocationBlock,
    ToolResultBlock,
)

logger = structlog.get_logger("cc_trim.parser")

STRUCTURAL_TYPES = {kind.value for kind in RecordKind}

STREAM_ENCODING = "utf-8"
STREAM_ERRORS = "surrogateescape"


def get_content_blocks(message: Any) -> list:
    """Extract raw content blocks from a message payload."""
    if not isinstance(message, dict):
        return []
    content = message.get("content", [])
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    if not isinstance(content, list):
        return []
    return content


def parse_block(data: Any) -> ContentBlock:
    """Turn one raw content item into a typed block. Unknown shapes become opaque."""
    if not isinstance(data, dict):
        return OpaqueBlock(raw=data)

    block_type = data.get("type")
    if block_type == BlockType.TEXT:
        return TextBlock(body=str(data.get("text", "")))
    if block_type == BlockType.THINKING:
        return ThinkingBlock(body=str(data.get("thinking", "")))
    if block_type == BlockType.TOOL_USE and isinstance(data.get("id"), str):
        return ToolInvocationBlock(
            invocation_id=data["id"],
            name=str(data.get("name", "")),
            input=data.get("input"),
        )
    if block_type == BlockType.TOOL_RESULT and isinstance(data.get("tool_use_id"), str):
        return ToolResultBlock(
            invocation_id=data["tool_use_id"],
            body=data.get("content"),
            is_error=data.get("is_error") is True,
        )
    if block_type == BlockType.IMAGE:
        return ImageBlock(source=data.get("source"))
    return OpaqueBlock(block_type=block_type if isinstance(block_type, str) else None, raw=data)


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_line(text: str, position: int) -> Entry:
    """Parse one stream line. Never raises; failures come back as RawLine."""
    try:
        text.encode(STREAM_ENCODING)
    except UnicodeEncodeError:
        return RawLine(position=position, text=text, reason="invalid UTF-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return RawLine(position=position, text=text, reason=f"malformed JSON: {e}")

    if not isinstance(data, dict):
        return RawLine(position=position, text=text, reason="not a JSON object")

    kind = data.get("type")
    if not isinstance(kind, str) or kind not in STRUCTURAL_TYPES:
        return RawLine(position=position, text=text, reason=f"non-structural record type {kind!r}")

    record_id = _optional_str(data.get("uuid"))
    if kind == RecordKind.SUMMARY:
        return Record(
            id=record_id,
            parent_id=_optional_str(data.get("parentUuid")),
            kind=RecordKind.SUMMARY,
            summary_text=data.get("summary") if isinstance(data.get("summary"), str) else None,
            leaf_id=_optional_str(data.get("leafUuid")),
            timestamp=_optional_str(data.get("timestamp")),
            position=position,
            raw=data,
            line=text,
        )

    if record_id is None:
        return RawLine(position=position, text=text, reason=f"{kind} record without uuid")

    return Record(
        id=record_id,
        parent_id=_optional_str(data.get("parentUuid")),
        kind=RecordKind(kind),
        blocks=[parse_block(b) for b in get_content_blocks(data.get("message"))],
        timestamp=_optional_str(data.get("timestamp")),
        position=position,
        raw=data,
        line=text,
    )


def parse_stream(text: str) -> list[Entry]:
    """Parse raw stream text into ordered entries, skipping blank lines."""
    entries: list[Entry] = []
    for line_num, line in enumerate(text.split("\n"), 1):
        if not line.strip():
            continue
        entry = parse_line(line, len(entries))
        if isinstance(entry, RawLine):
            logger.debug("unparsed_line", line=line_num, reason=entry.reason)
        entries.append(entry)
    return entries


def load_stream(path: Path) -> list[Entry]:
    """Read and parse a stream file."""
    return parse_stream(read_stream_text(path))


def read_stream_bytes(path: Path) -> bytes:
    """Raises StreamNotFoundError, or StreamReadError when the read fails."""
    if not path.is_file():
        raise StreamNotFoundError(path)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise StreamReadError(path, e) from e


def read_stream_text(path: Path) -> str:
    # Undecodable bytes survive as lone surrogates and become RawLines
    return read_stream_bytes(path).decode(STREAM_ENCODING, errors=STREAM_ERRORS)


def encode_stream(text: str) -> bytes:
    return text.encode(STREAM_ENCODING, errors=STREAM_ERRORS)


def serialize_entry(entry: Entry) -> str:
    """Render one entry back to a stream line."""
    if isinstance(entry, RawLine):
        return entry.text
    if entry.line is not None:
        return entry.line
    return json.dumps(entry.raw, separators=(",", ":"), ensure_ascii=False)


def serialize_stream(entries: list[Entry]) -> str:
    """Join entries one per line, with a trailing newline when non-empty."""
    lines = [serialize_entry(e) for e in entries]
    return "\n".join(lines) + ("\n" if lines else "")
