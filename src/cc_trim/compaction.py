"""Replace the payloads of successful tool calls with a placeholder."""

from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import BaseModel

from .config import DEFAULT_FAILURE_INDICATORS, DEFAULT_PLACEHOLDER
from .errors import RecordNotFoundError, RecordValidationError
from .index import TranscriptIndex
from .models import BlockType, Entry, Record, Violation
from .parser import get_content_blocks, parse_block

logger = structlog.get_logger("cc_trim.compaction")

SuccessGate = Callable[[str], bool]


class CompactionPlan(BaseModel):
    """New entry list produced by a validated compaction."""

    entries: list[Entry]
    compacted_ids: list[str]
    invocation_ids: list[str]


def keyword_gate(indicators: Iterable[str] = DEFAULT_FAILURE_INDICATORS) -> SuccessGate:
    """Success predicate that fails on any case-insensitive indicator substring.

    Plain-text results that merely mention a word like "error" are treated as
    failures too; pass a custom predicate to ``compact`` where that matters.
    """
    lowered = [i.lower() for i in indicators]

    def is_success(text: str) -> bool:
        content = text.lower()
        return not any(indicator in content for indicator in lowered)

    return is_success


def result_text(body: Any) -> str:
    """Flatten a tool_result content value to plain text."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, list):
        texts = []
        for item in body:
            if isinstance(item, dict):
                texts.append(str(item.get("text", "")))
            elif isinstance(item, str):
                texts.append(item)
        return "\n".join(texts)
    return str(body)


def _compacted_record(rec: Record, invocation_ids: set[str], placeholder: str) -> Record:
    message = rec.raw.get("message")
    message = dict(message) if isinstance(message, dict) else {}
    content = []
    for item in get_content_blocks(message):
        if isinstance(item, dict):
            if item.get("type") == BlockType.TOOL_USE and item.get("id") in invocation_ids:
                item = {**item, "input": placeholder}
            elif (
                item.get("type") == BlockType.TOOL_RESULT
                and item.get("tool_use_id") in invocation_ids
            ):
                item = {**item, "content": placeholder}
        content.append(item)
    message["content"] = content
    raw = {**rec.raw, "message": message}
    return rec.model_copy(
        update={"raw": raw, "blocks": [parse_block(b) for b in content], "line": None}
    )


def compact(
    entries: list[Entry],
    index: TranscriptIndex,
    target_id: str,
    *,
    placeholder: str = DEFAULT_PLACEHOLDER,
    is_success: SuccessGate | None = None,
) -> CompactionPlan:
    """Compact every tool pair the target record takes part in.

    Both sides of each pair are rewritten, or nothing is: any result that
    fails the success gate rejects the whole compaction.
    """
    gate = is_success or keyword_gate()

    target = index.record(target_id)
    if target is None:
        raise RecordNotFoundError([target_id])
    if target.is_summary:
        raise RecordValidationError(
            [
                Violation(
                    kind="summary",
                    ids=[target_id],
                    message="Cannot compact summary messages",
                )
            ]
        )
    if not target.has_tool_content:
        raise RecordNotFoundError([target_id], f"Message {target_id} has no tool content")

    invocation_ids: list[str] = []
    for block in target.invocations + target.results:
        if block.invocation_id not in invocation_ids:
            invocation_ids.append(block.invocation_id)

    missing = []
    affected: list[str] = [target_id]
    for inv_id in invocation_ids:
        if inv_id not in index.invocation_owner:
            missing.append(inv_id)
            continue
        pair = index.pair(inv_id)
        members = [pair.invocation_record_id, *pair.result_record_ids]
        if not pair.is_complete or target_id not in members:
            missing.append(inv_id)
            continue
        for rid in members:
            if rid not in affected:
                affected.append(rid)
    if missing:
        raise RecordNotFoundError(
            missing, f"Tool pair not found for invocation(s): {', '.join(missing)}"
        )

    wanted = set(invocation_ids)
    violations: list[Violation] = []
    for rid in affected:
        rec = index.record(rid)
        if rec is None:
            continue
        for block in rec.results:
            if block.invocation_id not in wanted:
                continue
            if block.is_error or not gate(result_text(block.body)):
                violations.append(
                    Violation(
                        kind="failed_result",
                        ids=[rid],
                        message=(
                            f"Cannot compact tool with errors: result of "
                            f"{block.invocation_id} in {rid} indicates failure"
                        ),
                    )
                )
    if violations:
        raise RecordValidationError(violations)

    new_entries = list(entries)
    for rid in affected:
        rec = index.record(rid)
        if rec is not None:
            new_entries[index.positions[rid]] = _compacted_record(rec, wanted, placeholder)

    logger.info("compaction_planned", target=target_id, records=affected, invocations=invocation_ids)
    return CompactionPlan(entries=new_entries, compacted_ids=affected, invocation_ids=invocation_ids)
