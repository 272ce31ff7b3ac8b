"""Validate and plan the deletion of records from a stream."""

from collections.abc import Iterable

import structlog
from pydantic import BaseModel

from .errors import RecordNotFoundError, RecordValidationError
from .index import TranscriptIndex
from .models import Entry, RawLine, Record, Violation

logger = structlog.get_logger("cc_trim.deletion")


class DeletionPlan(BaseModel):
    """New entry list produced by a validated deletion."""

    entries: list[Entry]
    deleted_ids: list[str]
    reparented: int = 0
    reparent_map: dict[str, str | None] = {}


def validate_deletion(index: TranscriptIndex, requested: set[str]) -> list[Violation]:
    """Collect every reason the requested ids cannot be deleted together."""
    violations: list[Violation] = []
    if not requested:
        return [Violation(kind="empty_request", message="No record ids were given")]

    ordered = sorted(requested, key=lambda rid: index.positions[rid])
    records = [index.record(rid) for rid in ordered]

    with_thinking = [r.id for r in records if r is not None and r.has_thinking]
    if with_thinking:
        violations.append(
            Violation(
                kind="thinking",
                ids=with_thinking,
                message="Cannot delete messages with thinking blocks",
            )
        )

    summaries = [r.id for r in records if r is not None and r.is_summary]
    if summaries:
        violations.append(
            Violation(
                kind="summary",
                ids=summaries,
                message="Cannot delete summary messages as they maintain conversation integrity",
            )
        )

    for pair in index.pairs():
        if not pair.is_complete:
            continue
        surviving_results = [rid for rid in pair.result_record_ids if rid not in requested]
        use_requested = pair.invocation_record_id in requested
        if use_requested and surviving_results:
            message = (
                f"Tool pair {pair.invocation_id} is split: {pair.invocation_record_id} is "
                f"selected but its result record(s) {', '.join(surviving_results)} are not"
            )
        elif not use_requested and not surviving_results:
            message = (
                f"Tool pair {pair.invocation_id} is split: {', '.join(pair.result_record_ids)} "
                f"is selected but its counterpart {pair.invocation_record_id} is not"
            )
        else:
            continue
        violations.append(
            Violation(
                kind="broken_pair",
                ids=[pair.invocation_record_id, *pair.result_record_ids],
                message=message,
            )
        )
    return violations


def find_new_parent(entries: list[Entry], pos: int, deleted: set[str]) -> str | None:
    """Walk back from ``pos`` in original order to the nearest surviving ancestor.

    A summary record stops the walk; the record then hangs off the summary's
    leaf id, or becomes a root if there is none.
    """
    for j in range(pos - 1, -1, -1):
        prev = entries[j]
        if isinstance(prev, RawLine):
            continue
        if prev.is_summary:
            if prev.leaf_id and prev.leaf_id not in deleted:
                return prev.leaf_id
            return None
        if prev.id in deleted:
            continue
        return prev.id
    return None


def with_parent(rec: Record, parent_id: str | None) -> Record:
    raw = dict(rec.raw)
    raw["parentUuid"] = parent_id
    return rec.model_copy(update={"parent_id": parent_id, "raw": raw, "line": None})


def plan_deletion(
    entries: list[Entry],
    index: TranscriptIndex,
    requested_ids: Iterable[str],
) -> DeletionPlan:
    """Remove the requested records and re-parent their orphaned descendants.

    ``entries`` must be in original stream order. Raises
    RecordNotFoundError for unknown ids and RecordValidationError with every
    violation found; nothing is changed in either case.
    """
    requested = set(requested_ids)
    unknown = [rid for rid in requested if rid not in index]
    if unknown:
        raise RecordNotFoundError(sorted(unknown))

    violations = validate_deletion(index, requested)
    if violations:
        raise RecordValidationError(violations)

    kept: list[Entry] = []
    deleted_ids: list[str] = []
    reparent_map: dict[str, str | None] = {}
    reparented = 0

    orphaned = index.orphaned_by(requested)
    for i, entry in enumerate(entries):
        if isinstance(entry, RawLine):
            kept.append(entry)
            continue
        if entry.id is not None and entry.id in requested:
            deleted_ids.append(entry.id)
            continue
        if i in orphaned:
            new_parent = find_new_parent(entries, i, requested)
            if entry.id is not None:
                reparent_map[entry.id] = new_parent
            entry = with_parent(entry, new_parent)
            reparented += 1
        kept.append(entry)

    logger.info(
        "deletion_planned",
        deleted=len(deleted_ids),
        remaining=len(kept),
        reparented=reparented,
    )
    return DeletionPlan(
        entries=kept,
        deleted_ids=deleted_ids,
        reparented=reparented,
        reparent_map=reparent_map,
    )
