"""Edit operations over one conversation stream.

Each mutating call is a single blocking sequence: read, index, validate,
mutate, back up, replace. Concurrent calls against the same stream must be
serialized by the caller.
"""

from collections.abc import Iterable
from pathlib import Path

import structlog

from .compaction import SuccessGate, compact, keyword_gate
from .config import Clock, EditorConfig, system_clock
from .deletion import plan_deletion
from .errors import NotFoundError, PersistError, RecordValidationError
from .index import TranscriptIndex
from .models import OperationResult, RawLine, Record, ResultTag, StreamStats
from .parser import encode_stream, load_stream, read_stream_bytes, serialize_stream
from .writer import persist

logger = structlog.get_logger("cc_trim.operations")


def _failure(exc: RecordValidationError | NotFoundError | PersistError) -> OperationResult:
    if isinstance(exc, RecordValidationError):
        logger.warning("operation_rejected", reason="validation", ids=exc.offending_ids)
        return OperationResult(
            status=ResultTag.VALIDATION_ERROR,
            message=str(exc),
            offending_ids=exc.offending_ids,
            violations=exc.violations,
        )
    if isinstance(exc, NotFoundError):
        logger.warning("operation_rejected", reason="not_found", error=str(exc))
        return OperationResult(
            status=ResultTag.NOT_FOUND,
            message=str(exc),
            offending_ids=getattr(exc, "ids", []),
        )
    logger.warning("operation_failed", reason="io", error=str(exc))
    backup = getattr(exc, "backup_path", None)
    return OperationResult(
        status=ResultTag.IO_ERROR,
        message=str(exc),
        backup_path=str(backup) if backup else None,
        requires_reconciliation=exc.requires_reconciliation,
    )


def delete_records(
    stream: Path,
    record_ids: Iterable[str],
    *,
    config: EditorConfig | None = None,
    clock: Clock = system_clock,
) -> OperationResult:
    """Delete records, re-parent their descendants and persist the stream."""
    config = config or EditorConfig()
    requested = list(record_ids)
    try:
        entries = load_stream(stream)
        index = TranscriptIndex.build(entries)
        plan = plan_deletion(entries, index, requested)
        backup = persist(stream, plan.entries, clock=clock, backup_infix=config.backup_infix)
    except (RecordValidationError, NotFoundError, PersistError) as e:
        return _failure(e)

    return OperationResult(
        status=ResultTag.OK,
        message=f"Deleted {len(plan.deleted_ids)} record(s)",
        backup_path=str(backup),
        deleted=len(plan.deleted_ids),
        remaining=len(plan.entries),
        reparented=plan.reparented,
    )


def compact_record(
    stream: Path,
    record_id: str,
    *,
    config: EditorConfig | None = None,
    clock: Clock = system_clock,
    is_success: SuccessGate | None = None,
) -> OperationResult:
    """Compact the tool pairs of one record and persist the stream."""
    config = config or EditorConfig()
    gate = is_success or keyword_gate(config.failure_indicators)
    try:
        entries = load_stream(stream)
        index = TranscriptIndex.build(entries)
        plan = compact(
            entries, index, record_id, placeholder=config.placeholder, is_success=gate
        )
        backup = persist(stream, plan.entries, clock=clock, backup_infix=config.backup_infix)
    except (RecordValidationError, NotFoundError, PersistError) as e:
        return _failure(e)

    return OperationResult(
        status=ResultTag.OK,
        message="Tool content compacted successfully",
        backup_path=str(backup),
        remaining=len(plan.entries),
        compacted_ids=plan.compacted_ids,
    )


def export_stream(stream: Path, *, exclude_summaries: bool = False) -> bytes:
    """Return the stream bytes, optionally without summary records.

    Raises StreamNotFoundError or StreamReadError.
    """
    if not exclude_summaries:
        return read_stream_bytes(stream)

    kept = [e for e in load_stream(stream) if not (isinstance(e, Record) and e.is_summary)]
    return encode_stream(serialize_stream(kept))


def stream_stats(stream: Path) -> StreamStats:
    """Structural counts for one stream. Raises StreamNotFoundError or StreamReadError."""
    entries = load_stream(stream)
    records = [e for e in entries if isinstance(e, Record)]
    summaries = [r for r in records if r.is_summary]
    return StreamStats(
        total_records=len(records),
        summary_count=len(summaries),
        compaction_points=[s.leaf_id for s in summaries if s.leaf_id],
        has_thinking_blocks=any(r.has_thinking for r in records),
        has_tool_pairs=any(p.is_complete for p in TranscriptIndex.build(entries).pairs()),
        unparsed_lines=sum(1 for e in entries if isinstance(e, RawLine)),
    )
