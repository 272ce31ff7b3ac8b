"""cc-trim: Edit Claude Code transcripts without breaking their structure."""

from .compaction import compact, keyword_gate
from .config import EditorConfig
from .deletion import plan_deletion
from .index import TranscriptIndex, integrity_problems
from .models import OperationResult, RawLine, Record, ResultTag, StreamStats, ToolPair
from .operations import compact_record, delete_records, export_stream, stream_stats
from .parser import load_stream, parse_stream, serialize_stream
from .writer import persist

__all__ = [
    "EditorConfig",
    "OperationResult",
    "RawLine",
    "Record",
    "ResultTag",
    "StreamStats",
    "ToolPair",
    "TranscriptIndex",
    "compact",
    "compact_record",
    "delete_records",
    "export_stream",
    "integrity_problems",
    "keyword_gate",
    "load_stream",
    "parse_stream",
    "persist",
    "plan_deletion",
    "serialize_stream",
    "stream_stats",
]
