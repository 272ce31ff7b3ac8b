"""Domain models for cc-trim."""

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field, SkipValidation


class RecordKind(str, Enum):
    """Structural record types in a transcript stream."""

    USER = "user"
    ASSISTANT = "assistant"
    SUMMARY = "summary"


class BlockType(str, Enum):
    """Types of content blocks inside a user or assistant message."""

    TEXT = "text"
    THINKING = "thinking"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    IMAGE = "image"


class TextBlock(BaseModel):
    body: str = ""


class ThinkingBlock(BaseModel):
    """Reasoning block. A record holding one can never be deleted."""

    body: str = ""


class ToolInvocationBlock(BaseModel):
    invocation_id: str
    name: str = ""
    input: Any = None


class ToolResultBlock(BaseModel):
    invocation_id: str
    body: Any = None  # str or list of content parts
    is_error: bool = False


class ImageBlock(BaseModel):
    source: Any = None


class OpaqueBlock(BaseModel):
    """Block of an unrecognised type, kept as raw data."""

    block_type: str | None = None
    raw: Any = None


ContentBlock = Union[
    TextBlock,
    ThinkingBlock,
    ToolInvocationBlock,
    ToolResultBlock,
    ImageBlock,
    OpaqueBlock,
]


class Record(BaseModel):
    """One structurally parsed transcript entry."""

    id: str | None = None  # summaries may carry no uuid
    parent_id: str | None = None
    kind: RecordKind
    blocks: list[ContentBlock] = []
    summary_text: str | None = None
    leaf_id: str | None = None  # last record preceding the compaction
    timestamp: str | None = None
    position: int  # index in the original entry sequence
    raw: dict[str, Any]
    line: str | None = None  # verbatim source, None once edited

    @property
    def is_summary(self) -> bool:
        return self.kind == RecordKind.SUMMARY

    @property
    def has_thinking(self) -> bool:
        return any(isinstance(b, ThinkingBlock) for b in self.blocks)

    @property
    def invocations(self) -> list[ToolInvocationBlock]:
        return [b for b in self.blocks if isinstance(b, ToolInvocationBlock)]

    @property
    def results(self) -> list[ToolResultBlock]:
        return [b for b in self.blocks if isinstance(b, ToolResultBlock)]

    @property
    def has_tool_content(self) -> bool:
        return bool(self.invocations or self.results)


class RawLine(BaseModel):
    """A stream line that failed structural parsing; passed through verbatim."""

    position: int
    # May hold lone surrogates standing in for undecodable bytes
    text: SkipValidation[str]
    reason: str


Entry = Union[Record, RawLine]


class ToolPair(BaseModel):
    """An invocation and the records holding its result, once one has appeared.

    A stream normally carries one result per invocation; retried or resumed
    sessions can carry more.
    """

    invocation_id: str
    invocation_record_id: str
    result_record_ids: list[str] = []

    @property
    def result_record_id(self) -> str | None:
        return self.result_record_ids[0] if self.result_record_ids else None

    @property
    def is_complete(self) -> bool:
        return bool(self.result_record_ids)


class ResultTag(str, Enum):
    """Outcome tag reported by every operation."""

    OK = "ok"
    VALIDATION_ERROR = "validationError"
    NOT_FOUND = "notFound"
    IO_ERROR = "ioError"


class Violation(BaseModel):
    """One reason a requested edit cannot be applied."""

    kind: str  # thinking | summary | broken_pair | failed_result | empty_request
    message: str
    ids: list[str] = []


class OperationResult(BaseModel):
    """Structured result of a mutating operation."""

    status: ResultTag
    message: str
    offending_ids: list[str] = []
    violations: list[Violation] = []
    backup_path: str | None = None
    deleted: int = 0
    remaining: int = 0
    reparented: int = 0
    compacted_ids: list[str] = []
    requires_reconciliation: bool = False

    @property
    def ok(self) -> bool:
        return self.status == ResultTag.OK


class StreamStats(BaseModel):
    """Structural summary of one conversation stream."""

    total_records: int
    summary_count: int
    compaction_points: list[str] = Field(
        default_factory=list, description="leafUuids where compaction occurred"
    )
    has_thinking_blocks: bool = False
    has_tool_pairs: bool = False
    unparsed_lines: int = 0


class ProjectInfo(BaseModel):
    name: str
    path: str
    conversation_count: int


class ConversationInfo(BaseModel):
    id: str
    message_count: int
    last_modified: str
    size: int
