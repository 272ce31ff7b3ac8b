"""Tests for the compaction engine."""

from pathlib import Path

import pytest
from builders import assistant_text, parse, summary, tool_result, tool_use, user_text

from cc_trim.compaction import compact, keyword_gate, result_text
from cc_trim.errors import RecordNotFoundError, RecordValidationError
from cc_trim.index import TranscriptIndex
from cc_trim.models import Record, ToolInvocationBlock, ToolResultBlock
from cc_trim.parser import load_stream

PLACEHOLDER = "Tool executed successfully"


def run(records: list[dict], target: str, **kwargs):
    entries = parse(records)
    return entries, compact(entries, TranscriptIndex.build(entries), target, **kwargs)


def by_id(entries) -> dict[str, Record]:
    return {e.id: e for e in entries if isinstance(e, Record) and e.id}


class TestKeywordGate:
    """Tests for the default success predicate."""

    def test_plain_output_passes(self) -> None:
        assert keyword_gate()("README.md\nsrc") is True

    @pytest.mark.parametrize(
        "text",
        ["Error: boom", "Traceback (most recent call last)", "PERMISSION DENIED", "cannot open"],
    )
    def test_indicators_fail(self, text: str) -> None:
        assert keyword_gate()(text) is False

    def test_custom_indicators(self) -> None:
        gate = keyword_gate(["Nope"])
        assert gate("error") is True
        assert gate("nope, not today") is False

    def test_result_text_flattens_parts(self) -> None:
        body = [{"type": "text", "text": "one"}, {"type": "image"}, "two"]
        assert result_text(body) == "one\n\ntwo"
        assert result_text(None) == ""


class TestCompact:
    """Tests for compact."""

    def test_compacts_both_sides_from_invocation(self) -> None:
        entries, plan = run(
            [
                user_text("u1"),
                tool_use("a1", "u1", "t1", tool_input={"command": "ls -la"}),
                tool_result("u2", "a1", "t1", content="file.txt"),
                assistant_text("a2", "u2"),
            ],
            "a1",
        )
        records = by_id(plan.entries)
        assert records["a1"].raw["message"]["content"][0]["input"] == PLACEHOLDER
        assert records["u2"].raw["message"]["content"][0]["content"] == PLACEHOLDER
        assert records["a1"].blocks == [
            ToolInvocationBlock(invocation_id="t1", name="Bash", input=PLACEHOLDER)
        ]
        assert plan.compacted_ids == ["a1", "u2"]
        assert plan.invocation_ids == ["t1"]
        # Everything else is the very same object
        assert plan.entries[0] is entries[0]
        assert plan.entries[3] is entries[3]

    def test_compacts_from_result_side(self) -> None:
        _, plan = run(
            [tool_use("a1", None, "t1"), tool_result("u2", "a1", "t1")],
            "u2",
        )
        assert plan.compacted_ids == ["u2", "a1"]
        assert isinstance(by_id(plan.entries)["u2"].blocks[0], ToolResultBlock)

    def test_other_fields_untouched(self) -> None:
        _, plan = run([tool_use("a1", None, "t1"), tool_result("u2", "a1", "t1")], "a1")
        rec = by_id(plan.entries)["u2"]
        block = rec.raw["message"]["content"][0]
        assert block["tool_use_id"] == "t1"
        assert rec.raw["parentUuid"] == "a1"
        assert rec.raw["timestamp"] == "2026-01-17T10:00:00Z"
        assert rec.line is None

    def test_failed_result_blocks_everything(self, with_tools_session: Path) -> None:
        entries = load_stream(with_tools_session)
        before = [e.model_copy(deep=True) for e in entries]
        with pytest.raises(RecordValidationError) as exc_info:
            compact(entries, TranscriptIndex.build(entries), "a3")
        (violation,) = exc_info.value.violations
        assert violation.kind == "failed_result"
        assert violation.ids == ["u3"]
        assert entries == before

    def test_indicator_in_result_text(self) -> None:
        with pytest.raises(RecordValidationError):
            run(
                [tool_use("a1", None, "t1"), tool_result("u2", "a1", "t1", content="Exit 1: failed")],
                "a1",
            )

    def test_custom_gate(self) -> None:
        """A caller-supplied predicate replaces the keyword list."""
        _, plan = run(
            [tool_use("a1", None, "t1"), tool_result("u2", "a1", "t1", content="0 errors found")],
            "a1",
            is_success=lambda text: not text.startswith("Exit"),
        )
        assert plan.compacted_ids == ["a1", "u2"]

    def test_custom_placeholder(self) -> None:
        _, plan = run(
            [tool_use("a1", None, "t1"), tool_result("u2", "a1", "t1")],
            "a1",
            placeholder="[compacted]",
        )
        assert by_id(plan.entries)["u2"].raw["message"]["content"][0]["content"] == "[compacted]"

    def test_unknown_record(self) -> None:
        with pytest.raises(RecordNotFoundError):
            run([user_text("u1")], "ghost")

    def test_record_without_tool_content(self) -> None:
        with pytest.raises(RecordNotFoundError, match="no tool content"):
            run([user_text("u1")], "u1")

    def test_incomplete_pair(self) -> None:
        with pytest.raises(RecordNotFoundError) as exc_info:
            run([user_text("u1"), tool_use("a1", "u1", "t1")], "a1")
        assert exc_info.value.ids == ["t1"]

    def test_repeated_results_all_compacted(self) -> None:
        _, plan = run(
            [
                tool_use("a1", None, "t1"),
                tool_result("r1", "a1", "t1"),
                tool_result("r2", "r1", "t1"),
            ],
            "r2",
        )
        assert plan.compacted_ids == ["r2", "a1", "r1"]
        records = by_id(plan.entries)
        for rid in ("r1", "r2"):
            assert records[rid].raw["message"]["content"][0]["content"] == PLACEHOLDER

    def test_result_before_invocation_not_paired(self) -> None:
        with pytest.raises(RecordNotFoundError) as exc_info:
            run([tool_result("u1", None, "t1"), tool_use("a1", "u1", "t1")], "u1")
        assert exc_info.value.ids == ["t1"]

    def test_summary_target_rejected(self) -> None:
        with pytest.raises(RecordValidationError):
            run([user_text("u1"), summary(leaf="u1", uuid="s1")], "s1")

    def test_fixture_success_pair(self, with_tools_session: Path) -> None:
        entries = load_stream(with_tools_session)
        plan = compact(entries, TranscriptIndex.build(entries), "u2")
        assert plan.compacted_ids == ["u2", "a2"]
        assert len(plan.entries) == len(entries)
