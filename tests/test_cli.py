"""Tests for the typer CLI."""

import json
from pathlib import Path

from builders import assistant_text, user_text
from typer.testing import CliRunner

from cc_trim.cli import app

runner = CliRunner()


class TestDelete:
    def test_ok(self, write_stream) -> None:
        path = write_stream([user_text("u1"), assistant_text("a1", "u1"), user_text("u2", "a1")])
        result = runner.invoke(app, ["delete", str(path), "a1"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["status"] == "ok"
        assert payload["reparented"] == 1

    def test_rejected(self, writable_copy, with_tools_session: Path) -> None:
        path = writable_copy(with_tools_session)
        result = runner.invoke(app, ["delete", str(path), "a1"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["status"] == "validationError"

    def test_by_project_name(self, tmp_path: Path, simple_session: Path) -> None:
        project = tmp_path / "-repo"
        project.mkdir()
        (project / "s1.jsonl").write_bytes(simple_session.read_bytes())
        result = runner.invoke(app, ["delete", "--base-dir", str(tmp_path), "--", "-repo/s1", "a2"])
        assert result.exit_code == 0
        assert "a2" not in (project / "s1.jsonl").read_text()

    def test_missing_stream(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["delete", str(tmp_path / "nope.jsonl"), "x"])
        assert result.exit_code == 1


class TestCompact:
    def test_ok(self, writable_copy, with_tools_session: Path) -> None:
        path = writable_copy(with_tools_session)
        result = runner.invoke(app, ["compact", str(path), "u2"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["compacted_ids"] == ["u2", "a2"]

    def test_failed_tool(self, writable_copy, with_tools_session: Path) -> None:
        path = writable_copy(with_tools_session)
        result = runner.invoke(app, ["compact", str(path), "a3"])
        assert result.exit_code == 1


class TestExport:
    def test_to_file(self, tmp_path: Path, with_compaction_session: Path) -> None:
        out = tmp_path / "clean.jsonl"
        result = runner.invoke(
            app, ["export", str(with_compaction_session), "-o", str(out), "--exclude-summaries"]
        )
        assert result.exit_code == 0
        assert len(out.read_text().splitlines()) == 4

    def test_to_stdout(self, simple_session: Path) -> None:
        result = runner.invoke(app, ["export", str(simple_session)])
        assert result.exit_code == 0
        assert result.stdout == simple_session.read_text()


    def test_invalid_utf8_to_stdout(self, write_stream) -> None:
        path = write_stream([user_text("u1")])
        path.write_bytes(path.read_bytes() + b"\xff\xfe garbage\n")
        result = runner.invoke(app, ["export", str(path)])
        assert result.exit_code == 0
        assert result.stdout_bytes == path.read_bytes()


class TestInspect:
    def test_stats(self, with_compaction_session: Path) -> None:
        result = runner.invoke(app, ["stats", str(with_compaction_session)])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary_count"] == 2

    def test_verify_clean(self, simple_session: Path) -> None:
        result = runner.invoke(app, ["verify", str(simple_session)])
        assert result.exit_code == 0

    def test_verify_problems(self, write_stream) -> None:
        path = write_stream([user_text("u1"), user_text("u1")])
        result = runner.invoke(app, ["verify", str(path)])
        assert result.exit_code == 1
        assert "duplicate id u1" in result.stdout

    def test_projects_and_conversations(self, tmp_path: Path, simple_session: Path) -> None:
        project = tmp_path / "-repo"
        project.mkdir()
        (project / "s1.jsonl").write_bytes(simple_session.read_bytes())

        result = runner.invoke(app, ["projects", "--base-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"name": "repo", "path": "-repo", "conversation_count": 1}
        ]

        result = runner.invoke(app, ["conversations", "--base-dir", str(tmp_path), "--", "-repo"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["message_count"] == 4

    def test_conversations_missing_project(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["conversations", "--base-dir", str(tmp_path), "--", "-nope"])
        assert result.exit_code == 1
