"""Locate conversation streams under the projects directory."""

from datetime import datetime, timezone
from pathlib import Path

import structlog

from .config import EditorConfig
from .errors import StreamNotFoundError
from .models import ConversationInfo, ProjectInfo

logger = structlog.get_logger("cc_trim.store")


def project_display_name(dir_name: str) -> str:
    """Turn ``-home-me-repo`` back into ``home/me/repo``."""
    return dir_name.removeprefix("-").replace("-", "/")


def resolve_stream(config: EditorConfig, project: str, conversation: str) -> Path:
    """Path of ``<base>/<project>/<conversation>.jsonl``; must stay under the base dir."""
    base = config.base_dir.expanduser().resolve()
    path = (base / project / f"{conversation}.jsonl").resolve()
    if base not in path.parents:
        raise StreamNotFoundError(path)
    return path


def locate_stream(config: EditorConfig, target: str) -> Path:
    """Accept either a path to a stream file or ``project/conversation``."""
    as_path = Path(target).expanduser()
    if as_path.is_file():
        return as_path
    project, sep, conversation = target.partition("/")
    if not sep or not conversation:
        raise StreamNotFoundError(as_path)
    path = resolve_stream(config, project, conversation.removesuffix(".jsonl"))
    if not path.is_file():
        raise StreamNotFoundError(path)
    return path


def list_projects(config: EditorConfig) -> list[ProjectInfo]:
    base = config.base_dir.expanduser()
    if not base.is_dir():
        return []
    projects = []
    for project_dir in base.iterdir():
        if not project_dir.is_dir():
            continue
        try:
            count = sum(1 for _ in project_dir.glob("*.jsonl"))
        except OSError as e:
            logger.warning("project_unreadable", project=project_dir.name, error=str(e))
            continue
        projects.append(
            ProjectInfo(
                name=project_display_name(project_dir.name),
                path=project_dir.name,
                conversation_count=count,
            )
        )
    return sorted(projects, key=lambda p: p.name)


def list_conversations(config: EditorConfig, project: str) -> list[ConversationInfo]:
    """Conversations of one project, most recently modified first."""
    project_dir = config.base_dir.expanduser() / project
    if not project_dir.is_dir():
        raise StreamNotFoundError(project_dir)
    conversations = []
    for f in project_dir.glob("*.jsonl"):
        try:
            stat = f.stat()
            with open(f, encoding="utf-8", errors="replace") as fh:
                count = sum(1 for line in fh if line.strip())
        except OSError as e:
            logger.warning("conversation_unreadable", file=f.name, error=str(e))
            continue
        conversations.append(
            ConversationInfo(
                id=f.stem,
                message_count=count,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                size=stat.st_size,
            )
        )
    return sorted(conversations, key=lambda c: c.last_modified, reverse=True)
