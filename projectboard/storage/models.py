"""
Board entities.

Rows are mapped to these dataclasses by the store. Timestamps are UTC and
persisted as ISO-8601 text.
"""

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Project:
    id: int
    name: str
    repo_path: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Project":
        return cls(id=row["id"], name=row["name"], repo_path=row["repo_path"])


@dataclass(frozen=True)
class Column:
    id: int
    name: str
    order: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Column":
        return cls(id=row["id"], name=row["name"], order=row["order"])


@dataclass(frozen=True)
class Task:
    """A card on the board.

    Frozen so a loaded task doubles as a snapshot: the orchestrator never
    mutates one in place, it reloads after every write.
    """
    id: int
    title: str
    column_id: int
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    assignee: str | None = None
    branch_name: str | None = None
    pr_url: str | None = None
    column_name: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Task":
        keys = row.keys()
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            column_id=row["column_id"],
            assignee=row["assignee"],
            created_at=parse_ts(row["created_at"]),
            updated_at=parse_ts(row["updated_at"]),
            branch_name=row["branch_name"],
            pr_url=row["pr_url"],
            column_name=row["column_name"] if "column_name" in keys else None,
        )


@dataclass(frozen=True)
class Comment:
    id: int
    task_id: int
    author: str
    text: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Comment":
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            author=row["author"],
            text=row["text"],
            created_at=parse_ts(row["created_at"]),
        )


@dataclass(frozen=True)
class Idea:
    id: int
    content: str
    created_at: datetime
    promoted_task_id: int | None = None
    promoted_at: datetime | None = None

    @property
    def promoted(self) -> bool:
        return self.promoted_task_id is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Idea":
        return cls(
            id=row["id"],
            content=row["content"],
            created_at=parse_ts(row["created_at"]),
            promoted_task_id=row["promoted_task_id"],
            promoted_at=parse_ts(row["promoted_at"]),
        )


@dataclass(frozen=True)
class ActivityEntry:
    """One append-only activity log record."""
    event: str
    metadata: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None

    @property
    def task_id(self) -> int | None:
        return self.metadata.get("task_id")

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ActivityEntry":
        raw = row["metadata"]
        try:
            metadata = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            # Rows written by other tools may hold free text
            metadata = {"text": raw}
        if not isinstance(metadata, dict):
            metadata = {"value": metadata}
        return cls(
            id=row["id"],
            event=row["event"],
            metadata=metadata,
            created_at=parse_ts(row["created_at"]),
        )
