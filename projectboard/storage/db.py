"""
Board storage backend (SQLite).

Storage port for the orchestrator and CRUD for the commands. Every write
runs in its own transaction; update_task can carry an activity entry that
commits together with the field change.
"""

import json
import logging
import re
import sqlite3
from pathlib import Path

from projectboard.lib.constants import BACKLOG, DEFAULT_COLUMNS
from projectboard.lib.errors import (
    IdeaNotFoundError,
    InvalidTransitionError,
    PreconditionError,
    TaskNotFoundError,
)
from projectboard.storage.models import (
    ActivityEntry,
    Column,
    Comment,
    Idea,
    Project,
    Task,
    utcnow,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        repo_path TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS columns (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        "order" INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        column_id INTEGER NOT NULL,
        assignee TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        branch_name TEXT,
        pr_url TEXT,
        FOREIGN KEY (column_id) REFERENCES columns (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS comments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL,
        author TEXT NOT NULL,
        text TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (task_id) REFERENCES tasks (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ideas (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL,
        promoted_task_id INTEGER REFERENCES tasks (id) ON DELETE SET NULL,
        promoted_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS activity_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        event TEXT NOT NULL,
        metadata TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_column_id ON tasks(column_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_comments_task_id ON comments(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_activity_log_created_at ON activity_log(created_at)",
]

# Fields a caller may change through update_task
UPDATABLE_FIELDS = frozenset({
    "title", "description", "column_id", "assignee", "branch_name", "pr_url",
})

TASK_SELECT = """
    SELECT tasks.*, columns.name AS column_name
    FROM tasks JOIN columns ON columns.id = tasks.column_id
"""


def normalize_column_name(name: str) -> str:
    """Fold a user-typed column name: "to-do", "TODO" and "To Do" all match."""
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _connect(db_path: Path) -> sqlite3.Connection:
    """Open a connection with FK enforcement."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


class BoardStore:
    """SQLite-backed store for one repository's board."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = _connect(db_path)
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "BoardStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _init_schema(self) -> None:
        """Create tables if they don't exist and upgrade older layouts."""
        version = self.conn.execute("PRAGMA user_version").fetchone()[0]
        with self.conn:
            for statement in SCHEMA:
                self.conn.execute(statement)
            if version < 2:
                self._migrate_ideas(self.conn)
            self.conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    def _migrate_ideas(self, conn: sqlite3.Connection) -> None:
        """Add the promotion columns to ideas tables created before version 2."""
        existing = {row["name"] for row in conn.execute("PRAGMA table_info(ideas)")}
        if "promoted_task_id" not in existing:
            conn.execute(
                "ALTER TABLE ideas ADD COLUMN promoted_task_id INTEGER "
                "REFERENCES tasks (id) ON DELETE SET NULL"
            )
        if "promoted_at" not in existing:
            conn.execute("ALTER TABLE ideas ADD COLUMN promoted_at TEXT")

    def _insert_activity(self, conn: sqlite3.Connection, entry: ActivityEntry) -> ActivityEntry:
        created_at = entry.created_at or utcnow()
        cursor = conn.execute(
            "INSERT INTO activity_log (event, metadata, created_at) VALUES (?, ?, ?)",
            (entry.event, json.dumps(entry.metadata, sort_keys=True), created_at.isoformat()),
        )
        return ActivityEntry(
            id=cursor.lastrowid,
            event=entry.event,
            metadata=entry.metadata,
            created_at=created_at,
        )

    # --- projects ---

    def create_project(self, name: str, repo_path: str) -> Project:
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO projects (name, repo_path) VALUES (?, ?)",
                (name, repo_path),
            )
        return Project(id=cursor.lastrowid, name=name, repo_path=repo_path)

    def get_project_by_path(self, repo_path: str) -> Project | None:
        row = self.conn.execute(
            "SELECT * FROM projects WHERE repo_path = ?", (repo_path,)
        ).fetchone()
        return Project.from_row(row) if row else None

    # --- columns ---

    def seed_columns(self) -> list[Column]:
        """Insert the canonical columns; existing rows are left alone."""
        with self.conn:
            for name, order in DEFAULT_COLUMNS:
                self.conn.execute(
                    'INSERT OR IGNORE INTO columns (name, "order") VALUES (?, ?)',
                    (name, order),
                )
        return self.load_columns_ordered()

    def load_columns_ordered(self) -> list[Column]:
        rows = self.conn.execute('SELECT * FROM columns ORDER BY "order", id').fetchall()
        return [Column.from_row(row) for row in rows]

    def find_column(self, name: str) -> Column | None:
        """Find a column by name, ignoring case, spaces and punctuation."""
        wanted = normalize_column_name(name)
        for column in self.load_columns_ordered():
            if normalize_column_name(column.name) == wanted:
                return column
        return None

    def require_column(self, name: str) -> Column:
        column = self.find_column(name)
        if column is None:
            raise PreconditionError(f"Column '{name}' not found; run 'pb init' to seed columns")
        return column

    # --- tasks ---

    def create_task(
        self,
        title: str,
        column_id: int,
        description: str | None = None,
        assignee: str | None = None,
        activity: ActivityEntry | None = None,
    ) -> Task:
        """Insert a task; the optional activity entry gets its task_id filled in."""
        now = utcnow().isoformat()
        with self.conn:
            cursor = self.conn.execute(
                """
                INSERT INTO tasks (title, description, column_id, assignee, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (title, description, column_id, assignee, now, now),
            )
            task_id = cursor.lastrowid
            if activity is not None:
                self._insert_activity(
                    self.conn,
                    ActivityEntry(event=activity.event, metadata={**activity.metadata, "task_id": task_id}),
                )
        return self.load_task(task_id)

    def load_task(self, task_id: int) -> Task | None:
        row = self.conn.execute(f"{TASK_SELECT} WHERE tasks.id = ?", (task_id,)).fetchone()
        return Task.from_row(row) if row else None

    def require_task(self, task_id: int) -> Task:
        task = self.load_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self, column_id: int | None = None) -> list[Task]:
        """Tasks in board order: by column order, newest first within a column."""
        if column_id is None:
            rows = self.conn.execute(
                f'{TASK_SELECT} ORDER BY columns."order", tasks.created_at DESC, tasks.id DESC'
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"{TASK_SELECT} WHERE tasks.column_id = ? "
                "ORDER BY tasks.created_at DESC, tasks.id DESC",
                (column_id,),
            ).fetchall()
        return [Task.from_row(row) for row in rows]

    def update_task(
        self,
        task_id: int,
        delta: dict,
        activity: ActivityEntry | None = None,
    ) -> Task:
        """Apply a field delta to one task atomically.

        The activity entry, if given, is written in the same transaction so
        the log never disagrees with the row.
        """
        unknown = set(delta) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")
        if "column_id" in delta and delta["column_id"] is None:
            raise ValueError("column_id cannot be null")

        assignments = ", ".join(f"{name} = ?" for name in delta)
        params = list(delta.values())
        set_clause = f"{assignments}, updated_at = ?" if assignments else "updated_at = ?"
        params.append(utcnow().isoformat())
        params.append(task_id)

        with self.conn:
            cursor = self.conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", params)
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task_id)
            if activity is not None:
                self._insert_activity(self.conn, activity)
        logger.debug(f"[STORE] task #{task_id} updated: {sorted(delta)}")
        return self.load_task(task_id)

    # --- comments ---

    def create_comment(self, task_id: int, author: str, text: str) -> Comment:
        self.require_task(task_id)
        now = utcnow()
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO comments (task_id, author, text, created_at) VALUES (?, ?, ?, ?)",
                (task_id, author, text, now.isoformat()),
            )
            self._insert_activity(
                self.conn,
                ActivityEntry(event="comment_added", metadata={"task_id": task_id, "author": author}),
            )
        return Comment(id=cursor.lastrowid, task_id=task_id, author=author, text=text, created_at=now)

    def list_comments(self, task_id: int) -> list[Comment]:
        rows = self.conn.execute(
            "SELECT * FROM comments WHERE task_id = ? ORDER BY created_at, id", (task_id,)
        ).fetchall()
        return [Comment.from_row(row) for row in rows]

    # --- ideas ---

    def create_idea(self, content: str) -> Idea:
        now = utcnow()
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO ideas (content, created_at) VALUES (?, ?)",
                (content, now.isoformat()),
            )
            self._insert_activity(
                self.conn,
                ActivityEntry(event="idea_created", metadata={"idea_id": cursor.lastrowid, "content": content}),
            )
        return Idea(id=cursor.lastrowid, content=content, created_at=now)

    def get_idea(self, idea_id: int) -> Idea | None:
        row = self.conn.execute("SELECT * FROM ideas WHERE id = ?", (idea_id,)).fetchone()
        return Idea.from_row(row) if row else None

    def list_ideas(self, include_promoted: bool = False) -> list[Idea]:
        query = "SELECT * FROM ideas"
        if not include_promoted:
            query += " WHERE promoted_task_id IS NULL"
        rows = self.conn.execute(query + " ORDER BY created_at DESC, id DESC").fetchall()
        return [Idea.from_row(row) for row in rows]

    def promote_idea(self, idea_id: int) -> tuple[Idea, Task]:
        """Create a Backlog task from an idea and mark the idea consumed.

        Both rows and the activity entry commit together.
        """
        idea = self.get_idea(idea_id)
        if idea is None:
            raise IdeaNotFoundError(idea_id)
        if idea.promoted:
            raise InvalidTransitionError(
                "promote", BACKLOG, detail=f"idea #{idea_id} was already promoted to task #{idea.promoted_task_id}"
            )

        backlog = self.require_column(BACKLOG)
        now = utcnow().isoformat()
        with self.conn:
            cursor = self.conn.execute(
                """
                INSERT INTO tasks (title, description, column_id, created_at, updated_at)
                VALUES (?, NULL, ?, ?, ?)
                """,
                (idea.content, backlog.id, now, now),
            )
            task_id = cursor.lastrowid
            self.conn.execute(
                "UPDATE ideas SET promoted_task_id = ?, promoted_at = ? WHERE id = ?",
                (task_id, now, idea_id),
            )
            self._insert_activity(
                self.conn,
                ActivityEntry(
                    event="idea_promoted",
                    metadata={"idea_id": idea_id, "task_id": task_id, "content": idea.content},
                ),
            )
        return self.get_idea(idea_id), self.load_task(task_id)

    # --- activity log ---

    def append_activity(self, entry: ActivityEntry) -> ActivityEntry:
        with self.conn:
            return self._insert_activity(self.conn, entry)

    def list_activity(self, task_id: int | None = None, limit: int | None = 50) -> list[ActivityEntry]:
        """Activity entries, newest first."""
        query = "SELECT * FROM activity_log"
        params: list = []
        if task_id is not None:
            query += " WHERE json_extract(metadata, '$.task_id') = ?"
            params.append(task_id)
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.conn.execute(query, params).fetchall()
        return [ActivityEntry.from_row(row) for row in rows]
