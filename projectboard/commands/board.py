"""
pb board - Interactive Kanban view.

Read-only TUI: one panel per column, polled from the database so changes
made by `pb` in another terminal show up. Lifecycle commands stay on the
CLI.
"""

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Static

from projectboard.commands.context import BoardContext
from projectboard.lib.timeline import EVENT_COLORS, EVENT_SYMBOLS, summarize
from projectboard.storage.models import ActivityEntry, Column, Task

# Configuration
POLL_INTERVAL_SECONDS = 2.0
DETAIL_HISTORY_LIMIT = 15


def task_markers(task: Task) -> str:
    """Short badges for the git/GitHub state of a task."""
    markers = []
    if task.branch_name:
        markers.append("[green]B[/green]")
    if task.pr_url:
        markers.append("[blue]PR[/blue]")
    return " ".join(markers)


def render_column(column: Column, tasks: list[Task], selected: int | None = None) -> str:
    """Rich markup for one column panel. `selected` is the highlighted row."""
    lines = [f"[bold]{escape(column.name)}[/bold] [dim]({len(tasks)})[/dim]", ""]
    if not tasks:
        lines.append("[dim]No tasks[/dim]")
    for index, task in enumerate(tasks):
        markers = task_markers(task)
        line = f"#{task.id} {escape(task.title)}"
        if markers:
            line += f" {markers}"
        if index == selected:
            line = f"[reverse]{line}[/reverse]"
        lines.append(line)
    return "\n".join(lines)


def _format_entry_rich(entry: ActivityEntry) -> str:
    """Format an activity entry with Rich markup."""
    ts_str = entry.created_at.astimezone().strftime("%Y-%m-%d %H:%M") if entry.created_at else "?"
    symbol = EVENT_SYMBOLS.get(entry.event, "?")
    color = EVENT_COLORS.get(entry.event, "")
    summary = escape(summarize(entry))

    if color:
        return f"[dim]{ts_str}[/dim] [{color}]\\[{symbol}][/{color}] {summary}"
    return f"[dim]{ts_str}[/dim] \\[{symbol}] {summary}"


def render_task_detail(task: Task, entries: list[ActivityEntry], problems: list[str]) -> str:
    lines = [
        f"[bold]#{task.id} {escape(task.title)}[/bold]",
        "",
        f"Column:  {escape(task.column_name or '?')}",
        f"Branch:  {escape(task.branch_name or '-')}",
        f"PR:      {escape(task.pr_url or '-')}",
    ]
    if task.assignee:
        lines.append(f"Owner:   {escape(task.assignee)}")
    if task.description:
        lines += ["", escape(task.description)]
    for problem in problems:
        lines.append(f"[yellow]WARNING: {escape(problem)}[/yellow]")
    if entries:
        lines += ["", "[bold]History[/bold]"]
        lines += [_format_entry_rich(e) for e in reversed(entries)]
    return "\n".join(lines)


class ContentScreen(ModalScreen):
    """Full screen task detail viewer."""

    BINDINGS = [
        Binding("q", "back", "Back"),
        Binding("escape", "back", "Back"),
    ]

    def __init__(self, content: str, title: str = "") -> None:
        super().__init__()
        self.content = content
        self.screen_title = title

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(
            Static(self.content, id="content-body"),
            id="content-scroll",
        )
        yield Footer()

    def on_mount(self) -> None:
        if self.screen_title:
            self.title = self.screen_title

    def action_back(self) -> None:
        self.app.pop_screen()


class ColumnWidget(Static):
    """One board column."""

    tasks: reactive[list] = reactive(list, always_update=True)
    selected: reactive[int | None] = reactive(None)

    def __init__(self, column: Column, **kwargs) -> None:
        super().__init__(**kwargs)
        self.column = column

    def render(self) -> str:
        return render_column(self.column, self.tasks, self.selected)


class BoardApp(App):
    """Kanban board TUI application."""

    CSS = """
    #columns {
        height: 1fr;
    }

    ColumnWidget {
        width: 1fr;
        height: 100%;
        border: solid $primary-darken-2;
        padding: 0 1;
    }

    ColumnWidget.focused-column {
        border: solid $accent;
    }

    #content-scroll {
        height: 1fr;
    }

    #content-body {
        padding: 1;
    }
    """

    BINDINGS = [
        Binding("left,h", "focus_column(-1)", "Prev column"),
        Binding("right,l", "focus_column(1)", "Next column"),
        Binding("up,k", "select_task(-1)", "Up", show=False),
        Binding("down,j", "select_task(1)", "Down", show=False),
        Binding("enter", "show_task", "Details"),
        Binding("r", "reload", "Reload"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, ctx: BoardContext) -> None:
        super().__init__()
        self.ctx = ctx
        self.columns = ctx.store.load_columns_ordered()
        self.focused = 0
        self.selected: dict[int, int] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            *[ColumnWidget(column, id=f"column-{column.id}") for column in self.columns],
            id="columns",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.title = f"pb board: {self.ctx.paths.repo_path.name}"
        self.refresh_data()
        self.set_interval(POLL_INTERVAL_SECONDS, self.refresh_data)

    def _widgets(self) -> list[ColumnWidget]:
        return list(self.query(ColumnWidget))

    def refresh_data(self) -> None:
        """Reload tasks from the database."""
        total = 0
        for index, widget in enumerate(self._widgets()):
            tasks = self.ctx.store.list_tasks(widget.column.id)
            total += len(tasks)
            row = self.selected.get(index, 0)
            if tasks:
                row = min(row, len(tasks) - 1)
                self.selected[index] = row
            widget.tasks = tasks
            widget.selected = row if index == self.focused and tasks else None
            widget.set_class(index == self.focused, "focused-column")
        self.sub_title = f"{total} tasks"

    def _current_task(self) -> Task | None:
        widgets = self._widgets()
        if not widgets:
            return None
        tasks = widgets[self.focused].tasks
        if not tasks:
            return None
        return tasks[self.selected.get(self.focused, 0)]

    def action_focus_column(self, delta: int) -> None:
        if not self.columns:
            return
        self.focused = (self.focused + delta) % len(self.columns)
        self.refresh_data()

    def action_select_task(self, delta: int) -> None:
        widgets = self._widgets()
        if not widgets:
            return
        count = len(widgets[self.focused].tasks)
        if not count:
            return
        self.selected[self.focused] = (self.selected.get(self.focused, 0) + delta) % count
        self.refresh_data()

    def action_show_task(self) -> None:
        task = self._current_task()
        if task is None:
            self.notify("No task selected", severity="warning")
            return
        entries = self.ctx.store.list_activity(task_id=task.id, limit=DETAIL_HISTORY_LIMIT)
        problems = self.ctx.orchestrator.check_invariants(task)
        self.push_screen(ContentScreen(render_task_detail(task, entries, problems), f"Task #{task.id}"))

    def action_reload(self) -> None:
        self.refresh_data()
        self.notify("Reloaded")


def cmd_board(args, ctx: BoardContext) -> int:
    BoardApp(ctx).run()
    return 0
