"""Task lifecycle state machine using transitions library.

States are the board's column names, loaded from storage. The transition
table below is the only place that says which lifecycle command is legal
from which column. Manual `pb move` bypasses it.

The machine is never persisted: it is built from a task's current column,
fired to find out where the task would go, and thrown away. Writing the
column is the orchestrator's job.

Usage:
    from projectboard.workflow.fsm import LifecycleFSM

    fsm = LifecycleFSM(["Backlog", "To Do", "Doing", "Review", "Done"], "To Do")
    fsm.can("start")    # True
    fsm.fire("start")   # "Doing"
"""

import logging

from transitions import Machine

from projectboard.lib.constants import BACKLOG, DOING, DONE, REVIEW, TODO
from projectboard.lib.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


# Each trigger becomes a method on the FSM.
# Self-transitions (start from Doing, submit from Review) let a re-run resume
# a transition that failed partway instead of being rejected.
TRANSITIONS = [
    {"trigger": "start", "source": [BACKLOG, TODO, DOING], "dest": DOING},
    {"trigger": "done", "source": DOING, "dest": DONE},
    {"trigger": "submit", "source": [DOING, DONE, REVIEW], "dest": REVIEW},
    # Read-only status check, legal everywhere, never changes the column
    {"trigger": "review", "source": "*", "dest": None},
]

TRIGGERS = ["start", "done", "submit", "review"]


def _sources(transition: dict) -> list[str]:
    source = transition["source"]
    return source if isinstance(source, list) else [source]


def _build_transitions(states: list[str]) -> list[dict]:
    """Restrict the table to the columns this board actually has."""
    table = []
    for t in TRANSITIONS:
        if t["dest"] is not None and t["dest"] not in states:
            logger.warning(f"[FSM] column '{t['dest']}' missing, '{t['trigger']}' disabled")
            continue
        sources = _sources(t)
        if sources != ["*"]:
            sources = [s for s in sources if s in states]
            if not sources:
                continue
        table.append({**t, "source": sources if sources != ["*"] else "*"})
    return table


def allowed_sources(trigger: str) -> list[str]:
    """Columns a trigger may be fired from, for error messages."""
    sources: list[str] = []
    for t in TRANSITIONS:
        if t["trigger"] == trigger:
            sources.extend(_sources(t))
    return sources


class LifecycleFSM:
    """In-memory lifecycle machine for one task."""

    def __init__(self, states: list[str], initial: str, task_id: int | None = None):
        if initial not in states:
            raise InvalidTransitionError(
                "lifecycle", initial, task_id, detail="column is not on this board"
            )
        self.task_id = task_id
        self.machine = Machine(
            model=self,
            states=list(states),
            transitions=_build_transitions(list(states)),
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest or from_state
        logger.debug(f"[FSM] task #{self.task_id}: {from_state} -> {to_state} ({event.event.name})")

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Lifecycle commands available from the current column."""
        available = self.machine.get_triggers(self.state)
        return [t for t in TRIGGERS if t in available]

    def fire(self, trigger: str) -> str:
        """Fire a trigger and return the resulting column.

        Raises:
            InvalidTransitionError: If the trigger is not legal from the
                current column.
        """
        if trigger not in TRIGGERS or not self.can(trigger):
            allowed = ", ".join(allowed_sources(trigger)) or "nowhere"
            raise InvalidTransitionError(
                trigger, self.state, self.task_id, detail=f"allowed from: {allowed}"
            )
        self.trigger(trigger)
        return self.state
