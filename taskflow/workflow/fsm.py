"""Task lifecycle state machine using transitions library.

The transition table is closed: any trigger not listed for the current state
raises InvalidTransition. Persistence is not done here; lifecycle.py writes
the new status through the store after a successful trigger.

Usage:
    from taskflow.workflow.fsm import TaskFSM

    fsm = TaskFSM("1.1.1", "implementing")
    fsm.fire("block")           # implementing -> blocked, previous_status stamped
    fsm.fire("resume_implementing")
"""

import logging

from transitions import Machine, MachineError

from taskflow.lib.errors import InvalidTransition
from taskflow.lib.models import ACTIVE_STATUSES, TaskStatus

logger = logging.getLogger(__name__)


STATES = [s.value for s in TaskStatus]

# Happy path, one step per advance
_PIPELINE = [
    "setup",
    "planning",
    "implementing",
    "verifying",
    "validating",
    "committing",
    "completed",
]

_ACTIVE = [s for s in STATES if s in ACTIVE_STATUSES]

# Statuses a paused task may resume into
RESUME_TARGETS = ("setup", "implementing", "verifying", "validating")

TRANSITIONS = [
    {"trigger": "start", "source": "not-started", "dest": "setup"},
]

# Forward, validating -> committing only when the attached checks passed
for _src, _dest in zip(_PIPELINE, _PIPELINE[1:]):
    _t = {"trigger": "advance", "source": _src, "dest": _dest}
    if _src == "validating":
        _t["conditions"] = "checks_passed"
    TRANSITIONS.append(_t)

# Backward
for _src, _dest in zip(_PIPELINE[1:-1], _PIPELINE[:-2]):
    TRANSITIONS.append({"trigger": "back", "source": _src, "dest": _dest})

# Pause and abandon
for _src in _ACTIVE:
    TRANSITIONS.append({"trigger": "block", "source": _src, "dest": "blocked", "before": "stamp_previous"})
    TRANSITIONS.append({"trigger": "hold", "source": _src, "dest": "on-hold", "before": "stamp_previous"})
    TRANSITIONS.append({"trigger": "abort", "source": _src, "dest": "not-started"})

# Resume
for _src in ("blocked", "on-hold"):
    for _dest in RESUME_TARGETS:
        TRANSITIONS.append({"trigger": f"resume_{_dest}", "source": _src, "dest": _dest})


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()

ADVANCE_TARGET = {t["source"]: t["dest"] for t in TRANSITIONS if t["trigger"] == "advance"}


def resume_trigger(target: str) -> str:
    """Trigger name for resuming into target.

    Raises:
        ValueError: If target is not a resume target
    """
    if target not in RESUME_TARGETS:
        raise ValueError(f"Cannot resume into '{target}'; expected one of {', '.join(RESUME_TARGETS)}")
    return f"resume_{target}"


class TaskFSM:
    """State machine for one task's status.

    Holds the state in memory only. `validation` carries the summary of the
    last check run so the validating -> committing guard can read it.
    """

    def __init__(self, task_id: str, status: str, previous_status: str | None = None):
        if status not in STATES:
            raise ValueError(f"Unknown status '{status}' for task {task_id}")

        self.task_id = task_id
        self.previous_status = previous_status
        self.validation = None
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=status,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def checks_passed(self, event) -> bool:
        return self.validation is not None and bool(self.validation.passed)

    def stamp_previous(self, event) -> None:
        self.previous_status = event.transition.source

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        logger.info(f"[FSM] {self.task_id}: {from_state} -> {to_state} ({event.event.name})")

    def fire(self, trigger: str) -> bool:
        """Run a trigger.

        Returns False when a guard refused the transition.

        Raises:
            InvalidTransition: If the trigger is not allowed from the current state
        """
        if not self.can(trigger):
            raise InvalidTransition(self.task_id, self.state, trigger)
        try:
            return self.trigger(trigger)
        except MachineError:
            raise InvalidTransition(self.task_id, self.state, trigger) from None

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)
