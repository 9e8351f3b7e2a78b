"""
HR Path-Finder
Step workflow rules.

Pure functions only: no Flask, no session.  Everything that decides what a
step *looks like* (current / locked / completed, badge label) or whether a
raw status may move to another lives here, so dashboards, the project API
and the transition service all agree.

Lifecycle (forward only):

    not_started → in_progress → submitted → approved → locked
         └─────────────────────────↑
    (submit is allowed straight from not_started)

``completed`` is the legacy "verified" value; it reads like ``approved``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Mapping

from pathfinder.core.exceptions import ConflictStateError
from pathfinder.models.project import STEP_KEYS, PhilosophyStatus, StepStatus

# ── Lifecycle ────────────────────────────────────────────────────────────────

STEP_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.NOT_STARTED: {StepStatus.IN_PROGRESS, StepStatus.SUBMITTED},
    StepStatus.IN_PROGRESS: {StepStatus.SUBMITTED},
    StepStatus.SUBMITTED: {StepStatus.APPROVED},
    StepStatus.APPROVED: {StepStatus.LOCKED},
    StepStatus.COMPLETED: {StepStatus.LOCKED},
    StepStatus.LOCKED: set(),
}

DONE_FOR_DISPLAY = frozenset({
    StepStatus.SUBMITTED,
    StepStatus.APPROVED,
    StepStatus.LOCKED,
    StepStatus.COMPLETED,
})

# Philosophy statuses that open the gate into step 2
PHILOSOPHY_DONE = frozenset({PhilosophyStatus.COMPLETED.value, PhilosophyStatus.LOCKED.value})

# Index of the step whose entry also needs the CEO philosophy survey
PHILOSOPHY_GATED_INDEX = 1


def normalize_status(raw) -> StepStatus | None:
    """Coerce a raw status (enum or string) to ``StepStatus``.

    Missing values read as ``not_started``; unknown strings return None.
    """
    if raw is None or raw == "":
        return StepStatus.NOT_STARTED
    if isinstance(raw, StepStatus):
        return raw
    try:
        return StepStatus(str(raw).strip().lower())
    except ValueError:
        return None


def is_completed_for_display(status) -> bool:
    """True iff the step counts as done on dashboards and for unlocking."""
    return normalize_status(status) in DONE_FOR_DISPLAY


def can_transition(old, new) -> bool:
    old_s, new_s = normalize_status(old), normalize_status(new)
    if old_s is None or new_s is None:
        return False
    return new_s in STEP_TRANSITIONS.get(old_s, set())


def validate_step_transition(step: str, old, new) -> None:
    """Raise ConflictStateError unless ``old → new`` is a forward edge."""
    if not can_transition(old, new):
        raise ConflictStateError(
            "step", str(old), str(getattr(new, "value", new)),
            message=f"Step '{step}' cannot move from '{getattr(old, 'value', old)}' "
                    f"to '{getattr(new, 'value', new)}'",
        )


# ── Derived display state ────────────────────────────────────────────────────


class StepState(str, enum.Enum):
    CURRENT = "current"
    LOCKED = "locked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StepView:
    key: str
    order: int
    status: str | None
    state: StepState

    def to_dict(self):
        return {
            "key": self.key,
            "order": self.order,
            "status": self.status,
            "state": self.state.value,
            "badge": status_badge(self.status).to_dict(),
        }


def derive_step_states(
    step_keys: Iterable[str],
    raw_statuses: Mapping[str, object],
    ceo_philosophy_status: str | None = None,
) -> list[StepView]:
    """Classify every step as current, locked or completed.

    - completed: status is done-for-display
    - locked: not completed and the previous step is not completed; the
      second step additionally waits for the CEO philosophy survey
    - current: the first step that is neither; at most one exists, so any
      later candidate (only possible with out-of-order data) stays locked

    Unrecognised statuses are locked, never completed.
    """
    philosophy_done = str(getattr(ceo_philosophy_status, "value", ceo_philosophy_status)) in PHILOSOPHY_DONE
    views: list[StepView] = []
    prev_completed = True
    current_taken = False

    for index, key in enumerate(step_keys):
        raw = raw_statuses.get(key)
        status = normalize_status(raw)
        raw_str = getattr(raw, "value", raw)

        if status is None:
            state = StepState.LOCKED
        elif status in DONE_FOR_DISPLAY:
            state = StepState.COMPLETED
        elif not prev_completed:
            state = StepState.LOCKED
        elif index == PHILOSOPHY_GATED_INDEX and not philosophy_done:
            state = StepState.LOCKED
        elif current_taken:
            state = StepState.LOCKED
        else:
            state = StepState.CURRENT
            current_taken = True

        views.append(StepView(key=key, order=index + 1, status=raw_str, state=state))
        prev_completed = state is StepState.COMPLETED

    return views


def derive_project_states(project) -> list[StepView]:
    return derive_step_states(STEP_KEYS, project.step_statuses or {}, project.ceo_philosophy_status)


def current_step(views: list[StepView]) -> StepView | None:
    return next((v for v in views if v.state is StepState.CURRENT), None)


def show_overview_cta(views: list[StepView]) -> bool:
    """The HR-system overview CTA replaces the current step once all are done."""
    return bool(views) and all(v.state is StepState.COMPLETED for v in views)


def progress_percent(views: list[StepView]) -> int:
    if not views:
        return 0
    done = sum(1 for v in views if v.state is StepState.COMPLETED)
    return round(done * 100 / len(views))


# ── Badges ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Badge:
    label: str
    variant: str

    def to_dict(self):
        return {"label": self.label, "variant": self.variant}


_BADGES = {
    StepStatus.NOT_STARTED: Badge("Not Started", "outline"),
    StepStatus.IN_PROGRESS: Badge("In Progress", "secondary"),
    StepStatus.SUBMITTED: Badge("Submitted", "default"),
    StepStatus.APPROVED: Badge("Approved", "default"),
    StepStatus.COMPLETED: Badge("Completed", "default"),
    StepStatus.LOCKED: Badge("Locked", "default"),
}

UNKNOWN_BADGE = Badge("Locked", "outline")


def status_badge(status) -> Badge:
    normalized = normalize_status(status)
    if normalized is None:
        return UNKNOWN_BADGE
    return _BADGES[normalized]


def workflow_summary(project) -> dict:
    """Serializable workflow state for API payloads."""
    views = derive_project_states(project)
    current = current_step(views)
    return {
        "project_id": project.id,
        "project_status": project.status,
        "ceo_philosophy_status": project.ceo_philosophy_status,
        "steps": [v.to_dict() for v in views],
        "current_step": current.key if current else None,
        "progress": progress_percent(views),
        "show_overview_cta": show_overview_cta(views),
    }
