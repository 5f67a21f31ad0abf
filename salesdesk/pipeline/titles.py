"""Task titles, task eligibility, and completion flow classification.

Titles are generated once when a task is created and never rewritten.
The flow kind comes from the same stage template and is stored on the task,
so neither the lead's name nor a later title edit can change how the task
is completed.
"""

from enum import Enum

from salesdesk.errors import InvalidStageError, TerminalStageError
from salesdesk.pipeline.stages import (
    ABSORBING_STAGES,
    TERMINAL_STAGE,
    Stage,
    normalize_stage,
)

DEFAULT_DISPLAY_NAME = "Client"


class FlowKind(str, Enum):
    FIRST_CALL = "first_call"
    RESPONSE_CHECK = "response_check"
    DEMO_OUTCOME = "demo_outcome"
    GENERIC = "generic"


# Task type per stage, as the tasks board assigns them.
TASK_TYPES = {
    Stage.NEW: "Call",
    Stage.RESPONDED: "Meeting",
    Stage.DEMO_SCHEDULED: "Meeting",
    Stage.DEMO_COMPLETED: "Meeting",
    Stage.SRS: "Follow-Up",
}


def generate_title(stage, lead_display_name=None, demo_count=None):
    """Build the task title for a lead entering ``stage``.

    Args:
        stage: Stage member or label (legacy labels accepted).
        lead_display_name: Lead name; blank falls back to "Client".
        demo_count: For demo stages, 1 for the first demo, 2+ for a repeat.

    Raises:
        InvalidStageError: Unknown stage, or an absorbing stage (no template).
        TerminalStageError: Converted — won leads never get new tasks.
    """
    stage = normalize_stage(stage)

    if stage == TERMINAL_STAGE:
        raise TerminalStageError(
            f"Cannot create tasks for leads in '{TERMINAL_STAGE.value}' stage"
        )
    if stage in ABSORBING_STAGES:
        raise InvalidStageError(f"No task template for stage '{stage.value}'")

    name = (lead_display_name or "").strip() or DEFAULT_DISPLAY_NAME

    if stage == Stage.NEW:
        return f"First Call – {name}"
    if stage == Stage.RESPONDED:
        return f"Schedule Demo – {name}"
    if stage in (Stage.DEMO_SCHEDULED, Stage.DEMO_COMPLETED):
        if (demo_count or 1) == 1:
            return f"Demo with {name}"
        return f"Second Demo – {name}"
    if stage == Stage.SRS:
        return f"SRS Follow-up – {name}"

    raise InvalidStageError(f"Unhandled stage: {stage.value}")


def can_open_task(stage):
    """True unless the lead is already won."""
    return normalize_stage(stage) != TERMINAL_STAGE


def template_flow(stage, demo_count=None):
    """Completion flow of the task generate_title() builds for ``stage``.

    Only the first demo session asks the second-demo question; a repeat
    demo (Demo Completed, or demo_count > 1) completes the generic way.
    """
    stage = normalize_stage(stage)
    if stage == Stage.NEW:
        return FlowKind.FIRST_CALL
    if stage == Stage.RESPONDED:
        return FlowKind.RESPONSE_CHECK
    if stage == Stage.DEMO_SCHEDULED and (demo_count or 1) == 1:
        return FlowKind.DEMO_OUTCOME
    return FlowKind.GENERIC


def classify_flow(stage, title):
    """Flow for a title that wasn't generated here (typed by hand, legacy rows).

    Only the template's leading words are read, never the lead name that
    follows them.
    """
    stage = normalize_stage(stage)
    t = " ".join((title or "").lower().split())

    if stage == Stage.NEW and (
        t.startswith("first call ")
        or (t.startswith("contact ") and t.endswith(" for the first time"))
    ):
        return FlowKind.FIRST_CALL
    if stage == Stage.RESPONDED and t.startswith("schedule demo "):
        return FlowKind.RESPONSE_CHECK
    if stage == Stage.DEMO_SCHEDULED and t.startswith("demo with "):
        return FlowKind.DEMO_OUTCOME
    return FlowKind.GENERIC


def task_type_for(stage):
    return TASK_TYPES.get(normalize_stage(stage), "Call")
