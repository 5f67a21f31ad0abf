"""Pipeline stages and the stage table.

Every lead is in exactly one stage. The happy path runs
New -> Responded -> Demo Scheduled -> SRS -> Converted.

Demo Completed is the "second demo" stage: it is only ever written by the
demo-outcome branch of task completion, and rejoins the main line at SRS.
Disqualified and Junk Lead are absorbing: they are written directly by the
first-call and response-check branches and are never a successor here.
"""

from enum import Enum

from salesdesk.errors import InvalidStageError


class Stage(str, Enum):
    NEW = "New"
    RESPONDED = "Responded"
    DEMO_SCHEDULED = "Demo Scheduled"
    DEMO_COMPLETED = "Demo Completed"
    SRS = "SRS"
    CONVERTED = "Converted"
    DISQUALIFIED = "Disqualified"
    JUNK = "Junk Lead"


INITIAL_STAGE = Stage.NEW

# (current stage) -> successor. None marks a stage with no successor.
STAGE_TABLE = {
    Stage.NEW: Stage.RESPONDED,
    Stage.RESPONDED: Stage.DEMO_SCHEDULED,
    Stage.DEMO_SCHEDULED: Stage.SRS,
    Stage.DEMO_COMPLETED: Stage.SRS,
    Stage.SRS: Stage.CONVERTED,
    Stage.CONVERTED: None,
    Stage.DISQUALIFIED: None,
    Stage.JUNK: None,
}

TERMINAL_STAGE = Stage.CONVERTED

# Reachable only from a completion branch, never from STAGE_TABLE.
ABSORBING_STAGES = {
    Stage.DISQUALIFIED,
    Stage.JUNK,
}

CLOSED_STAGES = ABSORBING_STAGES | {TERMINAL_STAGE}

OPEN_STAGES = [s for s in Stage if s not in CLOSED_STAGES]

# Stages whose tasks are demo sessions.
DEMO_STAGES = (Stage.DEMO_SCHEDULED, Stage.DEMO_COMPLETED)

# Labels from the older CRM view (New -> Contacted -> Demo -> Proposal ->
# Follow-Up -> Won) and common spellings, folded onto the canonical set.
_ALIASES = {
    "contacted": Stage.RESPONDED,
    "demo": Stage.DEMO_SCHEDULED,
    "second demo": Stage.DEMO_COMPLETED,
    "proposal": Stage.SRS,
    "follow-up": Stage.SRS,
    "follow up": Stage.SRS,
    "followup": Stage.SRS,
    "follow_up": Stage.SRS,
    "won": Stage.CONVERTED,
    "lost lead": Stage.DISQUALIFIED,
    "lost": Stage.DISQUALIFIED,
    "junk": Stage.JUNK,
}

_BY_LABEL = {s.value.lower(): s for s in Stage}


def normalize_stage(label):
    """Return the canonical Stage for a label, or raise InvalidStageError.

    Accepts Stage members, canonical labels and legacy labels,
    case-insensitively. Blank input is rejected, never defaulted.
    """
    if isinstance(label, Stage):
        return label
    if not isinstance(label, str) or not label.strip():
        raise InvalidStageError(
            f"Invalid stage: {label!r}. Stage must be a non-empty string."
        )

    key = " ".join(label.strip().lower().split())
    stage = _BY_LABEL.get(key) or _ALIASES.get(key)
    if stage is None:
        raise InvalidStageError(
            f"Invalid stage: {label}. Valid stages are: "
            f"{', '.join(s.value for s in Stage)}"
        )
    return stage


def next_stage(stage):
    """Successor of ``stage`` in the stage table, or None at the end."""
    return STAGE_TABLE[normalize_stage(stage)]
