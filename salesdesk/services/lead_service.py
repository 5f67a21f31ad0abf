"""Lead service — intake, field updates, and stage moves.

Every stage write goes through move_to_stage(), which also opens the next
stage task. Manual moves (PATCH from the leads board) may only step to the
stage-table successor; the branch stages (Demo Completed, Disqualified,
Junk Lead) are written by task completion alone.

Functions flush but do NOT commit — the caller commits.
"""

import logging

from salesdesk.errors import (
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from salesdesk.extensions import db
from salesdesk.models.lead import Lead
from salesdesk.models.sales_person import SalesPerson
from salesdesk.pipeline.stages import (
    INITIAL_STAGE,
    OPEN_STAGES,
    next_stage,
    normalize_stage,
)
from salesdesk.services import activity_service, gateway, task_service
from salesdesk.services.inputs import pick_choice, sanitize, sanitize_optional

logger = logging.getLogger(__name__)

SOURCES = ["website", "referral", "linkedin", "cold_call", "other"]
SCORE_FIELDS = ("lead_score", "responsiveness_score", "conversion_probability_score")

# JSON key -> column, for plain text fields.
TEXT_FIELDS = {
    "name": "lead_name",
    "contactName": "contact_name",
    "email": "email",
    "phone": "phone",
    "company": "company",
    "location": "location",
    "campaign": "campaign",
    "budget": "budget",
    "nextStageNotes": "next_stage_notes",
}


def _score(value, field):
    if value is None or value == "":
        return 0
    try:
        score = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number.")
    if score < 0:
        raise ValidationError(f"{field} can't be negative.")
    return score


def _check_email(email):
    if email and ("@" not in email or "." not in email.split("@")[-1]):
        raise ValidationError(f"Invalid email address: {email}")


def _check_assignee(sales_person_id):
    if not sales_person_id:
        return None
    person = db.session.get(SalesPerson, sales_person_id)
    if person is None or not person.is_active:
        raise ValidationError(f"Unknown sales person {sales_person_id}.")
    return person.id


def create_lead(data, scope, actor_id=None):
    """Create a lead from the intake form and open its first task.

    Args:
        data: Dict of JSON fields (name, contactName, email, ..., priority,
            source, stage, assignedTo and the three score fields).
        scope: Caller's Scope. Salespeople always own the leads they add.
        actor_id: SalesPerson UUID of the caller, if any.

    Returns:
        (lead, first_task). first_task is None when auto-spawn is off.

    Raises:
        ValidationError: Missing name, bad email / priority / source / score.
        InvalidStageError: Unknown stage label.
    """
    lead_name = sanitize(data.get("name") or data.get("company") or "")
    if not lead_name:
        raise ValidationError("Lead name is required.")

    email = sanitize_optional(data.get("email"))
    _check_email(email)

    stage = normalize_stage(data.get("stage") or INITIAL_STAGE)
    if stage not in OPEN_STAGES:
        raise ValidationError(
            f"New leads must start in an open stage, not '{stage.value}'."
        )

    if scope.is_restricted:
        assigned_to = scope.owner_id
    else:
        assigned_to = _check_assignee(data.get("assignedTo"))

    lead = Lead(
        lead_name=lead_name,
        contact_name=sanitize_optional(data.get("contactName")),
        email=email,
        phone=sanitize_optional(data.get("phone")),
        company=sanitize_optional(data.get("company")) or lead_name,
        location=sanitize_optional(data.get("location")),
        campaign=sanitize_optional(data.get("campaign")),
        budget=sanitize_optional(data.get("budget")),
        lead_source=pick_choice(data.get("source"), SOURCES, "source"),
        priority=pick_choice(data.get("priority"), Lead.PRIORITIES, "priority",
                             default="Warm"),
        stage=stage.value,
        assigned_to=assigned_to,
    )
    for field in SCORE_FIELDS:
        setattr(lead, field, _score(data.get(field), field))
    lead.recompute_total_score()

    db.session.add(lead)
    db.session.flush()

    activity_service.record(
        lead,
        "stage_change",
        title="Lead created",
        actor_id=actor_id,
        to_stage=stage,
    )
    first_task = task_service.spawn_stage_task(lead, stage)

    logger.info(f"Lead intake: {lead.lead_name} ({lead.id}) at {stage.value}")
    return lead, first_task


def update_lead(lead_id, scope, data, actor_id=None):
    """Apply a partial edit from the leads board.

    A ``stage`` key is handed to advance_stage(). Only admins may reassign.

    Returns:
        (lead, spawned_task_or_None)
    """
    lead = gateway.get_lead(lead_id, scope)

    for key, column in TEXT_FIELDS.items():
        if key not in data:
            continue
        value = sanitize_optional(data[key])
        if column == "lead_name" and not value:
            raise ValidationError("Lead name is required.")
        if column == "email":
            _check_email(value)
        setattr(lead, column, value)

    if "priority" in data:
        lead.priority = pick_choice(data["priority"], Lead.PRIORITIES, "priority",
                                    default=lead.priority)
    if "source" in data:
        lead.lead_source = pick_choice(data["source"], SOURCES, "source")
    if "qualification" in data:
        lead.qualification = pick_choice(
            data["qualification"], Lead.QUALIFICATIONS, "qualification"
        )
    if "responseStatus" in data:
        lead.response_status = pick_choice(
            data["responseStatus"], Lead.RESPONSE_STATUSES, "responseStatus"
        )

    if "assignedTo" in data:
        if scope.is_restricted:
            raise ForbiddenError("Only admins can reassign leads.")
        lead.assigned_to = _check_assignee(data["assignedTo"])

    scores_changed = False
    for field in SCORE_FIELDS:
        if field in data:
            setattr(lead, field, _score(data[field], field))
            scores_changed = True
    if scores_changed:
        lead.recompute_total_score()

    spawned = None
    if "stage" in data and normalize_stage(data["stage"]).value != lead.stage:
        spawned = advance_stage(lead, data["stage"], actor_id=actor_id)

    db.session.flush()
    return lead, spawned


def advance_stage(lead, target, actor_id=None):
    """Manually move ``lead`` one step along the stage table.

    Raises:
        InvalidTransitionError: ``target`` isn't the successor of the
            lead's stage (this includes every move out of a closed stage).
    """
    target = normalize_stage(target)
    expected = next_stage(lead.stage)
    if expected is None or target != expected:
        raise InvalidTransitionError(
            f"Cannot move lead from '{lead.stage}' to '{target.value}'."
        )

    from_stage = lead.stage
    spawned = move_to_stage(lead, target)
    activity_service.record(
        lead,
        "stage_change",
        title=f"Stage changed to {target.value}",
        actor_id=actor_id,
        from_stage=from_stage,
        to_stage=target,
    )
    return spawned


def move_to_stage(lead, stage):
    """Write ``stage`` on the lead and open its task. Returns the new task or None."""
    stage = normalize_stage(stage)
    previous = lead.stage
    lead.stage = stage.value
    db.session.flush()

    logger.info(f"Lead {lead.id} stage {previous} -> {stage.value}")
    return task_service.spawn_stage_task(lead, stage)
