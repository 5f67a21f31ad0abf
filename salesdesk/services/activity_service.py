"""Activity service — append-only writes to the lead timeline.

There is deliberately no update or delete here. Functions flush but do NOT
commit — the caller commits.
"""

from datetime import datetime, timezone

from salesdesk.errors import ValidationError
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.services import gateway
from salesdesk.services.inputs import parse_datetime, pick_choice, sanitize_optional


def record(lead, activity_type, title=None, comments=None, outcome=None,
           task=None, actor_id=None, from_stage=None, to_stage=None,
           next_stage_notes=None, connect_through=None, due_date=None):
    """Append one activity for ``lead`` and bump its last_activity_at.

    Returns:
        The created Activity.
    """
    if activity_type not in Activity.TYPES:
        raise ValidationError(
            f"Invalid activity type '{activity_type}'. "
            f"Must be one of: {', '.join(Activity.TYPES)}"
        )
    if outcome is not None and outcome not in Activity.OUTCOMES:
        raise ValidationError(f"Invalid outcome '{outcome}'.")

    activity = Activity(
        lead_id=lead.id,
        task_id=task.id if task is not None else None,
        actor_id=actor_id,
        activity_type=activity_type,
        title=sanitize_optional(title),
        comments=sanitize_optional(comments),
        outcome=outcome,
        from_stage=_label(from_stage),
        to_stage=_label(to_stage),
        next_stage_notes=sanitize_optional(next_stage_notes),
        connect_through=sanitize_optional(connect_through),
        due_date=parse_datetime(due_date),
    )
    db.session.add(activity)
    lead.last_activity_at = datetime.now(timezone.utc)
    db.session.flush()
    return activity


def log_manual(lead_id, scope, activity_type, comments, actor_id=None,
               connect_through=None, due_date=None, outcome=None):
    """Log a call / email / note a salesperson made outside a task.

    Raises:
        NotFoundError: Lead not visible to ``scope``.
        ValidationError: Empty comment or bad type / outcome.
    """
    lead = gateway.get_lead(lead_id, scope)

    if not sanitize_optional(comments):
        raise ValidationError("Comment is required.")
    if activity_type in ("task", "stage_change"):
        raise ValidationError(
            f"Activity type '{activity_type}' is recorded by the system."
        )
    outcome = pick_choice(outcome, Activity.OUTCOMES, "outcome")

    return record(
        lead,
        activity_type,
        title=f"{activity_type.capitalize()} logged",
        comments=comments,
        outcome=outcome,
        actor_id=actor_id,
        connect_through=connect_through,
        due_date=due_date,
    )


def _label(stage):
    if stage is None:
        return None
    return getattr(stage, "value", stage)
