"""Task service — manual task CRUD and the stage-task spawn.

Titles are generated from the lead's stage when omitted and are immutable
afterwards. Completed tasks can't be edited or deleted.

spawn_stage_task() opens the next task after a lead changes stage. It is
idempotent: Task.active_stage_key is unique, so a lead can hold at most one
Pending stage task per stage, whether it was spawned or created by hand.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import datetime, timezone

from flask import current_app

from salesdesk.errors import ConflictError, TerminalStageError, ValidationError
from salesdesk.extensions import db
from salesdesk.models.task import Task
from salesdesk.pipeline.stages import ABSORBING_STAGES, DEMO_STAGES, normalize_stage
from salesdesk.pipeline.titles import (
    FlowKind,
    can_open_task,
    classify_flow,
    generate_title,
    task_type_for,
    template_flow,
)
from salesdesk.services import gateway
from salesdesk.services.inputs import (
    parse_datetime,
    pick_choice,
    sanitize,
    sanitize_optional,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("priority", "type", "comments", "due_date", "status")


def stage_key(lead_id, stage):
    return f"{lead_id}:{normalize_stage(stage).value}"


def _from_template(lead, stage):
    """Title, flow kind and demo number of the stage's template task."""
    demo_number = None
    if stage in DEMO_STAGES:
        demo_number = gateway.count_demo_tasks(lead.id) + 1
    title = generate_title(stage, lead.display_name, demo_count=demo_number)
    return title, template_flow(stage, demo_number), demo_number


def _slot_taken(key):
    return Task.query.filter_by(active_stage_key=key).first() is not None


def spawn_stage_task(lead, stage=None, force=False):
    """Open the system task for ``lead`` entering ``stage``.

    Args:
        lead: Lead the task belongs to.
        stage: Stage member or label. Defaults to the lead's current stage.
        force: Spawn even when AUTO_SPAWN_TASKS is off (repair jobs).

    Returns:
        The new Task, or None when nothing was created: auto-spawn is off,
        the stage can't hold a task (Converted, Disqualified, Junk Lead), or
        a Pending stage task for this lead and stage already exists.
    """
    stage = normalize_stage(stage if stage is not None else lead.stage)

    if not force and not current_app.config.get("AUTO_SPAWN_TASKS", True):
        logger.info(
            f"Auto-spawn off; leaving {stage.value} task for lead {lead.id} "
            "to the external trigger"
        )
        return None
    if not can_open_task(stage) or stage in ABSORBING_STAGES:
        return None

    key = stage_key(lead.id, stage)
    if _slot_taken(key):
        logger.info(f"Stage task already open for {key}, not spawning")
        return None

    title, flow, demo_number = _from_template(lead, stage)
    task = Task(
        lead_id=lead.id,
        sales_person_id=lead.assigned_to,
        title=title,
        type=task_type_for(stage),
        priority="Medium",
        stage=stage.value,
        flow_kind=flow.value,
        status="Pending",
        is_system=True,
        demo_number=demo_number,
        active_stage_key=key,
    )
    db.session.add(task)
    db.session.flush()

    logger.info(f"Spawned task '{title}' for lead {lead.id} at {stage.value}")
    return task


def create_manual_task(lead_id, scope, title=None, stage=None, type=None,
                       priority=None, comments=None, due_date=None,
                       sales_person_id=None):
    """Create a task by hand from the tasks board.

    Without a title the stage template is used, and the task becomes the
    lead's stage task for that stage (same slot a spawned task takes). A
    typed title that reads as a stage template (e.g. "First Call – ...")
    takes the slot too; any other title is a free-standing task.

    Args:
        lead_id: Lead UUID string (must be visible to ``scope``).
        scope: Caller's Scope.
        title: Optional title; generated from the stage when blank.
        stage: Optional stage label; defaults to the lead's current stage.
        type: One of Task.TYPES; defaults to the stage's task type.
        priority: One of Task.PRIORITIES; defaults to Medium.
        comments: Free text (sanitized).
        due_date: ISO-8601 string or None.
        sales_person_id: Owner; defaults to the lead's assignee.

    Returns:
        The created Task.

    Raises:
        NotFoundError: Lead not visible.
        TerminalStageError: Lead is Converted.
        InvalidStageError: Unknown stage, or a closed stage with no title.
        ConflictError: The lead already has a Pending task for this stage.
    """
    lead = gateway.get_lead(lead_id, scope)
    stage = normalize_stage(stage or lead.stage)

    if not can_open_task(stage):
        raise TerminalStageError(
            f"Cannot create tasks for leads in '{stage.value}' stage"
        )

    title = sanitize(title) if title else None
    if title:
        flow, demo_number = classify_flow(stage, title), None
        stage_task = flow != FlowKind.GENERIC
    else:
        title, flow, demo_number = _from_template(lead, stage)
        stage_task = True

    key = None
    if stage_task:
        key = stage_key(lead.id, stage)
        if _slot_taken(key):
            raise ConflictError(
                f"Lead already has an open {stage.value} task."
            )

    task = Task(
        lead_id=lead.id,
        sales_person_id=sales_person_id or lead.assigned_to,
        title=title,
        type=pick_choice(type, Task.TYPES, "type", default=task_type_for(stage)),
        priority=pick_choice(priority, Task.PRIORITIES, "priority", default="Medium"),
        stage=stage.value,
        flow_kind=flow.value,
        status="Pending",
        comments=sanitize_optional(comments),
        due_date=parse_datetime(due_date),
        is_system=False,
        demo_number=demo_number,
        active_stage_key=key,
    )
    db.session.add(task)
    db.session.flush()

    logger.info(f"Manual task '{title}' created for lead {lead.id}")
    return task


def update_task(task_id, scope, fields):
    """Apply a partial edit to a Pending task.

    Raises:
        ConflictError: Task is already Completed.
        ValidationError: Title edit, unknown field, or bad value.
    """
    task = gateway.get_task(task_id, scope, for_update=True)
    if task.is_completed:
        raise ConflictError("Completed tasks are immutable")

    if "title" in fields and fields["title"] != task.title:
        raise ValidationError("Task titles can't be changed after creation.")

    unknown = set(fields) - set(EDITABLE_FIELDS) - {"title"}
    if unknown:
        raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

    if "priority" in fields:
        task.priority = pick_choice(
            fields["priority"], Task.PRIORITIES, "priority", default=task.priority
        )
    if "type" in fields:
        task.type = pick_choice(fields["type"], Task.TYPES, "type", default=task.type)
    if "comments" in fields:
        task.comments = sanitize_optional(fields["comments"])
    if "due_date" in fields:
        task.due_date = parse_datetime(fields["due_date"])
    if "status" in fields:
        status = pick_choice(fields["status"], Task.STATUSES, "status",
                             default=task.status)
        if status == "Completed":
            mark_completed(task)

    db.session.flush()
    return task


def mark_completed(task):
    """Pending -> Completed. Frees the stage slot for a later spawn."""
    task.status = "Completed"
    task.completed_at = datetime.now(timezone.utc)
    task.active_stage_key = None
    db.session.flush()
    return task


def delete_task(task_id, scope):
    """Delete a Pending task. Completed tasks are part of the record."""
    task = gateway.get_task(task_id, scope, for_update=True)
    if task.is_completed:
        raise ConflictError("Completed tasks are immutable")
    db.session.delete(task)
    db.session.flush()
    logger.info(f"Deleted task {task_id}")
