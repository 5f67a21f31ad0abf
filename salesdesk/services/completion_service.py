"""Completion service — resolve a task completion into its side effects.

The branch is picked from the task's frozen creation-time stage and its
stored flow kind, never from the lead's live stage (the lead may have moved
on since the task was opened):

    first_call       qualified | not_qualified | not_connected
    response_check   responded | not_responded | junk
    demo_outcome     second_demo | no_second_demo
    generic          success | reschedule | no_response

Every resolution appends exactly one activity. "not_connected" and
"not_responded" leave the task Pending for a retry; every other outcome
completes it. Stage writes go through lead_service.move_to_stage(), which
opens the next task.

All validation runs before the first write. Functions flush but do NOT
commit — the blueprint commits once, or rolls the whole resolution back.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from salesdesk.errors import (
    CommentRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.models.lead import Lead
from salesdesk.models.task import Task
from salesdesk.pipeline.stages import Stage, next_stage, normalize_stage
from salesdesk.pipeline.titles import FlowKind, classify_flow
from salesdesk.services import activity_service, gateway, lead_service, task_service
from salesdesk.services.inputs import sanitize_optional

logger = logging.getLogger(__name__)

ALLOWED_OUTCOMES = {
    FlowKind.FIRST_CALL: ("qualified", "not_qualified", "not_connected"),
    FlowKind.RESPONSE_CHECK: ("responded", "not_responded", "junk"),
    FlowKind.DEMO_OUTCOME: ("second_demo", "no_second_demo"),
    FlowKind.GENERIC: ("success", "reschedule", "no_response"),
}

# Outcomes that run the generic completion and so need a comment.
COMMENT_REQUIRED = {"qualified", "responded", "success", "reschedule", "no_response"}

# Outcomes that leave the task Pending.
RETRY_OUTCOMES = {"not_connected", "not_responded"}

GENERIC_TAGS = {
    "success": Activity.SUCCESS,
    "reschedule": Activity.RESCHEDULE,
    "no_response": Activity.NO_RESPONSE,
}

DEFAULT_COMMENTS = {
    "not_qualified": "Lead not qualified on first call",
    "not_connected": "Client did not answer the first call",
    "not_responded": "No response from client yet",
    "junk": "Marked as junk lead",
    "second_demo": "Demo completed - scheduling second demo",
    "no_second_demo": "Demo completed - proceeding to next stage",
}


@dataclass
class CompletionResult:
    task: Task
    lead: Lead
    activity: Activity
    flow_kind: FlowKind
    outcome: str
    completed: bool
    new_stage: Optional[Stage] = None
    spawned_task: Optional[Task] = None

    def to_dict(self):
        return {
            "task": self.task.to_dict(),
            "lead": self.lead.to_dict(),
            "activity": self.activity.to_dict(),
            "flow_kind": self.flow_kind.value,
            "outcome": self.outcome,
            "completed": self.completed,
            "new_stage": self.new_stage.value if self.new_stage else None,
            "spawned_task": self.spawned_task.to_dict() if self.spawned_task else None,
        }


def flow_for(task):
    """Stored flow kind, or one derived from the frozen stage and title."""
    if task.flow_kind:
        try:
            return FlowKind(task.flow_kind)
        except ValueError:
            raise ValidationError(f"Unknown flow kind '{task.flow_kind}' on task.")
    return classify_flow(task.stage, task.title)


def _normalize_outcome(outcome):
    if outcome is None:
        return None
    return "_".join(str(outcome).strip().lower().replace("-", " ").split()) or None


def describe_completion(task_id, scope):
    """What the completion dialog should offer for a task."""
    task = gateway.get_task(task_id, scope)
    flow = flow_for(task)
    outcomes = ALLOWED_OUTCOMES[flow]
    return {
        "task_id": task.id,
        "status": task.status,
        "stage": task.stage,
        "flow_kind": flow.value,
        "outcomes": list(outcomes),
        "comment_required": [o for o in outcomes if o in COMMENT_REQUIRED],
    }


def resolve_completion(task_id, scope, outcome=None, comment=None,
                       next_stage_notes=None, connect_through=None,
                       due_date=None, actor_id=None):
    """Complete (or log a retry on) a task and apply the lead changes.

    Args:
        task_id: Task UUID string.
        scope: Caller's Scope; the task must be visible to it.
        outcome: One of ALLOWED_OUTCOMES[flow]. Generic defaults to success.
        comment: Free text for the activity. Required for the generic
            completion (and the qualified / responded outcomes that run it).
        next_stage_notes: Stored on the lead when it advances.
        connect_through: How the client was reached (phone, email, ...).
        due_date: Follow-up date recorded on the activity.
        actor_id: SalesPerson UUID of the caller.

    Returns:
        CompletionResult.

    Raises:
        NotFoundError: Task not visible, or its lead is gone.
        ConflictError: Task already Completed.
        InvalidStageError: Task has no recognisable frozen stage.
        ValidationError: Outcome not allowed for the task's flow.
        CommentRequiredError: Missing comment where one is required.
    """
    task = gateway.get_task(task_id, scope, for_update=True)
    if task.is_completed:
        raise ConflictError("Completed tasks are immutable")

    frozen_stage = normalize_stage(task.stage)

    lead = db.session.get(Lead, task.lead_id)
    if lead is None:
        raise NotFoundError(f"Lead {task.lead_id} not found.")

    flow = flow_for(task)
    outcome = _normalize_outcome(outcome)
    if outcome is None and flow == FlowKind.GENERIC:
        outcome = "success"
    if outcome not in ALLOWED_OUTCOMES[flow]:
        logger.warning(f"Rejected outcome {outcome!r} for {flow.value} task {task.id}")
        raise ValidationError(
            f"Invalid outcome '{outcome}' for this task. "
            f"Must be one of: {', '.join(ALLOWED_OUTCOMES[flow])}"
        )

    comment = sanitize_optional(comment)
    if outcome in COMMENT_REQUIRED and not comment:
        logger.warning(f"Completion of task {task.id} rejected: no comment")
        raise CommentRequiredError()

    # -- Writes from here on --
    ctx = _Resolution(
        task=task,
        lead=lead,
        frozen_stage=frozen_stage,
        flow=flow,
        outcome=outcome,
        comment=comment or DEFAULT_COMMENTS.get(outcome),
        next_stage_notes=sanitize_optional(next_stage_notes),
        connect_through=connect_through,
        due_date=due_date,
        actor_id=actor_id,
    )
    result = _BRANCHES[outcome](ctx)

    logger.info(
        f"Task {task.id} resolved: flow={flow.value} outcome={outcome} "
        f"completed={result.completed} stage={lead.stage}"
    )
    return result


@dataclass
class _Resolution:
    task: Task
    lead: Lead
    frozen_stage: Stage
    flow: FlowKind
    outcome: str
    comment: Optional[str]
    next_stage_notes: Optional[str]
    connect_through: Optional[str]
    due_date: object
    actor_id: Optional[str]

    def log(self, tag, from_stage=None, to_stage=None):
        return activity_service.record(
            self.lead,
            "task",
            title=self.task.title,
            comments=self.comment,
            outcome=tag,
            task=self.task,
            actor_id=self.actor_id,
            from_stage=from_stage,
            to_stage=to_stage,
            next_stage_notes=self.next_stage_notes,
            connect_through=self.connect_through,
            due_date=self.due_date,
        )

    def complete(self):
        if self.comment:
            self.task.comments = self.comment
        task_service.mark_completed(self.task)

    def result(self, activity, completed, new_stage=None, spawned=None):
        return CompletionResult(
            task=self.task,
            lead=self.lead,
            activity=activity,
            flow_kind=self.flow,
            outcome=self.outcome,
            completed=completed,
            new_stage=new_stage,
            spawned_task=spawned,
        )


def _move(ctx, stage):
    """Write ``stage`` on the lead, keeping any next-stage notes."""
    if ctx.next_stage_notes:
        ctx.lead.next_stage_notes = ctx.next_stage_notes
    return lead_service.move_to_stage(ctx.lead, stage)


def _generic(ctx, tag=None):
    """Log, complete, and advance the lead one step along the stage table."""
    from_stage = ctx.lead.stage
    target = next_stage(from_stage)
    tag = tag or GENERIC_TAGS.get(ctx.outcome, Activity.SUCCESS)

    activity = ctx.log(tag, from_stage=from_stage, to_stage=target)
    ctx.complete()

    spawned = None
    if target is not None:
        spawned = _move(ctx, target)
    return ctx.result(activity, True, new_stage=target, spawned=spawned)


def _qualified(ctx):
    ctx.lead.qualification = Lead.QUALIFIED
    return _generic(ctx, Activity.SUCCESS)


def _not_qualified(ctx):
    from_stage = ctx.lead.stage
    ctx.lead.qualification = Lead.UNQUALIFIED
    activity = ctx.log(Activity.DISQUALIFIED, from_stage=from_stage,
                       to_stage=Stage.DISQUALIFIED)
    ctx.complete()
    _move(ctx, Stage.DISQUALIFIED)
    return ctx.result(activity, True, new_stage=Stage.DISQUALIFIED)


def _not_connected(ctx):
    activity = ctx.log(Activity.NOT_CONNECTED)
    return ctx.result(activity, False)


def _responded(ctx):
    ctx.lead.response_status = Lead.RESPONDED
    return _generic(ctx, Activity.SUCCESS)


def _not_responded(ctx):
    activity = ctx.log(Activity.NO_RESPONSE)
    return ctx.result(activity, False)


def _junk(ctx):
    from_stage = ctx.lead.stage
    ctx.lead.response_status = Lead.JUNK
    activity = ctx.log(Activity.JUNK, from_stage=from_stage, to_stage=Stage.JUNK)
    ctx.complete()
    _move(ctx, Stage.JUNK)
    return ctx.result(activity, True, new_stage=Stage.JUNK)


def _second_demo(ctx):
    from_stage = ctx.lead.stage
    activity = ctx.log(Activity.SUCCESS, from_stage=from_stage,
                       to_stage=Stage.DEMO_COMPLETED)
    ctx.complete()
    spawned = _move(ctx, Stage.DEMO_COMPLETED)
    return ctx.result(activity, True, new_stage=Stage.DEMO_COMPLETED, spawned=spawned)


def _no_second_demo(ctx):
    return _generic(ctx, Activity.SUCCESS)


_BRANCHES = {
    "qualified": _qualified,
    "not_qualified": _not_qualified,
    "not_connected": _not_connected,
    "responded": _responded,
    "not_responded": _not_responded,
    "junk": _junk,
    "second_demo": _second_demo,
    "no_second_demo": _no_second_demo,
    "success": _generic,
    "reschedule": _generic,
    "no_response": _generic,
}
