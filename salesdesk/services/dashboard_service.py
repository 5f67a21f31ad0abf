"""Dashboard service — headline cards and pipeline counts.

Counts respect the caller's scope, so a salesperson sees numbers for their
own leads only. ``days`` limits the cards to a trailing window; 0 or None
means all time.
"""

from datetime import datetime, timedelta, timezone

from salesdesk.models.activity import Activity
from salesdesk.models.lead import Lead
from salesdesk.models.task import Task
from salesdesk.pipeline.stages import DEMO_STAGES, Stage
from salesdesk.pipeline.titles import FlowKind
from salesdesk.services import gateway

DEMO_LABELS = [s.value for s in DEMO_STAGES]


def _since(days):
    if not days:
        return None
    return datetime.now(timezone.utc) - timedelta(days=int(days))


def _window(query, column, since):
    if since is None:
        return query
    return query.filter(column >= since)


def cards(scope, days=None):
    """Numbers for the dashboard header cards."""
    since = _since(days)

    leads = _window(gateway.visible_leads(scope), Lead.created_at, since)
    completed = _window(
        gateway.visible_tasks(scope).filter(Task.status == "Completed"),
        Task.completed_at,
        since,
    )
    tasks = _window(gateway.visible_tasks(scope), Task.created_at, since)
    activities = _window(gateway.visible_activities(scope), Activity.created_at, since)

    leads_generated = leads.count()
    conversions = activities.filter(
        Activity.to_stage == Stage.CONVERTED.value
    ).count()
    conversion_rate = (
        round((conversions / leads_generated) * 100, 1)
        if leads_generated > 0
        else 0
    )

    return {
        "leadsGenerated": leads_generated,
        "firstCallDone": completed.filter(
            Task.flow_kind == FlowKind.FIRST_CALL.value
        ).count(),
        "qualifiedLeads": leads.filter(Lead.qualification == Lead.QUALIFIED).count(),
        "meetingScheduled": tasks.filter(Task.stage.in_(DEMO_LABELS)).count(),
        "meetingConducted": completed.filter(Task.stage.in_(DEMO_LABELS)).count(),
        "followUpCalls": activities.filter(Activity.activity_type == "call").count(),
        "proposalsSent": activities.filter(
            Activity.to_stage == Stage.SRS.value
        ).count(),
        "conversions": conversions,
        "conversionRate": conversion_rate,
        "days": int(days) if days else None,
    }


def pipeline_counts(scope):
    """Lead count per canonical stage, in stage-table order."""
    counts = {}
    for stage in Stage:
        counts[stage.value] = (
            gateway.visible_leads(scope).filter(Lead.stage == stage.value).count()
        )
    return {"stages": counts, "total": sum(counts.values())}
