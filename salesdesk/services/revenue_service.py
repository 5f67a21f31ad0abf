"""Revenue service — booked revenue, sales targets, and target achievement.

Transactions are scoped like leads: a salesperson books revenue only on
leads assigned to them, in their own name, and lists only their own rows.
Targets are set by admins per period. KPIs compare the period's actuals
against its target:

    leads       leads created in the period
    calls       first calls completed
    meetings    demo sessions completed
    prospects   leads created in the period and marked Qualified
    proposals   leads moved to SRS
    converted   leads moved to Converted
    revenue     sum of closed transactions (by closed_date)

Functions flush but do NOT commit — the caller commits.
"""

import calendar
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation

from salesdesk.errors import ForbiddenError, ValidationError
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.models.lead import Lead
from salesdesk.models.revenue import RevenueTransaction, SalesTarget
from salesdesk.models.sales_person import SalesPerson
from salesdesk.models.task import Task
from salesdesk.pipeline.stages import DEMO_STAGES, Stage
from salesdesk.pipeline.titles import FlowKind
from salesdesk.services import gateway
from salesdesk.services.inputs import parse_date, pick_choice

logger = logging.getLogger(__name__)


# ─── Transactions ────────────────────────────────────────────────

def _amount(value):
    if value is None or value == "":
        raise ValidationError("amount is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("amount must be a valid positive number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("amount must be a valid positive number")
    return amount.quantize(Decimal("0.01"))


def record_transaction(data, scope, actor_id=None):
    """Book revenue against a lead.

    Args:
        data: Dict with lead_id, amount, closed_date, and optional status
            (default closed) and sales_person_id (default the lead's
            assignee; salespeople always book in their own name).
        scope: Caller's Scope; the lead must be visible to it.
        actor_id: SalesPerson UUID of the caller, if any.

    Raises:
        NotFoundError: Lead not visible.
        ForbiddenError: A salesperson booking in someone else's name.
        ValidationError: Missing / bad amount, date, status or sales person.
    """
    if not data.get("lead_id"):
        raise ValidationError("lead_id is required")
    lead = gateway.get_lead(data["lead_id"], scope)

    amount = _amount(data.get("amount"))
    closed_date = parse_date(data.get("closed_date"), "closed_date")
    if closed_date is None:
        raise ValidationError("closed_date is required")
    status = pick_choice(
        data.get("status"), RevenueTransaction.STATUSES, "status", default="closed"
    )

    sales_person_id = data.get("sales_person_id")
    if scope.is_restricted:
        if sales_person_id and sales_person_id != scope.owner_id:
            raise ForbiddenError("Access denied: Invalid sales person")
        sales_person_id = scope.owner_id
    else:
        sales_person_id = sales_person_id or lead.assigned_to
        if not sales_person_id:
            raise ValidationError("sales_person_id is required")
        if db.session.get(SalesPerson, sales_person_id) is None:
            raise ValidationError(f"Unknown sales person {sales_person_id}.")

    txn = RevenueTransaction(
        lead_id=lead.id,
        sales_person_id=sales_person_id,
        amount=amount,
        status=status,
        closed_date=closed_date,
        created_by=actor_id,
    )
    db.session.add(txn)
    db.session.flush()

    logger.info(f"Revenue {amount} ({status}) booked on lead {lead.id}")
    return txn


def visible_transactions(scope, lead_id=None):
    query = RevenueTransaction.query
    if scope.is_restricted:
        query = query.filter(RevenueTransaction.sales_person_id == scope.owner_id)
    if lead_id:
        query = query.filter(RevenueTransaction.lead_id == lead_id)
    return query.order_by(RevenueTransaction.created_at.desc())


# ─── Periods ─────────────────────────────────────────────────────

def _int_arg(value, field, default):
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def period_range(period_type, year=None, month=None, quarter=None, on=None):
    """(start, end) dates, both inclusive, of a calendar period.

    weekly is the Monday-to-Sunday week containing ``on`` (default today);
    the other types default to the current month / quarter / year.
    """
    period_type = pick_choice(
        period_type, SalesTarget.PERIOD_TYPES, "period_type", default="monthly"
    )
    today = parse_date(on, "on") or date.today()

    if period_type == "weekly":
        start = today - timedelta(days=today.weekday())
        return period_type, start, start + timedelta(days=6)

    year = _int_arg(year, "year", today.year)
    if period_type == "monthly":
        month = _int_arg(month, "month", today.month)
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12.")
        last = calendar.monthrange(year, month)[1]
        return period_type, date(year, month, 1), date(year, month, last)
    if period_type == "quarterly":
        quarter = _int_arg(quarter, "quarter", (today.month - 1) // 3 + 1)
        if not 1 <= quarter <= 4:
            raise ValidationError("quarter must be between 1 and 4.")
        first_month = (quarter - 1) * 3 + 1
        last = calendar.monthrange(year, first_month + 2)[1]
        return period_type, date(year, first_month, 1), date(year, first_month + 2, last)
    return period_type, date(year, 1, 1), date(year, 12, 31)


def _explicit_range(period_type, start, end):
    period_type = pick_choice(
        period_type, SalesTarget.PERIOD_TYPES, "period_type", default="monthly"
    )
    start = parse_date(start, "period_start")
    end = parse_date(end, "period_end")
    if start is None or end is None:
        raise ValidationError("period_start and period_end are required together.")
    if start > end:
        raise ValidationError("period_start must be before or equal to period_end")
    return period_type, start, end


def resolve_period(args):
    """Period from request args: explicit period_start / period_end, or
    period_type with year / month / quarter."""
    period_type = args.get("period_type") or args.get("periodType")
    if args.get("period_start") or args.get("period_end"):
        return _explicit_range(period_type, args.get("period_start"), args.get("period_end"))
    return period_range(
        period_type, args.get("year"), args.get("month"), args.get("quarter"), args.get("on")
    )


# ─── Targets ─────────────────────────────────────────────────────

def _target_value(value, field):
    if value is None or value == "":
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Target {field} must be a whole number.")
    if number < 0:
        raise ValidationError("Target values cannot be negative")
    return number


def save_target(data, actor_id=None):
    """Create or overwrite the target for one period.

    Args:
        data: Dict with period_type, either period_start / period_end or
            year / month / quarter, and a ``targets`` object (leads, calls,
            meetings, prospects, proposals, converted, revenue).

    Returns:
        (SalesTarget, created)
    """
    targets = data.get("targets")
    if not isinstance(targets, dict):
        raise ValidationError("Missing or invalid targets object")
    period_type, start, end = resolve_period(data)

    revenue = targets.get("revenue", data.get("target_revenue"))
    revenue = Decimal(0) if revenue in (None, "") else _amount(revenue)

    target = SalesTarget.query.filter_by(
        period_type=period_type, period_start=start
    ).first()
    created = target is None
    if created:
        target = SalesTarget(period_type=period_type, period_start=start,
                             created_by=actor_id)
        db.session.add(target)

    target.period_end = end
    for metric in SalesTarget.METRICS:
        setattr(target, f"target_{metric}", _target_value(targets.get(metric), metric))
    target.target_revenue = revenue
    db.session.flush()

    logger.info(
        f"Sales target {'created' if created else 'updated'}: {period_type} {start}"
    )
    return target, created


def list_targets(period_type=None):
    query = SalesTarget.query
    if period_type:
        period_type = pick_choice(period_type, SalesTarget.PERIOD_TYPES, "period_type")
        query = query.filter(SalesTarget.period_type == period_type)
    return query.order_by(SalesTarget.period_start.desc()).all()


# ─── Achievement ─────────────────────────────────────────────────

def _bounds(start, end):
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc),
    )


def actuals(scope, start, end):
    """Funnel counts and closed revenue between two dates, inclusive."""
    lo, hi = _bounds(start, end)

    leads = gateway.visible_leads(scope).filter(
        Lead.created_at >= lo, Lead.created_at < hi
    )
    completed = gateway.visible_tasks(scope).filter(
        Task.status == "Completed", Task.completed_at >= lo, Task.completed_at < hi
    )
    moves = gateway.visible_activities(scope).filter(
        Activity.created_at >= lo, Activity.created_at < hi
    )
    revenue = (
        visible_transactions(scope)
        .filter(RevenueTransaction.status == "closed")
        .filter(RevenueTransaction.closed_date >= start)
        .filter(RevenueTransaction.closed_date <= end)
        .with_entities(db.func.coalesce(db.func.sum(RevenueTransaction.amount), 0))
        .scalar()
    )

    return {
        "leads": leads.count(),
        "calls": completed.filter(Task.flow_kind == FlowKind.FIRST_CALL.value).count(),
        "meetings": completed.filter(
            Task.stage.in_([s.value for s in DEMO_STAGES])
        ).count(),
        "prospects": leads.filter(Lead.qualification == Lead.QUALIFIED).count(),
        "proposals": moves.filter(Activity.to_stage == Stage.SRS.value).count(),
        "converted": moves.filter(Activity.to_stage == Stage.CONVERTED.value).count(),
        "revenue": float(revenue or 0),
    }


def achievement(actual, target):
    """Actual vs target: percentage (rounded half up) and what's left."""
    if not target:
        percentage = 100 if actual > 0 else 0
    else:
        percentage = math.floor(actual / target * 100 + 0.5)
    return {
        "actual": actual,
        "target": target,
        "percentage": percentage,
        "remaining": max(0, target - actual),
    }


def kpis(scope, period_type, start, end):
    """Target achievement for one period. Missing targets count as zero."""
    target = SalesTarget.query.filter_by(
        period_type=period_type, period_start=start
    ).first()
    goals = target.targets() if target else dict.fromkeys(SalesTarget.METRICS, 0)
    goals.setdefault("revenue", 0.0)

    done = actuals(scope, start, end)
    return {
        "period": {
            "type": period_type,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "hasTarget": target is not None,
        },
        "revenue": achievement(done["revenue"], goals["revenue"]),
        "funnel": {m: achievement(done[m], goals[m]) for m in SalesTarget.METRICS},
    }
