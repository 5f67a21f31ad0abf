"""Persistence gateway — scoped reads over leads, tasks and activities.

Callers pass an explicit Scope instead of the query checking roles:

    Scope.all()          admin: every row, still caller-scoped
    Scope.owned_by(id)   salesperson: only rows tied to their leads
    Scope.system()       privileged bypass for system-initiated writes

Lookups that miss, or hit a row outside the scope, raise NotFoundError so
a salesperson can't tell other people's leads apart from missing ones.
"""

from dataclasses import dataclass
from typing import Optional

from salesdesk.errors import NotFoundError
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.models.lead import Lead
from salesdesk.models.task import Task


@dataclass(frozen=True)
class Scope:
    owner_id: Optional[str] = None
    privileged: bool = False

    @classmethod
    def all(cls):
        return cls()

    @classmethod
    def owned_by(cls, sales_person_id):
        return cls(owner_id=sales_person_id)

    @classmethod
    def system(cls):
        return cls(privileged=True)

    @classmethod
    def for_user(cls, user):
        """Scope for an authenticated SalesPerson or ServiceAccount."""
        if getattr(user, "is_system", False):
            return cls.system()
        if getattr(user, "is_admin", False):
            return cls.all()
        return cls.owned_by(user.id)

    @property
    def is_restricted(self):
        return not self.privileged and self.owner_id is not None


SYSTEM = Scope.system()


# ─── Leads ───────────────────────────────────────────────────────

def visible_leads(scope):
    query = Lead.query
    if scope.is_restricted:
        query = query.filter(Lead.assigned_to == scope.owner_id)
    return query


def get_lead(lead_id, scope):
    lead = db.session.get(Lead, lead_id) if lead_id else None
    if lead is None or not _lead_visible(lead, scope):
        raise NotFoundError(f"Lead {lead_id} not found.")
    return lead


def _lead_visible(lead, scope):
    return not scope.is_restricted or lead.assigned_to == scope.owner_id


# ─── Tasks ───────────────────────────────────────────────────────

def visible_tasks(scope):
    query = Task.query
    if scope.is_restricted:
        assigned_leads = db.session.query(Lead.id).filter(
            Lead.assigned_to == scope.owner_id
        )
        query = query.filter(
            db.or_(
                Task.sales_person_id == scope.owner_id,
                Task.lead_id.in_(assigned_leads),
            )
        )
    return query


def get_task(task_id, scope, for_update=False):
    """Fetch a task visible to ``scope``.

    ``for_update`` takes a row lock (SELECT ... FOR UPDATE on Postgres) so
    two completions of the same task serialise.
    """
    task = None
    if task_id and for_update:
        task = db.session.get(Task, task_id, with_for_update=True)
    elif task_id:
        task = db.session.get(Task, task_id)
    if task is None or not _task_visible(task, scope):
        raise NotFoundError(f"Task {task_id} not found.")
    return task


def _task_visible(task, scope):
    if not scope.is_restricted:
        return True
    if task.sales_person_id == scope.owner_id:
        return True
    lead = db.session.get(Lead, task.lead_id)
    return lead is not None and lead.assigned_to == scope.owner_id


def tasks_for_lead(lead_id, scope, title_contains=None):
    query = visible_tasks(scope).filter(Task.lead_id == lead_id)
    if title_contains:
        query = query.filter(Task.title.ilike(f"%{title_contains}%"))
    return query.order_by(Task.created_at.desc()).all()


def count_demo_tasks(lead_id):
    """Demo sessions already held or booked for a lead (not the booking task)."""
    return (
        Task.query
        .filter(Task.lead_id == lead_id)
        .filter(Task.demo_number.isnot(None))
        .count()
    )


# ─── Activities ──────────────────────────────────────────────────

def visible_activities(scope):
    query = Activity.query
    if scope.is_restricted:
        assigned_leads = db.session.query(Lead.id).filter(
            Lead.assigned_to == scope.owner_id
        )
        query = query.filter(
            db.or_(
                Activity.lead_id.in_(assigned_leads),
                Activity.actor_id == scope.owner_id,
            )
        )
    return query
