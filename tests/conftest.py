"""Shared test fixtures for the Salesdesk test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, rate limits off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: an admin, two salespeople, and leads with their first tasks
- header helpers for the delegated auth boundary
"""

import pytest

from salesdesk import create_app
from salesdesk.extensions import db as _db
from salesdesk.models.sales_person import SalesPerson
from salesdesk.models.task import Task
from salesdesk.services import lead_service
from salesdesk.services.gateway import SYSTEM

SERVICE_KEY = "test-service-key"


def as_user(email):
    """Headers the upstream auth provider sets for a signed-in user."""
    return {"X-Auth-Email": email}


def as_service():
    return {"Authorization": f"Bearer {SERVICE_KEY}"}


def pending_task(lead_id):
    """The single Pending task of a lead (asserts there is exactly one)."""
    tasks = Task.query.filter_by(lead_id=lead_id, status="Pending").all()
    assert len(tasks) == 1, [t.title for t in tasks]
    return tasks[0]


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        app.config["AUTO_SPAWN_TASKS"] = True
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(app, db_session):
    """Seed sales people and two leads (each opened with a first-call task).

    Returns a dict of plain IDs so tests can re-fetch rows as needed.
    """
    admin = SalesPerson(
        email="admin@salesdesk.test", full_name="Admin User", role="admin"
    )
    rep = SalesPerson(
        email="rep@salesdesk.test", full_name="Rita Rep", role="salesperson"
    )
    other_rep = SalesPerson(
        email="other@salesdesk.test", full_name="Omar Other", role="salesperson"
    )
    inactive = SalesPerson(
        email="gone@salesdesk.test", full_name="Gone", role="salesperson",
        is_active=False,
    )
    _db.session.add_all([admin, rep, other_rep, inactive])
    _db.session.flush()

    lead, first_task = lead_service.create_lead(
        {"name": "Acme Logistics", "contactName": "Ada Park",
         "email": "ada@acme.test", "assignedTo": rep.id},
        SYSTEM,
    )
    other_lead, other_task = lead_service.create_lead(
        {"name": "Globex Retail", "assignedTo": other_rep.id},
        SYSTEM,
    )
    _db.session.commit()

    return {
        "admin_id": admin.id,
        "admin_email": admin.email,
        "rep_id": rep.id,
        "rep_email": rep.email,
        "other_rep_id": other_rep.id,
        "other_rep_email": other_rep.email,
        "inactive_email": inactive.email,
        "lead_id": lead.id,
        "first_task_id": first_task.id,
        "other_lead_id": other_lead.id,
        "other_task_id": other_task.id,
    }
