"""Tests for manual tasks and the stage-task spawn.

Covers:
- spawn is idempotent per (lead, stage) and frees the slot on completion
- no spawn for Converted / absorbing stages, or with AUTO_SPAWN_TASKS off
- manual task creation (generated title, frozen stage, flow kind)
- edits: title immutable, completed tasks immutable, field validation
- delete: Pending only
"""

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import pending_task
from salesdesk.errors import (
    ConflictError,
    NotFoundError,
    TerminalStageError,
    ValidationError,
)
from salesdesk.extensions import db
from salesdesk.models.lead import Lead
from salesdesk.models.task import Task
from salesdesk.services import task_service
from salesdesk.services.gateway import SYSTEM, Scope


def _lead(lead_id):
    return db.session.get(Lead, lead_id)


class TestSpawnStageTask:

    def test_spawn_is_idempotent(self, seed_data):
        lead = _lead(seed_data["lead_id"])
        assert task_service.spawn_stage_task(lead, "New") is None
        assert task_service.spawn_stage_task(lead, "New") is None
        assert Task.query.filter_by(lead_id=lead.id).count() == 1

    def test_spawn_after_completion_opens_a_new_task(self, seed_data):
        lead = _lead(seed_data["lead_id"])
        first = db.session.get(Task, seed_data["first_task_id"])
        task_service.mark_completed(first)
        assert first.active_stage_key is None

        again = task_service.spawn_stage_task(lead, "New")
        assert again is not None
        assert again.active_stage_key == f"{lead.id}:New"

    def test_system_task_fields(self, seed_data):
        task = db.session.get(Task, seed_data["first_task_id"])
        assert task.is_system is True
        assert task.type == "Call"
        assert task.priority == "Medium"
        assert task.sales_person_id == seed_data["rep_id"]
        assert task.active_stage_key == f"{seed_data['lead_id']}:New"

    @pytest.mark.parametrize("stage", ["Converted", "Disqualified", "Junk Lead"])
    def test_no_task_for_closed_stages(self, seed_data, stage):
        lead = _lead(seed_data["lead_id"])
        assert task_service.spawn_stage_task(lead, stage) is None

    def test_auto_spawn_off(self, app, seed_data):
        app.config["AUTO_SPAWN_TASKS"] = False
        lead = _lead(seed_data["lead_id"])
        assert task_service.spawn_stage_task(lead, "Responded") is None

    def test_force_ignores_auto_spawn_flag(self, app, seed_data):
        app.config["AUTO_SPAWN_TASKS"] = False
        lead = _lead(seed_data["lead_id"])
        task = task_service.spawn_stage_task(lead, "Responded", force=True)
        assert task.title == "Schedule Demo – Acme Logistics"

    def test_unique_key_blocks_duplicates_at_the_database(self, seed_data):
        dup = Task(
            lead_id=seed_data["lead_id"],
            title="dup",
            stage="New",
            active_stage_key=f"{seed_data['lead_id']}:New",
        )
        db.session.add(dup)
        with pytest.raises(IntegrityError):
            db.session.flush()
        db.session.rollback()


class TestManualTasks:

    def test_title_generated_from_lead_stage(self, seed_data):
        task_service.mark_completed(db.session.get(Task, seed_data["first_task_id"]))

        task = task_service.create_manual_task(seed_data["lead_id"], SYSTEM)
        assert task.title == "First Call – Acme Logistics"
        assert task.stage == "New"
        assert task.flow_kind == "first_call"
        assert task.is_system is False
        assert task.active_stage_key == f"{seed_data['lead_id']}:New"

    def test_second_first_call_is_a_conflict(self, seed_data):
        with pytest.raises(ConflictError):
            task_service.create_manual_task(seed_data["lead_id"], SYSTEM)
        with pytest.raises(ConflictError):
            task_service.create_manual_task(
                seed_data["lead_id"], SYSTEM, title="First Call – Acme Logistics"
            )
        pending_task(seed_data["lead_id"])

    def test_manual_stage_task_blocks_the_spawn(self, seed_data):
        lead = _lead(seed_data["lead_id"])
        manual = task_service.create_manual_task(lead.id, SYSTEM, stage="Responded")
        assert manual.flow_kind == "response_check"
        assert task_service.spawn_stage_task(lead, "Responded") is None

    def test_free_title_does_not_take_the_slot(self, seed_data):
        task = task_service.create_manual_task(
            seed_data["lead_id"], SYSTEM, title="Call Scheduler Co about demo"
        )
        assert task.flow_kind == "generic"
        assert task.active_stage_key is None

    def test_demo_named_lead_gets_first_demo_flow(self, seed_data):
        lead = _lead(seed_data["lead_id"])
        lead.lead_name = "Demo Dynamics"
        lead.stage = "Demo Scheduled"
        db.session.flush()

        task = task_service.create_manual_task(lead.id, SYSTEM)
        assert task.title == "Demo with Demo Dynamics"
        assert task.flow_kind == "demo_outcome"
        assert task.demo_number == 1

    def test_custom_title_is_generic(self, seed_data):
        task = task_service.create_manual_task(
            seed_data["lead_id"], SYSTEM, title="<i>Send</i> brochure",
            priority="high", type="email",
        )
        assert task.title == "Send brochure"
        assert task.flow_kind == "generic"
        assert task.priority == "High"
        assert task.type == "Email"

    def test_converted_lead_rejects_tasks(self, seed_data):
        lead = _lead(seed_data["lead_id"])
        lead.stage = "Converted"
        db.session.flush()
        with pytest.raises(TerminalStageError):
            task_service.create_manual_task(lead.id, SYSTEM, title="One more")

    def test_other_reps_lead_not_found(self, seed_data):
        scope = Scope.owned_by(seed_data["rep_id"])
        with pytest.raises(NotFoundError):
            task_service.create_manual_task(seed_data["other_lead_id"], scope)

    def test_bad_priority(self, seed_data):
        with pytest.raises(ValidationError):
            task_service.create_manual_task(seed_data["lead_id"], SYSTEM, priority="urgent")


class TestUpdateAndDelete:

    def test_update_fields(self, seed_data):
        task = task_service.update_task(
            seed_data["first_task_id"], SYSTEM,
            {"priority": "Low", "comments": "call after 3pm",
             "due_date": "2026-11-02T09:00:00"},
        )
        assert task.priority == "Low"
        assert task.comments == "call after 3pm"
        assert task.due_date is not None

    def test_title_is_immutable(self, seed_data):
        with pytest.raises(ValidationError, match="titles"):
            task_service.update_task(seed_data["first_task_id"], SYSTEM, {"title": "Other"})

    def test_unknown_field(self, seed_data):
        with pytest.raises(ValidationError):
            task_service.update_task(seed_data["first_task_id"], SYSTEM, {"stage": "SRS"})

    def test_completed_task_is_immutable(self, seed_data):
        task_service.update_task(seed_data["first_task_id"], SYSTEM, {"status": "Completed"})
        with pytest.raises(ConflictError, match="immutable"):
            task_service.update_task(seed_data["first_task_id"], SYSTEM, {"priority": "High"})

    def test_status_completed_stamps_completed_at(self, seed_data):
        task = task_service.update_task(
            seed_data["first_task_id"], SYSTEM, {"status": "completed"}
        )
        assert task.status == "Completed"
        assert task.completed_at is not None

    def test_delete_pending(self, seed_data):
        task_service.delete_task(seed_data["first_task_id"], SYSTEM)
        assert db.session.get(Task, seed_data["first_task_id"]) is None

    def test_delete_completed_refused(self, seed_data):
        task_service.update_task(seed_data["first_task_id"], SYSTEM, {"status": "Completed"})
        with pytest.raises(ConflictError):
            task_service.delete_task(seed_data["first_task_id"], SYSTEM)

    def test_pending_helper(self, seed_data):
        assert pending_task(seed_data["lead_id"]).id == seed_data["first_task_id"]
