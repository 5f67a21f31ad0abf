"""Tests for the leads API and lead service.

Covers:
- intake creates the lead and its first-call task
- validation (name, email, priority, score, stage)
- scoped listing and detail (salesperson vs admin vs service account)
- PATCH: fields, scores -> total, reassign (admin only), manual stage advance
"""

import pytest

from conftest import as_service, as_user
from salesdesk.errors import InvalidTransitionError
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.models.lead import Lead
from salesdesk.services import lead_service
from salesdesk.services.gateway import SYSTEM


class TestLeadIntake:

    def test_create_lead_opens_first_call(self, client, seed_data):
        resp = client.post("/api/leads", json={
            "name": "Umbrella Corp",
            "contactName": "Al Wesker",
            "email": "al@umbrella.test",
            "priority": "Hot",
            "source": "referral",
            "lead_score": 30,
            "responsiveness_score": 20,
            "conversion_probability_score": 10,
        }, headers=as_user(seed_data["rep_email"]))

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["lead"]["stage"] == "New"
        assert body["lead"]["assignedTo"] == seed_data["rep_id"]
        assert body["lead"]["total_score"] == 60
        assert body["task"]["title"] == "First Call – Umbrella Corp"
        assert body["task"]["flow_kind"] == "first_call"

    def test_admin_assigns_on_intake(self, client, seed_data):
        resp = client.post("/api/leads", json={
            "name": "Stark Industries", "assignedTo": seed_data["other_rep_id"],
        }, headers=as_user(seed_data["admin_email"]))
        assert resp.status_code == 201
        assert resp.get_json()["lead"]["assignedTo"] == seed_data["other_rep_id"]

    def test_name_required(self, client, seed_data):
        resp = client.post("/api/leads", json={"email": "x@y.test"},
                           headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 400
        assert "name" in resp.get_json()["error"]

    @pytest.mark.parametrize("payload", [
        {"name": "A", "email": "not-an-email"},
        {"name": "A", "priority": "Scorching"},
        {"name": "A", "lead_score": "lots"},
        {"name": "A", "lead_score": -1},
        {"name": "A", "stage": "Converted"},
        {"name": "A", "stage": "Nope"},
        {"name": "A", "assignedTo": "missing-person"},
    ])
    def test_invalid_payloads(self, client, seed_data, payload):
        resp = client.post("/api/leads", json=payload,
                           headers=as_user(seed_data["admin_email"]))
        assert resp.status_code == 400

    def test_body_must_be_an_object(self, client, seed_data):
        resp = client.post("/api/leads", json=["Acme"],
                           headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 400

    def test_html_is_stripped(self, client, seed_data):
        resp = client.post("/api/leads", json={"name": "<b>Bold</b> Co"},
                           headers=as_user(seed_data["rep_email"]))
        assert resp.get_json()["lead"]["name"] == "Bold Co"

    def test_creation_is_logged_on_the_timeline(self, seed_data):
        activity = Activity.query.filter_by(lead_id=seed_data["lead_id"]).first()
        assert activity.activity_type == "stage_change"
        assert activity.to_stage == "New"


class TestLeadListing:

    def test_salesperson_sees_own_leads(self, client, seed_data):
        resp = client.get("/api/leads", headers=as_user(seed_data["rep_email"]))
        ids = [lead["id"] for lead in resp.get_json()]
        assert ids == [seed_data["lead_id"]]

    def test_admin_sees_all(self, client, seed_data):
        resp = client.get("/api/leads", headers=as_user(seed_data["admin_email"]))
        assert len(resp.get_json()) == 2

    def test_service_account_sees_all(self, client, seed_data):
        resp = client.get("/api/leads", headers=as_service())
        assert len(resp.get_json()) == 2

    def test_closed_leads_hidden_by_default(self, client, seed_data):
        lead = db.session.get(Lead, seed_data["lead_id"])
        lead.stage = "Disqualified"
        db.session.commit()

        headers = as_user(seed_data["admin_email"])
        assert len(client.get("/api/leads", headers=headers).get_json()) == 1
        assert len(client.get("/api/leads?include_closed=1", headers=headers).get_json()) == 2
        resp = client.get("/api/leads", query_string={"stage": "Lost Lead"},
                          headers=headers)
        assert [l["id"] for l in resp.get_json()] == [seed_data["lead_id"]]

    def test_detail(self, client, seed_data):
        resp = client.get(f"/api/leads/{seed_data['lead_id']}",
                          headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["canOpenTask"] is True
        assert [t["id"] for t in body["tasks"]] == [seed_data["first_task_id"]]
        assert len(body["activities"]) == 1

    def test_detail_of_other_reps_lead_is_404(self, client, seed_data):
        resp = client.get(f"/api/leads/{seed_data['other_lead_id']}",
                          headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"].startswith("Lead")


class TestLeadUpdate:

    def test_update_fields_and_scores(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}", json={
            "phone": "555-0101",
            "priority": "cold",
            "lead_score": 5,
            "responsiveness_score": 7,
        }, headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 200
        lead = resp.get_json()["lead"]
        assert lead["phone"] == "555-0101"
        assert lead["priority"] == "Cold"
        assert lead["total_score"] == 12

    def test_qualification_and_response_status(self, client, seed_data):
        url = f"/api/leads/{seed_data['lead_id']}"
        headers = as_user(seed_data["rep_email"])

        resp = client.patch(url, json={"qualification": "qualified",
                                       "responseStatus": "not responded"},
                            headers=headers)
        assert resp.status_code == 200
        lead = resp.get_json()["lead"]
        assert lead["qualification"] == "Qualified"
        assert lead["responseStatus"] == "Not Responded"

        resp = client.patch(url, json={"qualification": "maybe"}, headers=headers)
        assert resp.status_code == 400
        resp = client.patch(url, json={"responseStatus": "ghosted"}, headers=headers)
        assert resp.status_code == 400

    def test_salesperson_cannot_reassign(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}",
                            json={"assignedTo": seed_data["other_rep_id"]},
                            headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 403

    def test_admin_reassigns(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}",
                            json={"assignedTo": seed_data["other_rep_id"]},
                            headers=as_user(seed_data["admin_email"]))
        assert resp.status_code == 200
        assert resp.get_json()["lead"]["assignedTo"] == seed_data["other_rep_id"]

    def test_manual_advance_to_successor(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}",
                            json={"stage": "Contacted"},
                            headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["lead"]["stage"] == "Responded"
        assert body["task"]["title"] == "Schedule Demo – Acme Logistics"

        activity = (
            Activity.query
            .filter_by(lead_id=seed_data["lead_id"], to_stage="Responded")
            .one()
        )
        assert activity.from_stage == "New"
        assert activity.actor_id == seed_data["rep_id"]

    def test_skipping_stages_is_409(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}",
                            json={"stage": "SRS"},
                            headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 409
        assert db.session.get(Lead, seed_data["lead_id"]).stage == "New"

    def test_failed_patch_rolls_back_field_edits(self, client, seed_data):
        resp = client.patch(f"/api/leads/{seed_data['lead_id']}",
                            json={"phone": "555-9999", "stage": "Converted"},
                            headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 409
        assert db.session.get(Lead, seed_data["lead_id"]).phone is None

    def test_branch_stages_cannot_be_set_by_hand(self, seed_data):
        lead = db.session.get(Lead, seed_data["lead_id"])
        for target in ("Disqualified", "Junk Lead", "Demo Completed"):
            with pytest.raises(InvalidTransitionError):
                lead_service.advance_stage(lead, target)

    def test_closed_lead_cannot_move(self, seed_data):
        lead = db.session.get(Lead, seed_data["lead_id"])
        lead.stage = "Converted"
        with pytest.raises(InvalidTransitionError):
            lead_service.advance_stage(lead, "New")

    def test_spawned_task_assigned_to_lead_owner(self, seed_data):
        lead = db.session.get(Lead, seed_data["lead_id"])
        lead_service.advance_stage(lead, "Responded")
        db.session.commit()
        tasks = lead.tasks.filter_by(status="Pending").all()
        assert len(tasks) == 2
        assert {t.sales_person_id for t in tasks} == {seed_data["rep_id"]}

    def test_create_lead_at_later_stage(self, seed_data):
        lead, task = lead_service.create_lead(
            {"name": "Late Co", "stage": "Demo Scheduled"}, SYSTEM
        )
        assert task.title == "Demo with Late Co"
        assert task.flow_kind == "demo_outcome"
