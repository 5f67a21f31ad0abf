"""Tests for revenue transactions, sales targets and target achievement."""

from datetime import date, timedelta

import pytest

from conftest import as_user
from salesdesk.errors import ForbiddenError, NotFoundError, ValidationError
from salesdesk.extensions import db
from salesdesk.models.revenue import RevenueTransaction, SalesTarget
from salesdesk.services import completion_service, revenue_service
from salesdesk.services.gateway import SYSTEM, Scope


def _window():
    today = date.today()
    return (today - timedelta(days=1)).isoformat(), (today + timedelta(days=1)).isoformat()


class TestTransactions:

    def test_rep_books_on_own_lead(self, client, seed_data):
        resp = client.post("/api/revenue/transactions", json={
            "lead_id": seed_data["lead_id"],
            "amount": "1500.50",
            "closed_date": "2026-10-01",
        }, headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["amount"] == 1500.5
        assert body["status"] == "closed"
        assert body["sales_person_id"] == seed_data["rep_id"]
        assert body["closed_date"] == "2026-10-01"

    def test_rep_cannot_book_for_someone_else(self, client, seed_data):
        resp = client.post("/api/revenue/transactions", json={
            "lead_id": seed_data["lead_id"],
            "amount": 100,
            "closed_date": "2026-10-01",
            "sales_person_id": seed_data["other_rep_id"],
        }, headers=as_user(seed_data["rep_email"]))
        assert resp.status_code == 403
        assert RevenueTransaction.query.count() == 0

    def test_other_reps_lead_is_404(self, seed_data):
        with pytest.raises(NotFoundError):
            revenue_service.record_transaction(
                {"lead_id": seed_data["other_lead_id"], "amount": 10,
                 "closed_date": "2026-10-01"},
                Scope.owned_by(seed_data["rep_id"]),
            )

    def test_admin_defaults_to_the_assignee(self, seed_data):
        txn = revenue_service.record_transaction(
            {"lead_id": seed_data["other_lead_id"], "amount": 42,
             "closed_date": "2026-10-02", "status": "Pending"},
            SYSTEM,
        )
        assert txn.sales_person_id == seed_data["other_rep_id"]
        assert txn.status == "pending"

    @pytest.mark.parametrize("patch", [
        {"amount": -5},
        {"amount": "lots"},
        {"amount": None},
        {"closed_date": None},
        {"closed_date": "yesterday"},
        {"status": "refunded"},
        {"sales_person_id": "no-such-person"},
    ])
    def test_validation(self, seed_data, patch):
        data = {"lead_id": seed_data["lead_id"], "amount": 10, "closed_date": "2026-10-01"}
        data.update(patch)
        with pytest.raises(ValidationError):
            revenue_service.record_transaction(data, SYSTEM)

    def test_list_is_scoped(self, client, seed_data):
        for lead_id in (seed_data["lead_id"], seed_data["other_lead_id"]):
            revenue_service.record_transaction(
                {"lead_id": lead_id, "amount": 10, "closed_date": "2026-10-01"}, SYSTEM
            )
        db.session.commit()

        rep = client.get("/api/revenue/transactions",
                         headers=as_user(seed_data["rep_email"])).get_json()
        assert [t["lead_id"] for t in rep] == [seed_data["lead_id"]]

        admin = client.get("/api/revenue/transactions",
                           headers=as_user(seed_data["admin_email"])).get_json()
        assert len(admin) == 2


class TestTargets:

    def test_admin_only(self, client, seed_data):
        headers = as_user(seed_data["rep_email"])
        assert client.get("/api/revenue/targets", headers=headers).status_code == 403
        resp = client.post("/api/revenue/targets", json={
            "period_type": "monthly", "year": 2026, "month": 10, "targets": {"leads": 5},
        }, headers=headers)
        assert resp.status_code == 403
        assert client.get("/api/revenue/kpis", headers=headers).status_code == 403

    def test_save_then_overwrite(self, client, seed_data):
        headers = as_user(seed_data["admin_email"])
        payload = {"period_type": "monthly", "year": 2026, "month": 2,
                   "targets": {"leads": 5, "revenue": 2000}}

        resp = client.post("/api/revenue/targets", json=payload, headers=headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["period_start"] == "2026-02-01"
        assert body["period_end"] == "2026-02-28"
        assert body["targets"]["leads"] == 5
        assert body["targets"]["revenue"] == 2000.0

        payload["targets"] = {"leads": 8}
        resp = client.post("/api/revenue/targets", json=payload, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["targets"]["leads"] == 8
        assert resp.get_json()["targets"]["revenue"] == 0.0
        assert SalesTarget.query.count() == 1

        listed = client.get("/api/revenue/targets?period_type=monthly", headers=headers)
        assert [t["id"] for t in listed.get_json()] == [body["id"]]

    def test_quarter_from_year_and_quarter(self, seed_data):
        target, created = revenue_service.save_target(
            {"period_type": "quarterly", "year": 2026, "quarter": 2,
             "targets": {"converted": 3}}
        )
        assert created
        assert target.period_start == date(2026, 4, 1)
        assert target.period_end == date(2026, 6, 30)

    @pytest.mark.parametrize("data", [
        {"period_type": "monthly", "year": 2026, "month": 1, "targets": {"leads": -1}},
        {"period_type": "monthly", "year": 2026, "month": 13, "targets": {}},
        {"period_type": "daily", "targets": {}},
        {"period_type": "monthly", "period_start": "2026-03-10",
         "period_end": "2026-03-01", "targets": {}},
        {"period_type": "monthly", "year": 2026, "month": 1},
    ])
    def test_invalid_targets(self, seed_data, data):
        with pytest.raises(ValidationError):
            revenue_service.save_target(data)


class TestPeriods:

    def test_week_runs_monday_to_sunday(self):
        assert revenue_service.period_range("weekly", on="2026-10-14") == (
            "weekly", date(2026, 10, 12), date(2026, 10, 18)
        )

    def test_leap_february(self):
        assert revenue_service.period_range("monthly", year=2028, month=2)[2] == date(2028, 2, 29)

    def test_year(self):
        assert revenue_service.period_range("yearly", year=2025)[1:] == (
            date(2025, 1, 1), date(2025, 12, 31)
        )


class TestAchievement:

    def test_rounding_and_remaining(self):
        assert revenue_service.achievement(2, 3) == {
            "actual": 2, "target": 3, "percentage": 67, "remaining": 1,
        }
        assert revenue_service.achievement(1, 8)["percentage"] == 13
        assert revenue_service.achievement(12, 10)["remaining"] == 0

    def test_zero_target(self):
        assert revenue_service.achievement(0, 0)["percentage"] == 0
        assert revenue_service.achievement(3, 0)["percentage"] == 100

    def test_kpis_endpoint(self, client, seed_data):
        start, end = _window()
        revenue_service.save_target({
            "period_type": "weekly", "period_start": start, "period_end": end,
            "targets": {"leads": 4, "calls": 2, "revenue": 1000},
        })
        completion_service.resolve_completion(
            seed_data["first_task_id"], SYSTEM, outcome="qualified", comment="Good fit"
        )
        today = date.today().isoformat()
        for amount, status in ((250, "closed"), (100, "pending")):
            revenue_service.record_transaction(
                {"lead_id": seed_data["lead_id"], "amount": amount,
                 "closed_date": today, "status": status},
                SYSTEM,
            )
        db.session.commit()

        resp = client.get(
            f"/api/revenue/kpis?period_type=weekly&period_start={start}&period_end={end}",
            headers=as_user(seed_data["admin_email"]),
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["period"]["hasTarget"] is True
        assert body["revenue"] == {
            "actual": 250.0, "target": 1000.0, "percentage": 25, "remaining": 750.0,
        }
        funnel = body["funnel"]
        assert funnel["leads"]["percentage"] == 50
        assert funnel["leads"]["remaining"] == 2
        assert funnel["calls"]["actual"] == 1
        assert funnel["prospects"]["percentage"] == 100
        assert funnel["converted"]["percentage"] == 0

    def test_actuals_follow_scope(self, seed_data):
        revenue_service.record_transaction(
            {"lead_id": seed_data["lead_id"], "amount": 90,
             "closed_date": date.today().isoformat()},
            SYSTEM,
        )
        db.session.commit()
        start, end = date.today() - timedelta(days=1), date.today() + timedelta(days=1)

        mine = revenue_service.actuals(Scope.owned_by(seed_data["rep_id"]), start, end)
        theirs = revenue_service.actuals(Scope.owned_by(seed_data["other_rep_id"]), start, end)
        assert mine["revenue"] == 90.0
        assert theirs["revenue"] == 0.0
        assert mine["leads"] == theirs["leads"] == 1

    def test_forbidden_is_raised_before_any_write(self, seed_data):
        with pytest.raises(ForbiddenError):
            revenue_service.record_transaction(
                {"lead_id": seed_data["lead_id"], "amount": 5,
                 "closed_date": "2026-10-01", "sales_person_id": seed_data["admin_id"]},
                Scope.owned_by(seed_data["rep_id"]),
            )
        assert RevenueTransaction.query.count() == 0
