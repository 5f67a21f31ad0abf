"""Revenue models.

RevenueTransaction — money booked against a lead by the salesperson who
closed it. Only ``closed`` rows count as revenue.

SalesTarget — goals for one reporting period (weekly / monthly /
quarterly / yearly): a funnel count per metric plus a revenue figure.
One row per (period_type, period_start); saving again overwrites it.
"""

import uuid

from salesdesk.extensions import db


class RevenueTransaction(db.Model):
    __tablename__ = "revenue_transactions"

    STATUSES = ["closed", "pending", "cancelled"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    lead_id = db.Column(
        db.String(36),
        db.ForeignKey("leads.id"),
        nullable=False,
        index=True,
    )
    sales_person_id = db.Column(
        db.String(36),
        db.ForeignKey("sales_persons.id"),
        nullable=False,
        index=True,
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), default="closed", nullable=False)
    closed_date = db.Column(db.Date, nullable=False, index=True)
    created_by = db.Column(
        db.String(36), db.ForeignKey("sales_persons.id"), nullable=True
    )  # None when booked by the service account
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    lead = db.relationship("Lead")
    sales_person = db.relationship("SalesPerson", foreign_keys=[sales_person_id])

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "sales_person_id": self.sales_person_id,
            "amount": float(self.amount or 0),
            "status": self.status,
            "closed_date": self.closed_date.isoformat() if self.closed_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<RevenueTransaction {self.amount} ({self.status})>"


class SalesTarget(db.Model):
    __tablename__ = "sales_targets"

    PERIOD_TYPES = ["weekly", "monthly", "quarterly", "yearly"]
    METRICS = ("leads", "calls", "meetings", "prospects", "proposals", "converted")

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    period_type = db.Column(db.String(20), nullable=False)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    target_leads = db.Column(db.Integer, default=0, nullable=False)
    target_calls = db.Column(db.Integer, default=0, nullable=False)
    target_meetings = db.Column(db.Integer, default=0, nullable=False)
    target_prospects = db.Column(db.Integer, default=0, nullable=False)
    target_proposals = db.Column(db.Integer, default=0, nullable=False)
    target_converted = db.Column(db.Integer, default=0, nullable=False)
    target_revenue = db.Column(db.Numeric(14, 2), default=0, nullable=False)

    created_by = db.Column(
        db.String(36), db.ForeignKey("sales_persons.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "period_type", "period_start", name="uq_sales_targets_period"
        ),
    )

    def targets(self):
        values = {m: getattr(self, f"target_{m}") or 0 for m in self.METRICS}
        values["revenue"] = float(self.target_revenue or 0)
        return values

    def to_dict(self):
        return {
            "id": self.id,
            "period_type": self.period_type,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "targets": self.targets(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<SalesTarget {self.period_type} {self.period_start}>"
