"""Lead model.

A company moving through the sales pipeline, from intake to Converted or
one of the absorbing outcomes (Disqualified, Junk Lead).
Stage values are the labels of salesdesk.pipeline.stages.Stage.
"""

import uuid

from salesdesk.extensions import db
from salesdesk.pipeline.stages import INITIAL_STAGE


class Lead(db.Model):
    __tablename__ = "leads"

    PRIORITIES = ["Hot", "Warm", "Cold"]
    # -- Qualification / response status --
    QUALIFIED = "Qualified"
    UNQUALIFIED = "Unqualified"
    QUALIFICATIONS = [QUALIFIED, UNQUALIFIED]
    RESPONDED = "Responded"
    NOT_RESPONDED = "Not Responded"
    JUNK = "Junk"
    RESPONSE_STATUSES = [RESPONDED, NOT_RESPONDED, JUNK]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    lead_name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    company = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    campaign = db.Column(db.String(255), nullable=True)
    budget = db.Column(db.String(100), nullable=True)
    lead_source = db.Column(
        db.String(50), nullable=True
    )  # website | referral | linkedin | cold_call | other
    priority = db.Column(db.String(20), default="Warm", nullable=False)
    stage = db.Column(
        db.String(50), default=INITIAL_STAGE.value, nullable=False, index=True
    )
    qualification = db.Column(
        db.String(20), nullable=True
    )  # Qualified | Unqualified | unset
    response_status = db.Column(
        db.String(20), nullable=True
    )  # Responded | Not Responded | Junk | unset
    next_stage_notes = db.Column(db.Text, nullable=True)
    assigned_to = db.Column(
        db.String(36),
        db.ForeignKey("sales_persons.id"),
        nullable=True,
        index=True,
    )

    # --- Scores ---
    lead_score = db.Column(db.Integer, default=0, nullable=False)
    responsiveness_score = db.Column(db.Integer, default=0, nullable=False)
    conversion_probability_score = db.Column(db.Integer, default=0, nullable=False)
    total_score = db.Column(db.Integer, default=0, nullable=False)

    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    assignee = db.relationship("SalesPerson", back_populates="leads")
    tasks = db.relationship(
        "Task",
        back_populates="lead",
        lazy="dynamic",
        order_by="Task.created_at.desc()",
    )
    activities = db.relationship(
        "Activity",
        back_populates="lead",
        lazy="dynamic",
        order_by="Activity.created_at.desc()",
    )

    @property
    def display_name(self):
        return (self.lead_name or "").strip() or (self.company or "").strip()

    def recompute_total_score(self):
        self.total_score = (
            (self.lead_score or 0)
            + (self.responsiveness_score or 0)
            + (self.conversion_probability_score or 0)
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.lead_name,
            "contactName": self.contact_name or "",
            "email": self.email or "",
            "phone": self.phone or "",
            "company": self.company or self.lead_name,
            "location": self.location or "",
            "campaign": self.campaign or "",
            "budget": self.budget or "",
            "source": self.lead_source,
            "priority": self.priority,
            "stage": self.stage,
            "qualification": self.qualification,
            "responseStatus": self.response_status,
            "nextStageNotes": self.next_stage_notes,
            "assignedTo": self.assigned_to,
            "lead_score": self.lead_score or 0,
            "responsiveness_score": self.responsiveness_score or 0,
            "conversion_probability_score": self.conversion_probability_score or 0,
            "total_score": self.total_score or 0,
            "lastActivityAt": _iso(self.last_activity_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Lead {self.lead_name} ({self.stage})>"


def _iso(value):
    return value.isoformat() if value else None
