"""Activity model — append-only lead timeline.

One row per task completion, stage change, or manually logged touch
(call, email, note). Rows are never updated or deleted; dashboards and the
lead detail timeline read them.
"""

import uuid

from salesdesk.extensions import db


class Activity(db.Model):
    __tablename__ = "activities"

    TYPES = ["task", "stage_change", "note", "call", "email"]

    # -- Outcome tags --
    SUCCESS = "Success"
    RESCHEDULE = "Reschedule"
    NO_RESPONSE = "No Response"
    DISQUALIFIED = "Disqualified"
    JUNK = "Junk"
    NOT_CONNECTED = "Not Connected"
    OUTCOMES = [SUCCESS, RESCHEDULE, NO_RESPONSE, DISQUALIFIED, JUNK, NOT_CONNECTED]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    lead_id = db.Column(
        db.String(36),
        db.ForeignKey("leads.id"),
        nullable=False,
        index=True,
    )
    task_id = db.Column(
        db.String(36),
        db.ForeignKey("tasks.id"),
        nullable=True,
        index=True,
    )
    actor_id = db.Column(
        db.String(36),
        db.ForeignKey("sales_persons.id"),
        nullable=True,
    )  # None for system-initiated entries
    activity_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(500), nullable=True)
    comments = db.Column(db.Text, nullable=True)
    outcome = db.Column(db.String(30), nullable=True)
    from_stage = db.Column(db.String(50), nullable=True)
    to_stage = db.Column(db.String(50), nullable=True)
    next_stage_notes = db.Column(db.Text, nullable=True)
    connect_through = db.Column(
        db.String(50), nullable=True
    )  # phone | email | whatsapp | meeting
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    lead = db.relationship("Lead", back_populates="activities")
    task = db.relationship("Task")
    actor = db.relationship("SalesPerson", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "task_id": self.task_id,
            "actor_id": self.actor_id,
            "type": self.activity_type,
            "activity": self.title,
            "comments": self.comments,
            "outcome": self.outcome,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "next_stage_notes": self.next_stage_notes,
            "connect_through": self.connect_through,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Activity {self.activity_type} on {self.lead_id}>"
