"""Task model.

A unit of sales work on one lead. ``stage`` is the lead's stage when the
task was created and is frozen from then on; ``flow_kind`` is derived from
it at the same time and selects how the task is completed.

Status moves one way: Pending -> Completed. Completed tasks are immutable.

Stage tasks (spawned, or created by hand from the stage template) carry
``active_stage_key`` ("<lead_id>:<stage>") while Pending. The column is
unique, so at most one active stage task exists per lead per stage; it is
cleared when the task completes.

Demo-session tasks record ``demo_number`` (1 for the first demo, 2+ for a
repeat), which is what the next demo title is counted from.
"""

import uuid

from salesdesk.extensions import db


class Task(db.Model):
    __tablename__ = "tasks"

    STATUSES = ["Pending", "Completed"]
    TYPES = ["Call", "Meeting", "Follow-Up", "Email", "Proposal"]
    PRIORITIES = ["Low", "Medium", "High"]

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
        nullable=True,
        index=True,
    )
    title = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(50), default="Call", nullable=False)
    priority = db.Column(db.String(20), default="Medium", nullable=False)
    stage = db.Column(db.String(50), nullable=True)  # frozen at creation
    flow_kind = db.Column(
        db.String(30), nullable=True
    )  # first_call | response_check | demo_outcome | generic
    status = db.Column(db.String(20), default="Pending", nullable=False)
    comments = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_system = db.Column(db.Boolean, default=False, nullable=False)
    demo_number = db.Column(db.Integer, nullable=True)
    active_stage_key = db.Column(db.String(100), unique=True, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    lead = db.relationship("Lead", back_populates="tasks")
    sales_person = db.relationship("SalesPerson", back_populates="tasks")

    @property
    def is_completed(self):
        return (self.status or "").lower() == "completed"

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "sales_person_id": self.sales_person_id,
            "title": self.title,
            "type": self.type,
            "priority": self.priority,
            "stage": self.stage,
            "flow_kind": self.flow_kind,
            "status": self.status,
            "comments": self.comments,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "is_system": bool(self.is_system),
            "demo_number": self.demo_number,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Task {self.title[:40]} ({self.status})>"
