"""SalesPerson model.

CRM identity of a signed-in user. Authentication itself happens at the
external auth provider; a request is mapped to a SalesPerson by email.
Flask-Login integration via UserMixin.
"""

import uuid

from flask_login import UserMixin

from salesdesk.extensions import db


class SalesPerson(UserMixin, db.Model):
    __tablename__ = "sales_persons"

    ROLES = ["admin", "salesperson"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    phone = db.Column(db.String(50), nullable=True)
    role = db.Column(
        db.String(50), default="salesperson", nullable=False
    )  # admin | salesperson
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    leads = db.relationship("Lead", back_populates="assignee", lazy="dynamic")
    tasks = db.relationship("Task", back_populates="sales_person", lazy="dynamic")

    @property
    def is_admin(self):
        return (self.role or "").strip().lower() == "admin"

    @property
    def is_system(self):
        return False

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "role": self.role,
            "is_active": bool(self.is_active),
        }

    def __repr__(self):
        return f"<SalesPerson {self.email} ({self.role})>"


class ServiceAccount(UserMixin):
    """Non-persisted identity for system callers holding CRM_SERVICE_KEY."""

    id = None
    email = None
    full_name = "System"
    role = "system"
    is_admin = True
    is_system = True

    def get_id(self):
        return "system"

    def __repr__(self):
        return "<ServiceAccount system>"
