"""Sales persons blueprint — /api/sales-persons

Used by the assignee pickers. Admins get contact details and roles;
salespeople only see names.
"""

from flask import Blueprint, jsonify
from flask_login import current_user

from salesdesk.decorators import crm_user_required
from salesdesk.models.sales_person import SalesPerson

sales_persons_bp = Blueprint("sales_persons", __name__, url_prefix="/api/sales-persons")


@sales_persons_bp.route("")
@crm_user_required
def list_sales_persons():
    people = (
        SalesPerson.query
        .filter(SalesPerson.is_active.is_(True))
        .order_by(SalesPerson.full_name)
        .all()
    )
    if current_user.is_admin:
        return jsonify([p.to_dict() for p in people])
    return jsonify([{"id": p.id, "full_name": p.full_name} for p in people])
