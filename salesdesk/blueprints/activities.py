"""Activities blueprint — /api/activities

Route Map:
  GET  /api/activities   — Scoped timeline (?lead_id=, ?limit=)
  POST /api/activities   — Log a call / email / note against a lead
"""

from flask import Blueprint, g, jsonify, request

from salesdesk.decorators import crm_user_required
from salesdesk.extensions import db
from salesdesk.models.activity import Activity
from salesdesk.services import activity_service, gateway
from salesdesk.services.inputs import json_object, parse_limit

activities_bp = Blueprint("activities", __name__, url_prefix="/api/activities")


@activities_bp.route("", methods=["GET"])
@crm_user_required
def list_activities():
    query = gateway.visible_activities(g.scope)
    lead_id = request.args.get("lead_id")
    if lead_id:
        query = query.filter(Activity.lead_id == lead_id)

    activities = (
        query
        .order_by(Activity.created_at.desc())
        .limit(parse_limit(request.args.get("limit")))
        .all()
    )
    return jsonify([a.to_dict() for a in activities])


@activities_bp.route("", methods=["POST"])
@crm_user_required
def log_activity():
    data = json_object(request.get_json(force=True, silent=True))
    activity = activity_service.log_manual(
        data.get("lead_id"),
        g.scope,
        data.get("type") or "note",
        data.get("comments"),
        actor_id=g.actor_id,
        connect_through=data.get("connect_through"),
        due_date=data.get("due_date"),
        outcome=data.get("outcome"),
    )
    db.session.commit()
    return jsonify(activity.to_dict()), 201
