"""Leads blueprint — /api/leads/*

Route Map:
  GET   /api/leads          — Scoped list (?stage=, ?include_closed=1, ?limit=)
  POST  /api/leads          — Intake: create lead + first-call task (rate limited)
  GET   /api/leads/<id>     — Lead detail with tasks and activity timeline
  PATCH /api/leads/<id>     — Update fields / scores / assignee / next stage
"""

from flask import Blueprint, current_app, g, jsonify, request

from salesdesk.decorators import crm_user_required
from salesdesk.extensions import db, limiter
from salesdesk.models.lead import Lead
from salesdesk.pipeline.stages import ABSORBING_STAGES, normalize_stage
from salesdesk.pipeline.titles import can_open_task
from salesdesk.services import gateway, lead_service
from salesdesk.services.inputs import json_object, parse_flag, parse_limit

leads_bp = Blueprint("leads", __name__, url_prefix="/api/leads")


def _intake_limit():
    return current_app.config["LEAD_INTAKE_RATE_LIMIT"]


@leads_bp.route("", methods=["GET"])
@crm_user_required
def list_leads():
    query = gateway.visible_leads(g.scope)

    stage = request.args.get("stage")
    if stage:
        query = query.filter(Lead.stage == normalize_stage(stage).value)
    elif not parse_flag(request.args.get("include_closed")):
        query = query.filter(~Lead.stage.in_([s.value for s in ABSORBING_STAGES]))

    leads = (
        query
        .order_by(Lead.created_at.desc())
        .limit(parse_limit(request.args.get("limit")))
        .all()
    )
    return jsonify([lead.to_dict() for lead in leads])


@leads_bp.route("", methods=["POST"])
@limiter.limit(_intake_limit)
@crm_user_required
def create_lead():
    data = json_object(request.get_json(force=True, silent=True))
    lead, task = lead_service.create_lead(data, g.scope, actor_id=g.actor_id)
    db.session.commit()
    return jsonify({
        "lead": lead.to_dict(),
        "task": task.to_dict() if task else None,
    }), 201


@leads_bp.route("/<lead_id>", methods=["GET"])
@crm_user_required
def get_lead(lead_id):
    lead = gateway.get_lead(lead_id, g.scope)
    payload = lead.to_dict()
    payload["canOpenTask"] = can_open_task(lead.stage)
    payload["tasks"] = [t.to_dict() for t in gateway.tasks_for_lead(lead.id, g.scope)]
    payload["activities"] = [a.to_dict() for a in lead.activities.limit(100)]
    return jsonify(payload)


@leads_bp.route("/<lead_id>", methods=["PATCH"])
@crm_user_required
def update_lead(lead_id):
    data = json_object(request.get_json(force=True, silent=True))
    lead, spawned = lead_service.update_lead(lead_id, g.scope, data, actor_id=g.actor_id)
    db.session.commit()
    return jsonify({
        "lead": lead.to_dict(),
        "task": spawned.to_dict() if spawned else None,
    })
