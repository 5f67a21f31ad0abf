"""Revenue blueprint — /api/revenue/*

Route Map:
  GET    /api/revenue/transactions    — Scoped list (?lead_id=, ?limit=)
  POST   /api/revenue/transactions    — Book revenue against a lead
  GET    /api/revenue/targets         — Admin only (?period_type=)
  POST   /api/revenue/targets         — Admin only, create or overwrite a period's target
  GET    /api/revenue/kpis            — Admin only, target achievement for a period
                                        (?period_type=&year=&month=&quarter=
                                         or ?period_start=&period_end=)
"""

from flask import Blueprint, g, jsonify, request

from salesdesk.decorators import admin_required, crm_user_required
from salesdesk.extensions import db
from salesdesk.services import revenue_service
from salesdesk.services.inputs import json_object, parse_limit

revenue_bp = Blueprint("revenue", __name__, url_prefix="/api/revenue")


@revenue_bp.route("/transactions", methods=["GET"])
@crm_user_required
def list_transactions():
    rows = (
        revenue_service.visible_transactions(g.scope, request.args.get("lead_id"))
        .limit(parse_limit(request.args.get("limit")))
        .all()
    )
    return jsonify([t.to_dict() for t in rows])


@revenue_bp.route("/transactions", methods=["POST"])
@crm_user_required
def create_transaction():
    data = json_object(request.get_json(force=True, silent=True))
    txn = revenue_service.record_transaction(data, g.scope, actor_id=g.actor_id)
    db.session.commit()
    return jsonify(txn.to_dict()), 201


@revenue_bp.route("/targets", methods=["GET"])
@admin_required
def list_targets():
    targets = revenue_service.list_targets(request.args.get("period_type"))
    return jsonify([t.to_dict() for t in targets])


@revenue_bp.route("/targets", methods=["POST"])
@admin_required
def save_target():
    data = json_object(request.get_json(force=True, silent=True))
    target, created = revenue_service.save_target(data, actor_id=g.actor_id)
    db.session.commit()
    return jsonify(target.to_dict()), 201 if created else 200


@revenue_bp.route("/kpis", methods=["GET"])
@admin_required
def kpis():
    period_type, start, end = revenue_service.resolve_period(request.args)
    return jsonify(revenue_service.kpis(g.scope, period_type, start, end))
