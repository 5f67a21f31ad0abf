"""Dashboard blueprint — /api/dashboard/*

Route Map:
  GET /api/dashboard/cards      — Headline numbers (?days=, 0 for all time)
  GET /api/dashboard/pipeline   — Lead count per stage
"""

from flask import Blueprint, current_app, g, jsonify, request

from salesdesk.decorators import crm_user_required
from salesdesk.errors import ValidationError
from salesdesk.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/cards")
@crm_user_required
def cards():
    raw = request.args.get("days")
    if raw is None or raw == "":
        days = current_app.config["DASHBOARD_DEFAULT_DAYS"]
    else:
        try:
            days = int(raw)
        except ValueError:
            raise ValidationError(f"Invalid days: {raw!r}")
        if days < 0:
            raise ValidationError("days can't be negative.")
    return jsonify(dashboard_service.cards(g.scope, days))


@dashboard_bp.route("/pipeline")
@crm_user_required
def pipeline():
    return jsonify(dashboard_service.pipeline_counts(g.scope))
