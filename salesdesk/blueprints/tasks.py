"""Tasks blueprint — /api/tasks/*

Route Map:
  GET    /api/tasks                   — Scoped list (?lead_id=, ?status=, ?limit=)
  POST   /api/tasks                   — Manual task (title generated when omitted)
  PATCH  /api/tasks/<id>              — Edit a Pending task (409 once Completed)
  DELETE /api/tasks/<id>              — Admin only, Pending tasks only
  GET    /api/tasks/<id>/completion   — Flow kind + outcomes for the completion dialog
  POST   /api/tasks/<id>/complete     — Resolve a completion
"""

from flask import Blueprint, g, jsonify, request

from salesdesk.decorators import admin_required, crm_user_required
from salesdesk.extensions import db
from salesdesk.models.task import Task
from salesdesk.services import completion_service, gateway, task_service
from salesdesk.services.inputs import json_object, parse_limit, pick_choice

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@tasks_bp.route("", methods=["GET"])
@crm_user_required
def list_tasks():
    query = gateway.visible_tasks(g.scope)

    lead_id = request.args.get("lead_id")
    if lead_id:
        query = query.filter(Task.lead_id == lead_id)
    status = pick_choice(request.args.get("status"), Task.STATUSES, "status")
    if status:
        query = query.filter(Task.status == status)

    tasks = (
        query
        .order_by(Task.created_at.desc())
        .limit(parse_limit(request.args.get("limit")))
        .all()
    )
    return jsonify([t.to_dict() for t in tasks])


@tasks_bp.route("", methods=["POST"])
@crm_user_required
def create_task():
    data = json_object(request.get_json(force=True, silent=True))
    task = task_service.create_manual_task(
        data.get("lead_id"),
        g.scope,
        title=data.get("title"),
        stage=data.get("stage"),
        type=data.get("type"),
        priority=data.get("priority"),
        comments=data.get("comments"),
        due_date=data.get("due_date"),
        sales_person_id=data.get("sales_person_id") if not g.scope.is_restricted else None,
    )
    db.session.commit()
    return jsonify(task.to_dict()), 201


@tasks_bp.route("/<task_id>", methods=["PATCH"])
@crm_user_required
def update_task(task_id):
    data = json_object(request.get_json(force=True, silent=True))
    task = task_service.update_task(task_id, g.scope, data)
    db.session.commit()
    return jsonify(task.to_dict())


@tasks_bp.route("/<task_id>", methods=["DELETE"])
@admin_required
def delete_task(task_id):
    task_service.delete_task(task_id, g.scope)
    db.session.commit()
    return jsonify({"success": True})


@tasks_bp.route("/<task_id>/completion", methods=["GET"])
@crm_user_required
def completion_options(task_id):
    return jsonify(completion_service.describe_completion(task_id, g.scope))


@tasks_bp.route("/<task_id>/complete", methods=["POST"])
@crm_user_required
def complete_task(task_id):
    data = json_object(request.get_json(force=True, silent=True))
    result = completion_service.resolve_completion(
        task_id,
        g.scope,
        outcome=data.get("outcome"),
        comment=data.get("comment"),
        next_stage_notes=data.get("next_stage_notes"),
        connect_through=data.get("connect_through"),
        due_date=data.get("due_date"),
        actor_id=g.actor_id,
    )
    db.session.commit()
    return jsonify(result.to_dict())
