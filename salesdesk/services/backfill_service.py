"""Backfill service — make sure every open lead has a task to work on.

Leads can end up with no Pending task when the external handoff trigger
never fired (AUTO_SPAWN_TASKS off) or when rows were imported by hand.
For each lead in an open stage with no Pending task, spawn the stage task.

Called from the `flask backfill-tasks` CLI command.
"""

import logging

import click

from salesdesk.extensions import db
from salesdesk.models.lead import Lead
from salesdesk.models.task import Task
from salesdesk.pipeline.stages import OPEN_STAGES
from salesdesk.services import task_service

logger = logging.getLogger(__name__)


def leads_without_open_task():
    pending = db.session.query(Task.lead_id).filter(Task.status == "Pending")
    return (
        Lead.query
        .filter(Lead.stage.in_([s.value for s in OPEN_STAGES]))
        .filter(~Lead.id.in_(pending))
        .order_by(Lead.created_at.asc())
        .all()
    )


def backfill_tasks(dry_run=False):
    """Spawn the missing stage tasks.

    Args:
        dry_run: If True, report what would be created but write nothing.

    Returns:
        int: Number of tasks created (or would-be-created in dry-run mode).
    """
    if dry_run:
        click.echo("[DRY RUN] No tasks will actually be created.\n")

    leads = leads_without_open_task()
    click.echo(f"Found {len(leads)} open lead(s) with no pending task.")

    created = 0
    for lead in leads:
        if dry_run:
            click.echo(f"   WOULD SPAWN {lead.stage} task → {lead.lead_name}")
            created += 1
            continue

        task = task_service.spawn_stage_task(lead, lead.stage, force=True)
        if task is None:
            click.echo(f"   SKIP: {lead.lead_name} ({lead.stage})")
            continue
        click.echo(f"   SPAWNED '{task.title}'")
        created += 1

    if not dry_run:
        db.session.commit()
        logger.info(f"Backfill created {created} task(s)")

    click.echo(f"\nDone. {created} task(s) {'would be ' if dry_run else ''}created.")
    return created
