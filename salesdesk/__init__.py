import os
import logging

import click
from flask import Flask, jsonify

from salesdesk.config import config_by_name
from salesdesk.errors import PipelineError
from salesdesk.extensions import db, migrate, login_manager, limiter

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    # Keep stage-table order in JSON payloads
    app.json.sort_keys = False

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from salesdesk import models  # noqa: F401

    # --- Scope middleware ---
    from salesdesk.middleware.scope import init_scope_middleware
    init_scope_middleware(app)

    # --- Register blueprints ---
    from salesdesk.blueprints.leads import leads_bp
    from salesdesk.blueprints.tasks import tasks_bp
    from salesdesk.blueprints.activities import activities_bp
    from salesdesk.blueprints.dashboard import dashboard_bp
    from salesdesk.blueprints.sales_persons import sales_persons_bp
    from salesdesk.blueprints.revenue import revenue_bp

    app.register_blueprint(leads_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(sales_persons_bp)
    app.register_blueprint(revenue_bp)

    # --- Health ---
    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # --- Error handlers ---
    @app.errorhandler(PipelineError)
    def pipeline_error(e):
        db.session.rollback()
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "Forbidden"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests. Please try again later."}), 429

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON only: nothing to load, nothing to frame
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        response.headers["Cache-Control"] = "no-store"
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--admin-email", default="admin@salesdesk.local", help="Admin email")
    @click.option("--sales-email", default="rep@salesdesk.local", help="Salesperson email")
    def seed_demo(admin_email, sales_email):
        """Create an admin, a salesperson and a few leads with their first tasks.

        Usage:
            flask seed-demo
            flask seed-demo --admin-email boss@example.com
        """
        from salesdesk.models.sales_person import SalesPerson
        from salesdesk.services import lead_service
        from salesdesk.services.gateway import SYSTEM

        people = {}
        for email, name, role in (
            (admin_email, "Admin", "admin"),
            (sales_email, "Sales Rep", "salesperson"),
        ):
            existing = SalesPerson.query.filter_by(email=email).first()
            if existing:
                click.echo(f"Sales person already exists: {email}")
                people[role] = existing
                continue
            person = SalesPerson(email=email, full_name=name, role=role)
            db.session.add(person)
            db.session.flush()
            people[role] = person
            click.echo(f"Created {role}: {email}")

        demo_leads = [
            {"name": "Acme Logistics", "contactName": "Ada Park", "priority": "Hot",
             "source": "website", "lead_score": 40},
            {"name": "Northwind Foods", "contactName": "Sam Ortiz", "priority": "Warm",
             "source": "referral", "lead_score": 25},
            {"name": "Globex Retail", "contactName": "Lee Chan", "priority": "Cold",
             "source": "linkedin", "lead_score": 10},
        ]
        for data in demo_leads:
            data["assignedTo"] = people["salesperson"].id
            lead, task = lead_service.create_lead(data, SYSTEM)
            click.echo(f"  Lead:  {lead.lead_name} -> {task.title if task else '(no task)'}")

        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Seed data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  Admin:       {admin_email}")
        click.echo(f"  Salesperson: {sales_email}")
        click.echo(f"  Leads:       {len(demo_leads)}")
        click.echo("=" * 60)

    @app.cli.command("backfill-tasks")
    @click.option("--dry-run", is_flag=True, help="Show what would be created without writing.")
    def backfill_tasks(dry_run):
        """Spawn the stage task for every open lead that has none pending.

        Usage:
            flask backfill-tasks
            flask backfill-tasks --dry-run
        """
        from salesdesk.services.backfill_service import backfill_tasks as run_backfill
        run_backfill(dry_run=dry_run)

    @app.cli.command("add-sales-person")
    @click.option("--email", required=True, help="Sign-in email of the sales person")
    @click.option("--name", default=None, help="Full name")
    @click.option("--role", default="salesperson", help="admin or salesperson")
    def add_sales_person(email, name, role):
        """Create a CRM identity for a signed-in user.

        Usage:
            flask add-sales-person --email jo@example.com --name "Jo Lee"
            flask add-sales-person --email boss@example.com --role admin
        """
        from salesdesk.errors import ValidationError
        from salesdesk.models.sales_person import SalesPerson
        from salesdesk.services.inputs import pick_choice

        try:
            role = pick_choice(role, SalesPerson.ROLES, "role", default="salesperson")
        except ValidationError as e:
            raise click.BadParameter(str(e), param_hint="--role")

        email = email.strip().lower()
        if SalesPerson.query.filter(db.func.lower(SalesPerson.email) == email).first():
            click.echo(f"Sales person already exists: {email}")
            return

        db.session.add(SalesPerson(email=email, full_name=name or email, role=role))
        db.session.commit()
        click.echo(f"Created {role}: {email}")
