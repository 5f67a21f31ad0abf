"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import current_app, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit — we apply per-route
    storage_uri="memory://",
)


@login_manager.request_loader
def load_user_from_request(request):
    """Resolve the caller from the upstream auth provider's headers.

    Bearer CRM_SERVICE_KEY -> the system service account.
    Otherwise the trusted email header is matched against sales_persons.
    Imports lazily to avoid circular deps.
    """
    from salesdesk.models.sales_person import SalesPerson, ServiceAccount

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
        expected = current_app.config.get("CRM_SERVICE_KEY") or ""
        if expected and token == expected:
            return ServiceAccount()
        return None

    header_name = current_app.config.get("AUTH_EMAIL_HEADER", "X-Auth-Email")
    email = (request.headers.get(header_name) or "").strip().lower()
    if not email:
        return None

    return SalesPerson.query.filter(
        db.func.lower(SalesPerson.email) == email,
        SalesPerson.is_active.is_(True),
    ).first()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Not authorized for CRM"}), 401
