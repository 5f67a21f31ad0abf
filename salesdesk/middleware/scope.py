"""Scope middleware — turns the authenticated caller into a gateway Scope.

Runs before every request. Sets g.scope to:
    Scope.system()       the service account (Bearer CRM_SERVICE_KEY)
    Scope.all()          an admin sales person
    Scope.owned_by(id)   any other sales person
    None                 nobody matched; protected routes answer 401

and g.actor_id to the sales person's id (None for the service account).
"""

import logging

from flask import current_app, g, request
from flask_login import current_user

from salesdesk.services.gateway import Scope

logger = logging.getLogger(__name__)


def resolve_scope():
    """Before-request hook: resolve the CRM caller once per request."""
    g.scope = None
    g.actor_id = None
    if request.path == "/health":
        return

    # Identity comes from this request's headers only.
    g.pop("_login_user", None)

    if current_user.is_authenticated:
        g.scope = Scope.for_user(current_user)
        # The service account acts as "the system": no actor on its rows.
        g.actor_id = None if current_user.is_system else current_user.id
        return

    header_name = current_app.config.get("AUTH_EMAIL_HEADER", "X-Auth-Email")
    if request.headers.get("Authorization") or request.headers.get(header_name):
        logger.warning(f"Rejected CRM credentials on {request.method} {request.path}")


def init_scope_middleware(app):
    """Register the scope resolver as a before_request hook."""
    app.before_request(resolve_scope)
