"""
Custom route decorators for access control.

- crm_user_required: caller resolved to a sales person or the service account.
- admin_required: caller is an admin (or the service account).
"""

from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def crm_user_required(f):
    """Require a CRM identity; unknown callers get the 401 JSON response."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    """Require a CRM identity + admin role."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin:
            abort(403)
        return f(*args, **kwargs)

    return decorated
