# agrireach/decorators.py
from functools import wraps
from flask import current_app
from flask_login import current_user
from agrireach.api import json_error


def roles_required(*roles, allow_admin=True):
    """Allow the request through when the current user holds any of ``roles``.

    Admins pass every allow-list unless ``allow_admin`` is False.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()
            if allow_admin and current_user.has_role('admin'):
                return view(*args, **kwargs)
            if not any(current_user.has_role(role) for role in roles):
                role_text = ', '.join(roles)
                return json_error(
                    f'Access denied - You need {role_text} role(s) to access this feature. '
                    'Please update your roles in Settings.', 403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.has_role('admin'):
            return json_error('Forbidden', 403)
        return view(*args, **kwargs)
    return wrapped


def is_owner_or_admin(owner_id):
    return current_user.is_authenticated and (current_user.id == owner_id or current_user.has_role('admin'))
