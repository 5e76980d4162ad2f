"""Session-based admin authentication for the JSON API."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, Optional

from flask import session


@dataclass
class AuthError(Exception):
    """Raised when admin authentication fails."""

    message: str
    status_code: int = 401

    def __str__(self) -> str:  # pragma: no cover - dataclass convenience
        return self.message


def verify_admin_credentials(email: str, password: str, storage: Any, admin_password: str) -> Dict[str, Any]:
    """Check ``email`` is a registered admin and ``password`` matches ``ADMIN_PASSWORD``.

    Returns the session payload for the admin.

    Raises
    ------
    AuthError
        503 when no admin password is configured, 401 for bad credentials.
    """

    if not admin_password:
        raise AuthError('Admin login is not configured on this server.', 503)

    admin = storage.get_admin_by_email(email)
    password_ok = hmac.compare_digest(password.encode('utf-8'), admin_password.encode('utf-8'))
    if admin is None or not password_ok:
        raise AuthError('Invalid credentials.')

    return {'id': admin.id, 'email': admin.email}


def current_admin() -> Optional[Dict[str, Any]]:
    return session.get('admin')


def admin_required(view):
    """Decorator returning 401 JSON unless an admin is logged in."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_admin() is None:
            return {'error': 'Unauthorized'}, 401
        return view(*args, **kwargs)

    return wrapped
