from __future__ import annotations
from functools import wraps
from flask import request, g, current_app


def _gate():
    return current_app.extensions["auth_gate"]


def _attach(identity):
    g.current_identity = identity
    g.current_user_id = identity.user_id if identity else None
    g.current_user_role = identity.role if identity else None
    g.current_token = identity.token if identity else None
    g.current_claims = identity.claims if identity else None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            # Raises UnauthorizedError / InternalError; the error handlers render them.
            identity = _gate().authenticate(request.headers.get("Authorization"))
            _attach(identity)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    """
    Attach the caller's identity when a valid access token is presented.
    Never rejects: on any failure the request proceeds anonymously.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = _gate().authenticate_optional(request.headers.get("Authorization"))
            _attach(identity)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the caller's role is one of the required roles.
    Runs after jwt_required has populated the identity; a missing or
    malformed role is a 403.
    """
    req = [getattr(r, "value", r) for r in (required_roles or [])]

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            _gate().require_role(g.current_identity, req)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
