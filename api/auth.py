"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

Access tokens are short-lived HS256 JWTs; refresh tokens are single-use and
rotated on every refresh. Revoked tokens are kept in the revocation store
until they would have expired anyway.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.auth import AuthResultSchema, LogoutSchema, RefreshSchema
from models.schemas.user import UserOutSchema
from services.auth_gate import extract_bearer_token
from services.errors import NotFoundError, UnauthorizedError
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__)

auth_result_schema = AuthResultSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
user_out_schema = UserOutSchema()


def _auth_service():
    return current_app.extensions["auth_service"]


@bp.post("/auth/register")
def register():
    """
    Register a new organizer or staff member.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, name, role]
          properties:
            email: { type: string }
            password: { type: string }
            name: { type: string }
            role: { type: string, enum: [organizer, staff] }
            client_type: { type: string, enum: [web, mobile] }
    responses:
      201:
        description: Created (returns tokens)
      400:
        description: Validation error
      409:
        description: Email already exists
    """
    payload = request.get_json(silent=True) or {}
    result = _auth_service().register(
        payload.get("email"),
        payload.get("password"),
        payload.get("name"),
        payload.get("role"),
        client_type=payload.get("client_type") or "web",
    )
    return jsonify({"data": auth_result_schema.dump(result)}), 201


@bp.post("/auth/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
             client_type: { type: string, enum: [web, mobile] }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    result = _auth_service().login(
        payload.get("email"),
        payload.get("password"),
        client_type=payload.get("client_type") or "web",
    )
    return jsonify({"data": auth_result_schema.dump(result)}), 200


@bp.post("/auth/refresh")
def refresh():
    """
    Exchange a refresh token for a new token pair (rotation).
    The presented refresh token is revoked and cannot be used again.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refresh_token]
           properties:
             refresh_token: { type: string }
             client_type: { type: string, enum: [web, mobile] }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Expired, invalid or revoked refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    result = _auth_service().refresh(data["refresh_token"], client_type=data["client_type"])
    return jsonify({"data": auth_result_schema.dump(result)}), 200


@bp.post("/auth/logout")
def logout():
    """
    Logout: revokes the presented access token and refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out (expired or absent tokens are skipped)
      401:
        description: A presented token or Authorization header is malformed, of the wrong type or already revoked
    """
    data = logout_schema.load(request.get_json(silent=True) or {})
    header = request.headers.get("Authorization")
    access_token = extract_bearer_token(header)
    if header and access_token is None:
        raise UnauthorizedError("invalid authorization header")
    result = _auth_service().logout(access_token=access_token, refresh_token=data.get("refresh_token"))
    return jsonify({"message": result.message}), 200


@bp.get("/auth/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = current_app.extensions["user_repository"].find_by_id(g.current_user_id)
    if user is None:
        raise NotFoundError("user not found")
    return jsonify({"data": user_out_schema.dump(user)}), 200
