from __future__ import annotations

from flask import Blueprint, jsonify, g, current_app

from models import storage
from models.user import User, UserRole
from models.schemas.user import UserAdminOutSchema
from services.errors import BadRequestError, NotFoundError
from utils.decorators import roles_required
from api.utils.pagination import parse_pagination, page_meta

bp = Blueprint("users", __name__)

user_out_schema = UserAdminOutSchema()
user_list_out_schema = UserAdminOutSchema(many=True)


def _users():
    return current_app.extensions["user_repository"]


@bp.get("/users")
@roles_required([UserRole.ADMIN])
def list_users():
    """
    List active users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer }
      - { in: query, name: limit, type: integer }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    rows, total = _users().list_active(page, limit)
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": page_meta(page, limit, total)
        }
    )


@bp.get("/users/<user_id>")
@roles_required([UserRole.ADMIN])
def get_user(user_id):
    """
    Get a user by id, including soft-deleted users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = storage.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return jsonify({"data": user_out_schema.dump(user)})


@bp.delete("/users/<user_id>")
@roles_required([UserRole.ADMIN])
def delete_user(user_id):
    """
    Soft delete a user and anonymize their personal data - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      204: { description: Deleted }
      400: { description: Cannot delete own account }
      404: { description: Not found }
    """
    if user_id == g.current_user_id:
        raise BadRequestError("cannot delete your own account")
    if not _users().soft_delete(user_id, deleted_by=g.current_user_id):
        raise NotFoundError("user not found")
    return ("", 204)
