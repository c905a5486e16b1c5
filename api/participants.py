from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.user import UserRole
from models.schemas.participant import (
    BulkResultSchema,
    ParticipantCreateSchema,
    ParticipantListQuerySchema,
    ParticipantOutSchema,
    ParticipantUpdateSchema,
)
from services.errors import ValidationError
from utils.decorators import jwt_required
from api.utils.csv_import import rows_from_csv
from api.utils.pagination import parse_pagination, page_meta

bp = Blueprint("participants", __name__)

participant_create_schema = ParticipantCreateSchema()
participant_update_schema = ParticipantUpdateSchema()
participant_list_query_schema = ParticipantListQuerySchema()
participant_out_schema = ParticipantOutSchema()
participant_list_out_schema = ParticipantOutSchema(many=True)
bulk_result_schema = BulkResultSchema()


def _service():
    return current_app.extensions["participant_service"]


def _is_admin() -> bool:
    return g.current_user_role == UserRole.ADMIN.value


@bp.post("/events/<event_id>/participants")
@jwt_required()
def add_participant(event_id):
    """
    Register a participant for an event; a QR code is generated for them.
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: event_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          required: [name, email]
          properties:
            name: { type: string }
            email: { type: string }
            status: { type: string, enum: [tentative, confirmed, cancelled, declined] }
    responses:
      201: { description: Created }
      403: { description: Not the event's organizer }
      404: { description: Event not found }
      409: { description: Email already registered for this event }
    """
    data = participant_create_schema.load(request.get_json(silent=True) or {})
    participant = _service().register(event_id, g.current_user_id, _is_admin(), data)
    return jsonify({"data": participant_out_schema.dump(participant)}), 201


@bp.post("/events/<event_id>/participants/bulk")
@jwt_required()
def bulk_add_participants(event_id):
    """
    Register many participants at once, from JSON or from a CSV upload.
    Rows are handled independently; failures are reported by row index.
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    consumes:
      - application/json
      - multipart/form-data
      - text/csv
    parameters:
      - { in: path, name: event_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            participants:
              type: array
              items:
                type: object
                properties:
                  name: { type: string }
                  email: { type: string }
                  status: { type: string }
    responses:
      201: { description: At least one participant was created }
      200: { description: No participant could be created; see errors }
      400: { description: No rows, too many rows or an unreadable CSV }
      403: { description: Not the event's organizer }
      404: { description: Event not found }
    """
    result = _service().bulk_register(event_id, g.current_user_id, _is_admin(), _bulk_rows())
    status = 201 if result.created_count else 200
    return jsonify({"data": bulk_result_schema.dump(result)}), status


def _bulk_rows():
    upload = request.files.get("file")
    if upload is not None:
        return _csv_rows(upload.read())
    if request.mimetype == "text/csv":
        return _csv_rows(request.get_data())

    body = request.get_json(silent=True)
    rows = body.get("participants") if isinstance(body, dict) else body
    if not isinstance(rows, list):
        raise ValidationError("Invalid input", detail={"participants": ["must be a list of participants."]})
    return rows


def _csv_rows(raw: bytes):
    try:
        return rows_from_csv(raw.decode("utf-8"))
    except UnicodeDecodeError:
        raise ValidationError("Invalid input", detail={"file": ["CSV must be UTF-8 encoded."]})
    except ValueError as exc:
        raise ValidationError("Invalid input", detail={"file": [str(exc)]})


@bp.get("/events/<event_id>/participants")
@jwt_required()
def list_participants(event_id):
    """
    List an event's participants - organizer of the event or admin
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    parameters:
      - { in: path, name: event_id, type: string, required: true }
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: status, type: string, enum: [tentative, confirmed, cancelled, declined] }
      - { in: query, name: search, type: string, description: Case-insensitive match on name or email }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Event not found }
    """
    page, limit = parse_pagination()
    query = participant_list_query_schema.load(request.args)
    rows, total = _service().list_for_event(
        event_id, g.current_user_id, _is_admin(), page, limit, status=query["status"], search=query["search"]
    )
    return jsonify({"data": participant_list_out_schema.dump(rows), "meta": page_meta(page, limit, total)}), 200


@bp.get("/participants/<participant_id>")
@jwt_required()
def get_participant(participant_id):
    """
    Get a participant - organizer of the event or admin
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    parameters:
      - { in: path, name: participant_id, type: string, required: true }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    participant = _service().get(participant_id, g.current_user_id, _is_admin())
    return jsonify({"data": participant_out_schema.dump(participant)}), 200


@bp.put("/participants/<participant_id>")
@jwt_required()
def update_participant(participant_id):
    """
    Update a participant's name, email or status. Absent fields are left as they are.
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: participant_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            status: { type: string, enum: [tentative, confirmed, cancelled, declined] }
    responses:
      200: { description: Updated }
      400: { description: Validation error }
      403: { description: Forbidden }
      404: { description: Not found }
      409: { description: Email already registered for this event }
    """
    changes = participant_update_schema.load(request.get_json(silent=True) or {})
    participant = _service().update(participant_id, g.current_user_id, _is_admin(), changes)
    return jsonify({"data": participant_out_schema.dump(participant)}), 200


@bp.delete("/participants/<participant_id>")
@jwt_required()
def delete_participant(participant_id):
    """
    Delete a participant and their check-ins
    ---
    tags:
      - Participants
    security:
      - Bearer: []
    parameters:
      - { in: path, name: participant_id, type: string, required: true }
    responses:
      204: { description: Deleted }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    _service().delete(participant_id, g.current_user_id, _is_admin())
    return "", 204
