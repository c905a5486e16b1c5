"""
Check-in endpoints. Duplicate check-ins are rejected by the database's
unique index on active (event, participant) rows and surface as 409.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.user import UserRole
from models.schemas.checkin import (
    CheckInCreateSchema,
    CheckInOutSchema,
    CheckInStatsSchema,
    CheckInStatusSchema,
)
from utils.decorators import jwt_required
from api.utils.pagination import parse_pagination, page_meta

bp = Blueprint("checkins", __name__)

checkin_create_schema = CheckInCreateSchema()
checkin_out_schema = CheckInOutSchema()
checkin_list_out_schema = CheckInOutSchema(many=True)
status_schema = CheckInStatusSchema()
stats_schema = CheckInStatsSchema()


def _service():
    return current_app.extensions["checkin_service"]


def _is_admin() -> bool:
    return g.current_user_role == UserRole.ADMIN.value


@bp.post("/events/<event_id>/checkins")
@jwt_required()
def check_in(event_id):
    """
    Check a participant in, by QR code or manually by participant id.
    ---
    tags:
      - Check-ins
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
          required: [method]
          properties:
            method: { type: string, enum: [qrcode, manual] }
            qr_code: { type: string }
            participant_id: { type: string }
            device_info: { type: object }
    responses:
      200: { description: Checked in }
      400: { description: Validation error or participant not eligible }
      403: { description: Not the event's organizer }
      404: { description: Event or participant not found }
      409: { description: Participant has already checked in }
    """
    data = checkin_create_schema.load(request.get_json(silent=True) or {})
    checkin = _service().check_in(
        event_id,
        g.current_user_id,
        _is_admin(),
        data["method"],
        qr_code=data.get("qr_code"),
        participant_id=data.get("participant_id"),
        device_info=data.get("device_info"),
    )
    return jsonify({"data": checkin_out_schema.dump(checkin)}), 200


@bp.get("/events/<event_id>/checkins")
@jwt_required()
def list_checkins(event_id):
    """
    List active check-ins of an event
    ---
    tags:
      - Check-ins
    security:
      - Bearer: []
    parameters:
      - { in: path, name: event_id, type: string, required: true }
      - { in: query, name: page, type: integer }
      - { in: query, name: limit, type: integer }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    rows, total = _service().list_for_event(event_id, g.current_user_id, _is_admin(), page, limit)
    return jsonify(
        {
            "data": checkin_list_out_schema.dump(rows),
            "meta": page_meta(page, limit, total)
        }
    )


@bp.get("/events/<event_id>/checkins/stats")
@jwt_required()
def checkin_stats(event_id):
    """
    Check-in counts for an event
    ---
    tags:
      - Check-ins
    security:
      - Bearer: []
    parameters:
      - { in: path, name: event_id, type: string, required: true }
    responses:
      200: { description: OK }
    """
    stats = _service().stats(event_id, g.current_user_id, _is_admin())
    return jsonify({"data": stats_schema.dump(stats)})


@bp.delete("/checkins/<checkin_id>")
@jwt_required()
def cancel_checkin(checkin_id):
    """
    Cancel a check-in. The participant may check in again afterwards.
    ---
    tags:
      - Check-ins
    security:
      - Bearer: []
    parameters:
      - { in: path, name: checkin_id, type: string, required: true }
    responses:
      204: { description: Cancelled }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    _service().cancel(checkin_id, g.current_user_id, _is_admin())
    return ("", 204)


@bp.get("/participants/<participant_id>/checkin-status")
@jwt_required()
def checkin_status(participant_id):
    """
    Whether a participant is currently checked in
    ---
    tags:
      - Check-ins
    security:
      - Bearer: []
    parameters:
      - { in: path, name: participant_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    status = _service().get_status(participant_id, g.current_user_id, _is_admin())
    return jsonify({"data": status_schema.dump(status)})
