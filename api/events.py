from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.event import Event
from models.user import UserRole
from models.schemas.event import EventCreateSchema, EventListQuerySchema, EventOutSchema, EventUpdateSchema
from models.schemas.checkin import CheckInStatsSchema
from services.errors import NotFoundError
from utils.decorators import jwt_optional, roles_required
from api.utils.pagination import parse_pagination, page_meta

bp = Blueprint("events", __name__)

event_create_schema = EventCreateSchema()
event_update_schema = EventUpdateSchema()
event_list_query_schema = EventListQuerySchema()
event_out_schema = EventOutSchema()
event_list_out_schema = EventOutSchema(many=True)
stats_schema = CheckInStatsSchema()


def _service():
    return current_app.extensions["event_service"]


def _is_admin() -> bool:
    return g.current_user_role == UserRole.ADMIN.value


@bp.post("/events")
@roles_required([UserRole.ORGANIZER, UserRole.ADMIN])
def create_event():
    """
    Create an event. The caller becomes its organizer.
    ---
    tags:
      - Events
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [name]
          properties:
            name: { type: string }
            description: { type: string }
            location: { type: string }
            starts_at: { type: string, format: date-time }
            ends_at: { type: string, format: date-time }
    responses:
      201: { description: Created }
      400: { description: Validation error }
      403: { description: Forbidden }
    """
    data = event_create_schema.load(request.get_json(silent=True) or {})
    event = Event(organizer_id=g.current_user_id, **data)
    current_app.extensions["event_repository"].create(event)
    return jsonify({"data": event_out_schema.dump(event)}), 201


@bp.get("/events/<event_id>")
@jwt_optional()
def get_event(event_id):
    """
    Get an event. Its organizer and admins also receive check-in counts.
    ---
    tags:
      - Events
    parameters:
      - { in: path, name: event_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    event = current_app.extensions["event_repository"].find_by_id(event_id)
    if event is None:
        raise NotFoundError("event not found")

    body = {"data": event_out_schema.dump(event)}
    is_admin = g.current_user_role == UserRole.ADMIN.value
    if is_admin or (g.current_user_id and g.current_user_id == event.organizer_id):
        stats = current_app.extensions["checkin_service"].stats(event_id, g.current_user_id, is_admin)
        body["stats"] = stats_schema.dump(stats)
    return jsonify(body), 200


@bp.get("/events")
@roles_required([UserRole.ORGANIZER, UserRole.ADMIN])
def list_events():
    """
    List events. Organizers see their own; admins see all, or one organizer's.
    ---
    tags:
      - Events
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: search, type: string, description: Case-insensitive match on the name }
      - { in: query, name: organizer_id, type: string, description: Admins only }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    query = event_list_query_schema.load(request.args)
    rows, total = _service().list(
        g.current_user_id,
        _is_admin(),
        page,
        limit,
        search=query["search"],
        organizer_id=query["organizer_id"],
    )
    return jsonify({"data": event_list_out_schema.dump(rows), "meta": page_meta(page, limit, total)}), 200


@bp.put("/events/<event_id>")
@roles_required([UserRole.ORGANIZER, UserRole.ADMIN])
def update_event(event_id):
    """
    Update an event - its organizer or an admin. Absent fields are left as they are.
    ---
    tags:
      - Events
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
          properties:
            name: { type: string }
            description: { type: string }
            location: { type: string }
            starts_at: { type: string, format: date-time }
            ends_at: { type: string, format: date-time }
    responses:
      200: { description: Updated }
      400: { description: Validation error }
      403: { description: Not the event's organizer }
      404: { description: Not found }
    """
    changes = event_update_schema.load(request.get_json(silent=True) or {})
    event = _service().update(event_id, g.current_user_id, _is_admin(), changes)
    return jsonify({"data": event_out_schema.dump(event)}), 200


@bp.delete("/events/<event_id>")
@roles_required([UserRole.ORGANIZER, UserRole.ADMIN])
def delete_event(event_id):
    """
    Delete an event with its participants and check-ins - its organizer or an admin
    ---
    tags:
      - Events
    security:
      - Bearer: []
    parameters:
      - { in: path, name: event_id, type: string, required: true }
    responses:
      204: { description: Deleted }
      403: { description: Not the event's organizer }
      404: { description: Not found }
      409: { description: The event is in progress }
    """
    _service().delete(event_id, g.current_user_id, _is_admin())
    return "", 204
