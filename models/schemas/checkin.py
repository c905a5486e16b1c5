from marshmallow import Schema, fields

from models.checkin import CheckInMethod


class CheckInCreateSchema(Schema):
    method = fields.Enum(CheckInMethod, by_value=True, required=True)
    qr_code = fields.String(load_default=None, allow_none=True)
    participant_id = fields.String(load_default=None, allow_none=True)
    device_info = fields.Dict(keys=fields.String(), load_default=None, allow_none=True)


class CheckInOutSchema(Schema):
    id = fields.String()
    event_id = fields.String()
    participant_id = fields.String()
    participant_name = fields.Function(lambda c: c.participant.name if c.participant else None)
    participant_email = fields.Function(lambda c: c.participant.email if c.participant else None)
    checked_in_at = fields.DateTime()
    checked_in_by = fields.String(allow_none=True)
    method = fields.Enum(CheckInMethod, by_value=True)
    device_info = fields.Dict(allow_none=True)


class CheckInStatusSchema(Schema):
    participant_id = fields.String()
    event_id = fields.String()
    checked_in = fields.Boolean()
    checkin = fields.Nested(CheckInOutSchema, allow_none=True)


class CheckInStatsSchema(Schema):
    event_id = fields.String()
    total_participants = fields.Integer()
    checked_in_count = fields.Integer()
    not_checked_in_count = fields.Integer()
    checkin_rate = fields.Float()
