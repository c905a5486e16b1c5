from datetime import timezone

from marshmallow import EXCLUDE, Schema, fields, validate, validates_schema, ValidationError


class EventCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(load_default=None, allow_none=True)
    location = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=255))
    starts_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)
    ends_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=timezone.utc)

    @validates_schema
    def _validate_window(self, data, **kwargs):
        starts, ends = data.get("starts_at"), data.get("ends_at")
        if starts and ends and ends < starts:
            raise ValidationError("ends_at must not be before starts_at.", field_name="ends_at")


class EventOutSchema(Schema):
    id = fields.String()
    organizer_id = fields.String()
    name = fields.String()
    description = fields.String(allow_none=True)
    location = fields.String(allow_none=True)
    starts_at = fields.DateTime(allow_none=True)
    ends_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()


class EventUpdateSchema(Schema):
    """Partial update; only the fields present are applied."""
    name = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    location = fields.String(allow_none=True, validate=validate.Length(max=255))
    starts_at = fields.AwareDateTime(allow_none=True, default_timezone=timezone.utc)
    ends_at = fields.AwareDateTime(allow_none=True, default_timezone=timezone.utc)


class EventListQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    search = fields.String(load_default=None, validate=validate.Length(max=255))
    organizer_id = fields.String(load_default=None)
