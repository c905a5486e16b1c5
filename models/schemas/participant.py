from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from models.participant import ParticipantStatus


class ParticipantCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    status = fields.Enum(ParticipantStatus, by_value=True, load_default=ParticipantStatus.TENTATIVE)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("email"), str):
            data = dict(data)
            data["email"] = data["email"].strip().lower()
        return data


class ParticipantOutSchema(Schema):
    id = fields.String()
    event_id = fields.String()
    name = fields.String()
    email = fields.String()
    status = fields.Enum(ParticipantStatus, by_value=True)
    qr_code = fields.String()
    qr_code_generated_at = fields.DateTime()
    created_at = fields.DateTime()


class ParticipantUpdateSchema(ParticipantCreateSchema):
    name = fields.String(validate=validate.Length(min=1, max=255))
    email = fields.Email(validate=validate.Length(max=255))
    status = fields.Enum(ParticipantStatus, by_value=True)


class ParticipantListQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    status = fields.Enum(ParticipantStatus, by_value=True, load_default=None)
    search = fields.String(load_default=None, validate=validate.Length(max=255))


class BulkRowErrorSchema(Schema):
    index = fields.Integer()
    email = fields.String(allow_none=True)
    message = fields.String()


class BulkResultSchema(Schema):
    created_count = fields.Integer()
    failed_count = fields.Integer()
    participants = fields.List(fields.Nested(ParticipantOutSchema))
    errors = fields.List(fields.Nested(BulkRowErrorSchema))
