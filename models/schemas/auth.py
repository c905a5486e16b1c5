from marshmallow import Schema, fields, validate

from models.schemas.user import CLIENT_TYPES, UserOutSchema


class RefreshSchema(Schema):
    refresh_token = fields.String(required=True, validate=validate.Length(min=1))
    client_type = fields.String(load_default="web", validate=validate.OneOf(CLIENT_TYPES))


class LogoutSchema(Schema):
    refresh_token = fields.String(load_default=None, allow_none=True)


class AuthResultSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.String()
    expires_in = fields.Integer()
    user = fields.Nested(UserOutSchema)
