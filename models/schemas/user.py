from marshmallow import Schema, fields, pre_load, validate

from models.user import UserRole

CLIENT_TYPES = ("web", "mobile")


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class RegisterSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1, max=128))
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    role = fields.String(required=True, validate=validate.OneOf([r.value for r in UserRole]))
    client_type = fields.String(load_default="web", validate=validate.OneOf(CLIENT_TYPES))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            if "name" in data:
                data["name"] = _strip(data["name"])
        return data


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    client_type = fields.String(load_default="web", validate=validate.OneOf(CLIENT_TYPES))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    name = fields.String()
    role = fields.Enum(UserRole, by_value=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class UserAdminOutSchema(UserOutSchema):
    deleted_at = fields.DateTime(allow_none=True)
    is_deleted = fields.Boolean(dump_only=True)
    is_anonymized = fields.Boolean()
