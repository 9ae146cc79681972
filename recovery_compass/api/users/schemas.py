# recovery_compass/api/users/schemas.py
from datetime import date
from marshmallow import Schema, fields, validate, validates, ValidationError

from recovery_compass.utils.datetime_utils import DateTimeUtils

EARLIEST_SURGERY_DATE = date(1900, 1, 1)


def validate_surgery_date(value: date):
    """수술 날짜는 1900-01-01 이후이면서 미래가 아니어야 합니다."""
    if value > DateTimeUtils.today():
        raise ValidationError("Surgery date cannot be in the future.")
    if value < EARLIEST_SURGERY_DATE:
        raise ValidationError("Surgery date must be after 1900-01-01.")


class ProfileCreateSchema(Schema):
    """POST /api/users/me 가입 직후 프로필 생성 요청 스키마."""
    name = fields.Str(required=True, validate=validate.Length(min=2, error="Name must be at least 2 characters."))
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email address."})
    surgery_type = fields.Str(data_key="surgeryType", load_default=None, allow_none=True)
    surgery_date = fields.Date(data_key="surgeryDate", format="%Y-%m-%d", load_default=None,
                               allow_none=True, validate=validate_surgery_date)


class ProfileUpdateSchema(Schema):
    """PATCH /api/users/me 프로필 수정 스키마 (부분 업데이트용)."""
    name = fields.Str(validate=validate.Length(min=2, error="Name must be at least 2 characters."))
    surgery_type = fields.Str(data_key="surgeryType",
                              validate=validate.Length(min=2, error="Surgery type is required."))
    surgery_date = fields.Date(data_key="surgeryDate", format="%Y-%m-%d", validate=validate_surgery_date)

    @validates("name")
    def validate_name(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Name must be at least 2 characters.")


class ProfileResponseSchema(Schema):
    """프로필 응답 스키마."""
    id = fields.Str(dump_only=True)
    name = fields.Str()
    email = fields.Str()
    surgery_type = fields.Str(data_key="surgeryType", allow_none=True)
    surgery_date = fields.Str(data_key="surgeryDate", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", allow_none=True)
    updated_at = fields.DateTime(data_key="updatedAt", allow_none=True)
