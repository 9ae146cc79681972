# recovery_compass/api/recovery_tips/schemas.py
from marshmallow import Schema, fields, validate

from recovery_compass.models.daily_log import MIN_LEVEL, MAX_LEVEL, MAX_NOTES_LENGTH


class ManualTipInputSchema(Schema):
    """POST /api/recovery-tips/manual 요청 스키마 (기록 없이 직접 입력)."""
    pain_level = fields.Int(data_key="painLevel", load_default=5,
                            validate=validate.Range(min=MIN_LEVEL, max=MAX_LEVEL))
    swelling_level = fields.Int(data_key="swellingLevel", load_default=5,
                                validate=validate.Range(min=MIN_LEVEL, max=MAX_LEVEL))
    medication_taken = fields.Str(data_key="medicationTaken", load_default="")
    notes = fields.Str(load_default="", validate=validate.Length(max=MAX_NOTES_LENGTH))
