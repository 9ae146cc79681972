# recovery_compass/api/daily_logs/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from recovery_compass.models.daily_log import (
    MOOD_VALUES, MIN_LEVEL, MAX_LEVEL, MAX_NOTES_LENGTH,
)

_TRUE_STRINGS = ('true', '1', 'yes', 'on')


class DailyLogSubmitSchema(Schema):
    """
    POST /api/daily-logs, PUT /api/daily-logs/<log_id> 요청 본문 스키마.
    multipart/form-data(사진 첨부)와 JSON 요청을 모두 처리합니다.
    """
    class Meta:
        unknown = EXCLUDE

    # 수정 요청에서는 기존 기록의 날짜를 그대로 사용하므로 필수가 아님
    date = fields.Date(format="%Y-%m-%d", load_default=None,
                       error_messages={"invalid": "Invalid date"})
    pain_level = fields.Int(data_key="painLevel", required=True,
                            validate=validate.Range(min=MIN_LEVEL, max=MAX_LEVEL))
    swelling_level = fields.Int(data_key="swellingLevel", required=True,
                                validate=validate.Range(min=MIN_LEVEL, max=MAX_LEVEL))
    medications_taken = fields.List(fields.Str(), data_key="medicationsTaken", load_default=list)
    custom_medication = fields.Str(data_key="customMedication", load_default=None, allow_none=True)
    mood = fields.Str(load_default=None, allow_none=True, validate=validate.OneOf(MOOD_VALUES))
    notes = fields.Str(load_default="", allow_none=True, validate=validate.Length(
        max=MAX_NOTES_LENGTH, error="Notes can be up to 1000 characters."))
    remove_photo = fields.Bool(data_key="removePhoto", load_default=False)

    @pre_load
    def preprocess_form_data(self, data, **kwargs):
        """폼 데이터(MultiDict)를 일반 딕셔너리로 정규화합니다."""
        if hasattr(data, 'getlist'):
            processed_data = data.to_dict()
            processed_data['medicationsTaken'] = data.getlist('medicationsTaken')
        else:
            processed_data = dict(data)

        # 폼에서 비어 있는 선택 값은 '없음'으로 처리
        for key in ('customMedication', 'mood', 'date'):
            value = processed_data.get(key)
            if isinstance(value, str) and not value.strip():
                processed_data[key] = None

        if isinstance(processed_data.get('removePhoto'), str):
            processed_data['removePhoto'] = processed_data['removePhoto'].lower() in _TRUE_STRINGS

        return processed_data


class MoodQuickLogSchema(Schema):
    """POST /api/daily-logs/mood 대시보드 무드 트래커 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    mood = fields.Str(required=True, validate=validate.OneOf(MOOD_VALUES))


class DailyLogListQuerySchema(Schema):
    """GET /api/daily-logs 쿼리 파라미터 검증 스키마."""
    start_date = fields.Str(validate=validate.Regexp(r'^\d{4}-\d{2}-\d{2}$'))
    end_date = fields.Str(validate=validate.Regexp(r'^\d{4}-\d{2}-\d{2}$'))
