# recovery_compass/api/daily_logs/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from recovery_compass.api.daily_logs.schemas import MoodQuickLogSchema, DailyLogListQuerySchema
from recovery_compass.api.daily_logs.services import (
    DailyLogConflictError,
    DailyLogNotFoundError,
    PhotoUpload,
    PhotoUploadError,
)
from recovery_compass.utils.datetime_utils import DateTimeUtils

daily_logs_bp = Blueprint('daily_logs_bp', __name__)


def _read_submission():
    """
    요청 본문과 첨부 사진을 읽습니다.
    multipart/form-data이면 폼 필드와 'photo' 파일을, 아니면 JSON 본문을 사용합니다.
    """
    photo = None
    if request.mimetype == 'multipart/form-data' or request.form:
        payload = request.form
        photo_file = request.files.get('photo')
        if photo_file and photo_file.filename:
            photo = PhotoUpload(
                filename=photo_file.filename,
                content_type=photo_file.mimetype,
                data=photo_file.read(),
            )
    else:
        payload = request.get_json(silent=True) or {}

    today = DateTimeUtils.resolve_today(payload.get('today'))
    return payload, photo, today


def _submission_response(submission, status_code: int):
    body = {
        "log": submission.log.to_response(),
        "created": submission.created,
        "recoveryTips": submission.tips,
    }
    if submission.tips_error:
        body["tipsError"] = {"error_code": "TIP_GENERATION_FAILED", "message": submission.tips_error}
    return jsonify(body), status_code


def _submit(user_id: str, edit_log_id=None):
    service = current_app.services['daily_logs']
    try:
        try:
            payload, photo, today = _read_submission()
        except ValueError as e:
            raise ValidationError({"today": [str(e)]})

        submission = service.submit_daily_log(user_id, payload, today, photo=photo, edit_log_id=edit_log_id)
        return _submission_response(submission, 201 if submission.created else 200)

    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except DailyLogConflictError as e:
        return jsonify({
            "error_code": "LOG_ALREADY_EXISTS",
            "message": str(e),
            "existingLogId": e.existing_log_id,
            "date": e.log_date,
        }), 409
    except DailyLogNotFoundError as e:
        return jsonify({"error_code": "LOG_NOT_FOUND", "message": str(e)}), 404
    except PhotoUploadError as e:
        return jsonify({"error_code": "PHOTO_UPLOAD_FAILED", "message": str(e)}), 502
    except Exception as e:
        logging.error(f"일일 기록 제출 API 오류 (user: {user_id}, edit: {edit_log_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LOG_SUBMISSION_FAILED", "message": str(e) or "An unexpected error occurred."}), 500


@daily_logs_bp.route('', methods=['POST'])
@jwt_required()
def create_daily_log():
    """
    오늘(또는 지정한 날짜)의 일일 기록을 새로 생성합니다.
    같은 날짜의 기록이 이미 있으면 409와 함께 기존 기록 ID를 반환하며, 클라이언트는 수정 화면으로 이동해야 합니다.
    """
    return _submit(get_jwt_identity())


@daily_logs_bp.route('/<string:log_id>', methods=['PUT'])
@jwt_required()
def update_daily_log(log_id: str):
    """기존 일일 기록을 수정하고 회복 팁을 다시 생성합니다."""
    return _submit(get_jwt_identity(), edit_log_id=log_id)


@daily_logs_bp.route('', methods=['GET'])
@jwt_required()
def list_daily_logs():
    """
    날짜 오름차순으로 일일 기록 목록을 조회합니다.

    쿼리 파라미터:
    - start_date, end_date: 날짜 범위 (YYYY-MM-DD, 선택)
    """
    user_id = get_jwt_identity()
    service = current_app.services['daily_logs']
    try:
        params = DailyLogListQuerySchema().load(request.args)
        logs = service.list_logs(user_id, params.get('start_date'), params.get('end_date'))
        return jsonify({"logs": [log.to_response() for log in logs]}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Daily log list API error (user: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not fetch daily logs."}), 500


@daily_logs_bp.route('/latest', methods=['GET'])
@jwt_required()
def get_latest_daily_log():
    """가장 최근 날짜의 기록을 조회합니다."""
    user_id = get_jwt_identity()
    service = current_app.services['daily_logs']
    try:
        log = service.get_latest_log(user_id)
        if log is None:
            return jsonify({"error_code": "LOG_NOT_FOUND", "message": "No daily logs yet."}), 404
        return jsonify(log.to_response()), 200
    except Exception as e:
        logging.error(f"Latest daily log API error (user: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not fetch latest log."}), 500


@daily_logs_bp.route('/by-date/<string:log_date>', methods=['GET'])
@jwt_required()
def get_daily_log_by_date(log_date: str):
    """특정 날짜의 기록을 조회합니다. 기록 화면에서 생성/수정 모드를 결정할 때 사용합니다."""
    user_id = get_jwt_identity()
    service = current_app.services['daily_logs']
    try:
        DateTimeUtils.parse_date_string(log_date)
    except ValueError:
        return jsonify({"error_code": "INVALID_DATE_FORMAT", "message": "Invalid date (YYYY-MM-DD)."}), 400

    try:
        log = service.get_log_by_date(user_id, log_date)
        if log is None:
            return jsonify({"error_code": "LOG_NOT_FOUND", "message": f"No log for {log_date}."}), 404
        return jsonify(log.to_response()), 200
    except Exception as e:
        logging.error(f"Daily log by date API error (user: {user_id}, date: {log_date}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not fetch daily log."}), 500


@daily_logs_bp.route('/<string:log_id>', methods=['GET'])
@jwt_required()
def get_daily_log(log_id: str):
    """문서 ID로 기록 하나를 조회합니다."""
    user_id = get_jwt_identity()
    service = current_app.services['daily_logs']
    try:
        return jsonify(service.get_log(user_id, log_id).to_response()), 200
    except DailyLogNotFoundError as e:
        return jsonify({"error_code": "LOG_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Daily log fetch API error (user: {user_id}, log: {log_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not fetch daily log."}), 500


@daily_logs_bp.route('/mood', methods=['POST'])
@jwt_required()
def quick_log_mood():
    """대시보드 무드 트래커: 오늘 기록의 기분만 갱신하거나 기분만 담긴 기록을 생성합니다."""
    user_id = get_jwt_identity()
    service = current_app.services['daily_logs']
    try:
        body = request.get_json(silent=True) or {}
        data = MoodQuickLogSchema().load(body)
        try:
            today = DateTimeUtils.resolve_today(body.get('today'))
        except ValueError as e:
            raise ValidationError({"today": [str(e)]})

        log, created = service.quick_log_mood(user_id, data['mood'], today)
        return jsonify({"log": log.to_response(), "created": created}), 201 if created else 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Mood quick-log API error (user: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "MOOD_UPDATE_FAILED", "message": "Could not update mood."}), 500
