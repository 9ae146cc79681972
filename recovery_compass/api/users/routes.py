# recovery_compass/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from recovery_compass.api.users.schemas import (
    ProfileCreateSchema,
    ProfileUpdateSchema,
    ProfileResponseSchema,
)
from recovery_compass.api.users.services import ProfileNotFoundError, ProfileAlreadyExistsError

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    """현재 로그인된 사용자의 프로필을 조회합니다."""
    user_id = get_jwt_identity()
    user_service = current_app.services['users']
    try:
        profile = user_service.get_profile(user_id)
        if not profile:
            return jsonify({"error_code": "USER_NOT_FOUND", "message": "Could not load profile information."}), 404
        return jsonify(ProfileResponseSchema().dump(profile)), 200
    except Exception as e:
        logging.error(f"프로필 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_FETCH_FAILED", "message": "Could not load profile information."}), 500


@users_bp.route('/me', methods=['POST'])
@jwt_required()
def create_my_profile():
    """가입 직후 현재 사용자의 프로필 문서를 생성합니다."""
    user_id = get_jwt_identity()
    user_service = current_app.services['users']
    try:
        data = ProfileCreateSchema().load(request.get_json(silent=True) or {})
        profile = user_service.create_profile(user_id, data)
        return jsonify(ProfileResponseSchema().dump(profile)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ProfileAlreadyExistsError as e:
        return jsonify({"error_code": "PROFILE_ALREADY_EXISTS", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"프로필 생성 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_CREATION_FAILED", "message": "Could not create profile."}), 500


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """현재 사용자의 이름과 수술 정보를 수정합니다 (부분 업데이트)."""
    user_id = get_jwt_identity()
    user_service = current_app.services['users']
    try:
        data = ProfileUpdateSchema().load(request.get_json(silent=True) or {})
        profile = user_service.update_profile(user_id, data)
        return jsonify(ProfileResponseSchema().dump(profile)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ProfileNotFoundError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"프로필 수정 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "Update failed."}), 500
