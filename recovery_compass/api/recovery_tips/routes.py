# recovery_compass/api/recovery_tips/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from recovery_compass.api.recovery_tips.schemas import ManualTipInputSchema
from recovery_compass.api.recovery_tips.services import TipGenerationError, NoDailyLogError

recovery_tips_bp = Blueprint('recovery_tips_bp', __name__)


@recovery_tips_bp.route('/latest', methods=['POST'])
@jwt_required()
def regenerate_latest_tips():
    """가장 최근 일일 기록으로 회복 팁을 (재)생성하고 그 기록에 저장합니다."""
    user_id = get_jwt_identity()
    tip_service = current_app.services['recovery_tips']
    try:
        result = tip_service.regenerate_latest(user_id)
        return jsonify({"log": result['log'].to_response(), "recoveryTips": result['tips']}), 200
    except NoDailyLogError as e:
        return jsonify({"error_code": "NO_DAILY_LOG", "message": str(e)}), 404
    except TipGenerationError as e:
        return jsonify({"error_code": "TIP_GENERATION_FAILED", "message": str(e)}), 502
    except Exception as e:
        logging.error(f"Latest tip generation API error (user: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not generate tips."}), 500


@recovery_tips_bp.route('/manual', methods=['POST'])
@jwt_required()
def generate_manual_tips():
    """직접 입력한 값으로 회복 팁을 생성합니다. 결과는 저장되지 않습니다."""
    user_id = get_jwt_identity()
    tip_service = current_app.services['recovery_tips']
    try:
        manual_input = ManualTipInputSchema().load(request.get_json(silent=True) or {})
        tips = tip_service.generate_manual(user_id, manual_input)
        return jsonify({"recoveryTips": tips}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except TipGenerationError as e:
        return jsonify({"error_code": "TIP_GENERATION_FAILED", "message": str(e)}), 502
    except Exception as e:
        logging.error(f"Manual tip generation API error (user: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not generate tips."}), 500
