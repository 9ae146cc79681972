# recovery_compass/api/recovery_tips/services.py
"""
회복 팁 생성 서비스

일일 기록을 AI 요청 페이로드로 변환하고, 생성된 팁을 같은 기록 문서에 다시 저장합니다.
기록 저장과 팁 저장은 서로 독립된 두 번의 쓰기이며, 팁 생성 실패는 기록에 영향을 주지 않습니다.
"""

import logging
from typing import Any, Dict, Optional

from firebase_admin import firestore

from recovery_compass.api.users.services import UserProfileService
from recovery_compass.models.daily_log import DailyLog
from recovery_compass.models.user import UserProfile
from recovery_compass.services import firestore_service
from recovery_compass.services.openai_service import OpenAIService
from recovery_compass.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

DEFAULT_NOTES = "No additional notes."
DEFAULT_SURGERY_TYPE = "General Surgery"
DEFAULT_SURGERY_DATE = "Not specified"


class TipGenerationError(Exception):
    """회복 팁 생성 또는 저장에 실패했을 때 발생합니다. 기록 저장 결과와는 분리되어 보고됩니다."""


class NoDailyLogError(LookupError):
    """팁을 생성할 일일 기록이 하나도 없을 때 발생합니다."""


def join_medications(log: DailyLog) -> str:
    """저장된 복용 약 목록을 쉼표로 연결합니다. 직접 입력한 약이 목록에 없으면 뒤에 덧붙입니다."""
    medications = list(log.medications_taken)
    if log.custom_medication and log.custom_medication not in medications:
        medications.append(log.custom_medication)
    return ', '.join(medications)


def build_tip_request(log: DailyLog, profile: UserProfile,
                      photo_data_uri: Optional[str] = None) -> Dict[str, Any]:
    """
    일일 기록과 사용자 프로필로 팁 생성 요청 페이로드를 구성합니다.

    Args:
        log: 방금 저장된 일일 기록
        profile: 기록 소유자의 프로필
        photo_data_uri: 이번 제출에서 새로 올린 사진의 data URI.
            없으면 기록에 저장된 photoUrl을 사용합니다.
    """
    payload = {
        'painLevel': log.pain_level,
        'swellingLevel': log.swelling_level,
        'medicationTaken': join_medications(log),
        'notes': log.notes or DEFAULT_NOTES,
        'surgeryType': profile.surgery_type or DEFAULT_SURGERY_TYPE,
        'surgeryDate': profile.surgery_date or DEFAULT_SURGERY_DATE,
        'userName': profile.name,
    }
    photo = photo_data_uri or log.photo_url
    if photo:
        payload['photoDataUri'] = photo
    return payload


class RecoveryTipService:
    """
    AI 회복 팁 생성과 기록 반영을 담당하는 서비스
    """

    def __init__(self, openai_service: OpenAIService, user_service: UserProfileService, db=None):
        self.db = db or firestore_service.get_client()
        self.openai_service = openai_service
        self.user_service = user_service

    def _load_profile(self, user_id: str) -> UserProfile:
        """팁 요청에 필요한 프로필을 읽습니다. 조회 실패나 프로필 없음은 모두 TipGenerationError입니다."""
        try:
            profile = self.user_service.get_profile(user_id)
        except Exception as e:
            logger.error(f"Profile lookup for tip generation failed (user: {user_id}): {e}", exc_info=True)
            raise TipGenerationError(f"Could not load user profile: {e}") from e
        if not profile:
            raise TipGenerationError("User profile not found.")
        return profile

    def generate_for_log(self, user_id: str, log: DailyLog,
                         photo_data_uri: Optional[str] = None) -> str:
        """
        저장된 일일 기록에 대해 팁을 생성하고 같은 문서에 recoveryTips를 기록합니다.
        실패 시 TipGenerationError를 발생시키며 문서의 기존 recoveryTips는 그대로 남습니다.

        Returns:
            생성된 팁 문자열
        """
        profile = self._load_profile(user_id)
        payload = build_tip_request(log, profile, photo_data_uri)

        try:
            result = self.openai_service.generate_recovery_tips(payload)
            tips = result['tips']
        except Exception as e:
            logger.error(f"AI Tip Generation Error (user: {user_id}, log: {log.log_id}): {e}", exc_info=True)
            raise TipGenerationError(str(e) or "Could not generate recovery tips.") from e

        try:
            updated_at = DateTimeUtils.now()
            log_ref = firestore_service.daily_logs_ref(self.db, user_id).document(log.log_id)
            log_ref.update({'recoveryTips': tips, 'updatedAt': updated_at})
        except Exception as e:
            logger.error(f"회복 팁 저장 실패 (user: {user_id}, log: {log.log_id}): {e}", exc_info=True)
            raise TipGenerationError(f"Tips were generated but could not be saved: {e}") from e

        log.recovery_tips = tips
        log.updated_at = updated_at
        logger.info(f"Recovery tips saved to log {log.log_id} for user {user_id}")
        return tips

    def regenerate_latest(self, user_id: str) -> Dict[str, Any]:
        """
        가장 최근 날짜의 기록으로 팁을 다시 생성하고 그 기록에 저장합니다.
        사진은 기록에 저장된 공개 URL을 그대로 참조합니다.
        """
        query = firestore_service.daily_logs_ref(self.db, user_id) \
            .order_by('date', direction=firestore.Query.DESCENDING) \
            .limit(1)
        latest_doc = next(iter(query.stream()), None)
        if latest_doc is None:
            raise NoDailyLogError("We need at least one daily log to generate personalized recovery tips.")

        log = DailyLog.from_dict(latest_doc.to_dict(), log_id=latest_doc.id)
        tips = self.generate_for_log(user_id, log)
        return {'log': log, 'tips': tips}

    def generate_manual(self, user_id: str, manual_input: Dict[str, Any]) -> str:
        """
        기록 없이 직접 입력한 값으로 팁을 생성합니다. 결과는 저장하지 않습니다.
        """
        profile = self._load_profile(user_id)
        payload = {
            'painLevel': manual_input['pain_level'],
            'swellingLevel': manual_input['swelling_level'],
            'medicationTaken': manual_input.get('medication_taken') or '',
            'notes': manual_input.get('notes') or DEFAULT_NOTES,
            'surgeryType': profile.surgery_type or DEFAULT_SURGERY_TYPE,
            'surgeryDate': profile.surgery_date or DEFAULT_SURGERY_DATE,
            'userName': profile.name,
        }
        try:
            return self.openai_service.generate_recovery_tips(payload)['tips']
        except Exception as e:
            logger.error(f"수동 입력 팁 생성 실패 (user: {user_id}): {e}", exc_info=True)
            raise TipGenerationError(str(e) or "Could not generate tips.") from e
