# recovery_compass/api/users/services.py
import logging
from typing import Optional, Dict, Any
from google.api_core.exceptions import Conflict

from recovery_compass.models.user import UserProfile
from recovery_compass.services import firestore_service
from recovery_compass.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)


class ProfileNotFoundError(LookupError):
    """사용자 프로필 문서가 존재하지 않을 때 발생합니다."""


class ProfileAlreadyExistsError(Exception):
    """이미 프로필이 있는 사용자에 대해 다시 생성하려 할 때 발생합니다."""


class UserProfileService:
    """
    사용자 프로필 관련 비즈니스 로직을 담당하는 서비스 클래스.
    수술 종류/날짜는 회복 팁 생성 요청에 함께 전달됩니다.
    """
    def __init__(self, db=None):
        self.db = db or firestore_service.get_client()
        self.users_ref = firestore_service.users_ref(self.db)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        사용자 ID로 프로필을 조회합니다.
        :return: UserProfile 또는 None
        """
        try:
            doc = self.users_ref.document(user_id).get()
            if not doc.exists:
                return None
            return UserProfile.from_dict(user_id, doc.to_dict())
        except Exception as e:
            logger.error(f"프로필 조회 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

    def create_profile(self, user_id: str, data: Dict[str, Any]) -> UserProfile:
        """가입 직후 프로필 문서를 생성합니다."""
        now = DateTimeUtils.now()
        profile = UserProfile(
            id=user_id,
            name=data['name'],
            email=data['email'],
            surgery_type=data.get('surgery_type'),
            surgery_date=self._date_str(data.get('surgery_date')),
            created_at=now,
            updated_at=now,
        )
        try:
            # create()는 문서가 이미 있으면 실패하므로 중복 가입을 막아줍니다.
            self.users_ref.document(user_id).create(profile.to_firestore())
        except Conflict:
            raise ProfileAlreadyExistsError("A profile already exists for this account.")

        logger.info(f"User profile created for {user_id}")
        return profile

    def update_profile(self, user_id: str, data: Dict[str, Any]) -> UserProfile:
        """이름과 수술 정보를 수정합니다. 이메일은 수정할 수 없습니다."""
        user_ref = self.users_ref.document(user_id)
        if not user_ref.get().exists:
            raise ProfileNotFoundError("Could not load profile information.")

        update_data = {'updatedAt': DateTimeUtils.now()}
        if 'name' in data:
            update_data['name'] = data['name']
        if 'surgery_type' in data:
            update_data['surgeryType'] = data['surgery_type']
        if 'surgery_date' in data:
            update_data['surgeryDate'] = self._date_str(data['surgery_date'])

        user_ref.update(update_data)
        logger.info(f"User profile updated for {user_id} with fields: {list(update_data.keys())}")
        return self.get_profile(user_id)

    @staticmethod
    def _date_str(value) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        return DateTimeUtils.to_date_string(value)
