# recovery_compass/api/daily_logs/services.py
"""
일일 회복 기록 관리 서비스

기록 생성/수정(upsert), 사진 첨부 상태 정리, 회복 팁 생성 연동을 담당합니다.
한 번의 제출은 아래 순서로 처리됩니다.
    검증 -> 날짜 중복 확인 -> 사진 업로드 -> 기록 저장 -> 이전 사진 정리 -> 팁 생성/저장
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core.exceptions import Conflict
from marshmallow import ValidationError

from recovery_compass.api.daily_logs.schemas import DailyLogSubmitSchema
from recovery_compass.api.recovery_tips.services import RecoveryTipService, TipGenerationError
from recovery_compass.models.daily_log import DailyLog, OTHER_MEDICATION
from recovery_compass.services import firestore_service
from recovery_compass.services.storage_service import StorageService
from recovery_compass.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

MAX_PHOTO_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_PHOTO_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


class DailyLogConflictError(Exception):
    """같은 날짜의 기록이 이미 있어 새 기록을 만들 수 없을 때 발생합니다."""
    def __init__(self, log_date: str, existing_log_id: str):
        self.log_date = log_date
        self.existing_log_id = existing_log_id
        super().__init__(
            f"A log for {log_date} already exists. You can edit it from the dashboard or history."
        )


class DailyLogNotFoundError(LookupError):
    """수정 대상 또는 조회 대상 기록이 없을 때 발생합니다."""


class PhotoUploadError(Exception):
    """사진 업로드 실패. 제출 전체가 중단되며 기록은 저장되지 않습니다."""


class PhotoTransition(Enum):
    UNCHANGED = "unchanged"
    ATTACHED = "attached"
    REPLACED = "replaced"
    REMOVED = "removed"


@dataclass
class PhotoUpload:
    """요청에 첨부된 사진 파일."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class PhotoReconciliation:
    """
    사진 상태 정리 결과.
    photo_url/photo_path는 기록에 저장될 최종 값이고, stale_path는 기록 저장 후 지울 이전 객체입니다.
    """
    transition: PhotoTransition
    photo_url: Optional[str] = None
    photo_path: Optional[str] = None
    data_uri: Optional[str] = None
    stale_path: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return self.transition in (PhotoTransition.ATTACHED, PhotoTransition.REPLACED)


@dataclass
class DailyLogSubmission:
    """제출 결과. 기록 저장 성공과 팁 생성 결과는 따로 보고됩니다."""
    log: DailyLog
    created: bool
    tips: Optional[str] = None
    tips_error: Optional[str] = None


def resolve_medications(medications: List[str], custom_medication: Optional[str]) -> Tuple[List[str], Optional[str]]:
    """
    'Other'가 선택되고 직접 입력한 약 이름이 있으면 'Other' 대신 그 이름을 목록에 넣습니다.
    그 외의 경우 선택 목록은 그대로 두고 customMedication은 비워집니다.
    """
    custom = (custom_medication or '').strip()

    if OTHER_MEDICATION in medications and custom:
        selected = [m for m in medications if m and m != OTHER_MEDICATION]
        if custom not in selected:
            selected.append(custom)
        return selected, custom
    return [m for m in medications if m], None


class DailyLogService:
    """
    일일 회복 기록 관리를 담당하는 서비스
    """

    def __init__(self, storage_service: StorageService, tip_service: RecoveryTipService, db=None,
                 max_photo_size: int = MAX_PHOTO_SIZE,
                 allowed_photo_types: Tuple[str, ...] = ALLOWED_PHOTO_TYPES):
        self.db = db or firestore_service.get_client()
        self.storage_service = storage_service
        self.tip_service = tip_service
        self.max_photo_size = max_photo_size
        self.allowed_photo_types = tuple(allowed_photo_types)

    def _logs_ref(self, user_id: str):
        return firestore_service.daily_logs_ref(self.db, user_id)

    # ------------------------------------------------------------------
    # 검증
    # ------------------------------------------------------------------
    def validate_photo(self, photo: Optional[PhotoUpload]) -> None:
        """사진 크기와 형식을 검증합니다. 네트워크 호출 없이 로컬에서만 판단합니다."""
        if photo is None:
            return
        if photo.size > self.max_photo_size:
            raise ValidationError({"photo": ["Max image size is 5MB."]})
        if photo.content_type not in self.allowed_photo_types:
            raise ValidationError({"photo": ["Only .jpg, .png, .webp, and .gif formats are supported."]})

    @staticmethod
    def _validate_new_log_date(log_date: Optional[date], today: date) -> str:
        if log_date is None:
            raise ValidationError({"date": ["Missing data for required field."]})
        if log_date > today:
            raise ValidationError({"date": ["Log date cannot be in the future."]})
        return DateTimeUtils.to_date_string(log_date)

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    def get_log(self, user_id: str, log_id: str) -> DailyLog:
        """문서 ID로 기록을 조회합니다. 없으면 DailyLogNotFoundError."""
        doc = self._logs_ref(user_id).document(log_id).get()
        if not doc.exists:
            raise DailyLogNotFoundError(f"Daily log {log_id} not found.")
        return DailyLog.from_dict(doc.to_dict(), log_id=doc.id)

    def get_log_by_date(self, user_id: str, log_date: str) -> Optional[DailyLog]:
        """특정 날짜의 기록을 조회합니다."""
        query = self._logs_ref(user_id).where('date', '==', log_date).limit(1)
        doc = next(iter(query.stream()), None)
        if doc is None:
            return None
        return DailyLog.from_dict(doc.to_dict(), log_id=doc.id)

    def list_logs(self, user_id: str, start_date: Optional[str] = None,
                  end_date: Optional[str] = None) -> List[DailyLog]:
        """날짜 오름차순으로 기록을 조회합니다 (대시보드 추이 차트용)."""
        try:
            query = self._logs_ref(user_id)
            if start_date:
                query = query.where('date', '>=', start_date)
            if end_date:
                query = query.where('date', '<=', end_date)
            query = query.order_by('date')
            return [DailyLog.from_dict(doc.to_dict(), log_id=doc.id) for doc in query.stream()]
        except Exception as e:
            logger.error(f"Failed to list daily logs for user {user_id} ({start_date}~{end_date}): {e}", exc_info=True)
            raise

    def get_latest_log(self, user_id: str) -> Optional[DailyLog]:
        """가장 최근 날짜의 기록을 조회합니다."""
        query = self._logs_ref(user_id).order_by('date', direction=firestore.Query.DESCENDING).limit(1)
        doc = next(iter(query.stream()), None)
        if doc is None:
            return None
        return DailyLog.from_dict(doc.to_dict(), log_id=doc.id)

    # ------------------------------------------------------------------
    # 사진 첨부 상태 정리
    # ------------------------------------------------------------------
    def reconcile_photo(self, user_id: str, log_date: str, existing: Optional[DailyLog],
                        photo: Optional[PhotoUpload], remove_photo: bool) -> PhotoReconciliation:
        """
        새 사진 업로드/제거/유지 여부를 결정하고, 필요한 경우 업로드까지 수행합니다.
        이전 객체 삭제는 기록 저장이 끝난 뒤 submit_daily_log에서 처리합니다.
        """
        had_photo = existing is not None and existing.has_photo

        if photo is not None:
            unique_name = f"{uuid.uuid4().hex[:8]}_{photo.filename}"
            file_path = self.storage_service.build_log_photo_path(user_id, log_date, unique_name)
            try:
                photo_url = self.storage_service.upload_bytes(file_path, photo.data, photo.content_type)
            except Exception as e:
                logger.error(f"Photo upload failed for user {user_id} ({file_path}): {e}", exc_info=True)
                raise PhotoUploadError(f"Photo upload failed: {e}") from e

            return PhotoReconciliation(
                transition=PhotoTransition.REPLACED if had_photo else PhotoTransition.ATTACHED,
                photo_url=photo_url,
                photo_path=file_path,
                data_uri=self.storage_service.to_data_uri(photo.data, photo.content_type),
                stale_path=existing.photo_path if had_photo else None,
            )

        if remove_photo and had_photo:
            return PhotoReconciliation(
                transition=PhotoTransition.REMOVED,
                stale_path=existing.photo_path,
            )

        return PhotoReconciliation(
            transition=PhotoTransition.UNCHANGED,
            photo_url=existing.photo_url if had_photo else None,
            photo_path=existing.photo_path if had_photo else None,
        )

    def _delete_photo_best_effort(self, file_path: Optional[str]) -> None:
        """삭제 실패는 경고 로그만 남기고 무시합니다 (객체가 고아로 남을 수 있음)."""
        if not file_path:
            return
        try:
            self.storage_service.delete_file(file_path)
        except Exception as e:
            logger.warning(f"Old photo not found or deletion failed ({file_path}): {e}")

    # ------------------------------------------------------------------
    # 생성/수정
    # ------------------------------------------------------------------
    def submit_daily_log(self, user_id: str, payload: Dict[str, Any], today: date,
                         photo: Optional[PhotoUpload] = None,
                         edit_log_id: Optional[str] = None) -> DailyLogSubmission:
        """
        일일 기록을 생성하거나 수정한 뒤 회복 팁을 생성합니다.

        Args:
            user_id: 기록 소유자 ID
            payload: 요청 본문 (DailyLogSubmitSchema로 검증)
            today: 요청자의 '오늘' 날짜. 새 기록의 날짜 상한으로 사용
            photo: 새로 첨부한 사진 (없으면 None)
            edit_log_id: 수정할 기록 ID. 없으면 새 기록 생성

        Returns:
            DailyLogSubmission (팁 생성 실패는 tips_error에 담기며 기록 저장은 유지됨)

        Raises:
            ValidationError: 입력값 오류 (네트워크 호출 전)
            DailyLogConflictError: 같은 날짜 기록이 이미 존재
            DailyLogNotFoundError: 수정 대상 기록 없음
            PhotoUploadError: 사진 업로드 실패 (기록 저장 안 됨)
        """
        data = DailyLogSubmitSchema().load(payload)
        self.validate_photo(photo)
        if edit_log_id is None:
            log_date = self._validate_new_log_date(data.get('date'), today)

        medications, custom_medication = resolve_medications(
            data['medications_taken'], data.get('custom_medication'))

        if edit_log_id is not None:
            existing = self.get_log(user_id, edit_log_id)
            log_date = existing.date
        else:
            existing = None
            conflicting = self.get_log_by_date(user_id, log_date)
            if conflicting is not None:
                logger.info(f"Daily log for {log_date} already exists for user {user_id} ({conflicting.log_id})")
                raise DailyLogConflictError(log_date, conflicting.log_id)

        reconciliation = self.reconcile_photo(user_id, log_date, existing, photo, data['remove_photo'])

        now = DateTimeUtils.now()
        fields = {
            'pain_level': data['pain_level'],
            'swelling_level': data['swelling_level'],
            'medications_taken': medications,
            'custom_medication': custom_medication,
            'mood': data.get('mood'),
            'notes': data.get('notes') or '',
            'photo_url': reconciliation.photo_url,
            'photo_path': reconciliation.photo_path,
        }

        try:
            if existing is not None:
                log = self._update_log(user_id, existing, fields, now)
            else:
                log = self._create_log(user_id, log_date, fields, now)
        except Exception:
            # 기록이 저장되지 않았으므로 방금 올린 사진은 참조되지 않음
            if reconciliation.uploaded:
                self._delete_photo_best_effort(reconciliation.photo_path)
            raise

        if reconciliation.stale_path:
            self._delete_photo_best_effort(reconciliation.stale_path)

        submission = DailyLogSubmission(log=log, created=existing is None)

        try:
            submission.tips = self.tip_service.generate_for_log(user_id, log, reconciliation.data_uri)
        except TipGenerationError as e:
            logger.warning(f"Recovery tips not generated for log {log.log_id} (user {user_id}): {e}")
            submission.tips_error = str(e)

        return submission

    def _create_log(self, user_id: str, log_date: str, fields: Dict[str, Any], now) -> DailyLog:
        """
        날짜를 문서 ID로 사용해 새 기록을 생성합니다.
        create()는 같은 ID의 문서가 있으면 실패하므로, 중복 확인 이후 동시에 들어온 요청도 충돌로 처리됩니다.
        """
        log = DailyLog(user_id=user_id, date=log_date, created_at=now, updated_at=now, log_id=log_date, **fields)
        try:
            self._logs_ref(user_id).document(log_date).create(log.to_firestore())
        except Conflict:
            logger.warning(f"Concurrent daily log creation detected for user {user_id} on {log_date}")
            raise DailyLogConflictError(log_date, log_date)

        logger.info(f"새 일일 기록 생성 완료: users/{user_id}/dailyLogs/{log_date}")
        return log

    def _update_log(self, user_id: str, existing: DailyLog, fields: Dict[str, Any], now) -> DailyLog:
        """기존 기록을 덮어씁니다. 값이 None인 선택 필드는 문서에서 삭제됩니다."""
        candidate = DailyLog(
            user_id=existing.user_id or user_id,
            date=existing.date,
            recovery_tips=existing.recovery_tips,
            created_at=existing.created_at,
            updated_at=now,
            log_id=existing.log_id,
            **fields,
        )
        document = candidate.to_firestore()
        update_data = {
            key: document.get(key, firestore.DELETE_FIELD)
            for key in ('painLevel', 'swellingLevel', 'medicationsTaken', 'customMedication',
                        'mood', 'notes', 'photoUrl', 'photoPath', 'updatedAt')
        }
        self._logs_ref(user_id).document(existing.log_id).update(update_data)

        logger.info(f"일일 기록 업데이트 완료: users/{user_id}/dailyLogs/{existing.log_id}")
        return candidate

    # ------------------------------------------------------------------
    # 대시보드 무드 트래커
    # ------------------------------------------------------------------
    def quick_log_mood(self, user_id: str, mood: str, today: date) -> Tuple[DailyLog, bool]:
        """
        오늘 기록의 기분만 갱신합니다. 오늘 기록이 없으면 기분만 담긴 최소 기록을 생성합니다.
        팁 생성은 하지 않습니다.

        Returns:
            (기록, 새로 생성되었는지 여부)
        """
        today_str = DateTimeUtils.to_date_string(today)
        now = DateTimeUtils.now()

        existing = self.get_log_by_date(user_id, today_str)
        if existing is None:
            log = DailyLog(
                user_id=user_id, date=today_str, pain_level=0, swelling_level=0,
                medications_taken=[], mood=mood, created_at=now, updated_at=now, log_id=today_str,
            )
            try:
                self._logs_ref(user_id).document(today_str).create(log.to_firestore())
                logger.info(f"Mood-only log created for user {user_id} on {today_str}")
                return log, True
            except Conflict:
                # 중복 확인 이후 다른 요청이 먼저 오늘 기록을 만든 경우
                existing = self.get_log(user_id, today_str)

        self._logs_ref(user_id).document(existing.log_id).update({'mood': mood, 'updatedAt': now})
        existing.mood = mood
        existing.updated_at = now
        logger.info(f"Mood updated for user {user_id} on {today_str}")
        return existing, False
