# recovery_compass/models/daily_log.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from recovery_compass.utils.datetime_utils import DateTimeUtils

# 대시보드 무드 트래커와 일일 기록 폼에서 사용하는 고정 이모지 집합
MOOD_EMOJIS: List[Dict[str, str]] = [
    {"emoji": "😊", "label": "Happy"},
    {"emoji": "🙂", "label": "Okay"},
    {"emoji": "😐", "label": "Neutral"},
    {"emoji": "😟", "label": "Worried"},
    {"emoji": "😢", "label": "Sad"},
    {"emoji": "😣", "label": "In Pain"},
]
MOOD_VALUES = [m["emoji"] for m in MOOD_EMOJIS]

DEFAULT_MEDICATIONS: List[str] = [
    "Paracetamol",
    "Ibuprofen",
    "Prescription Opioids (e.g., Oxycodone)",
    "Antibiotics",
    "Anti-inflammatory drugs",
]
OTHER_MEDICATION = "Other"

MIN_LEVEL = 0
MAX_LEVEL = 10
MAX_NOTES_LENGTH = 1000

# 파이썬 속성명 -> Firestore 문서 필드명
_FIELD_MAP = {
    'user_id': 'userId',
    'date': 'date',
    'pain_level': 'painLevel',
    'swelling_level': 'swellingLevel',
    'medications_taken': 'medicationsTaken',
    'custom_medication': 'customMedication',
    'mood': 'mood',
    'notes': 'notes',
    'photo_url': 'photoUrl',
    'photo_path': 'photoPath',
    'recovery_tips': 'recoveryTips',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}


@dataclass
class DailyLog:
    """
    Firestore 'users/{userId}/dailyLogs' 컬렉션 문서 구조.
    사용자별, 날짜별로 하나의 회복 상태 기록을 나타냅니다.
    저장소에는 스키마가 없으므로 애플리케이션 경계에서 이 모델로 검증/변환합니다.
    """
    user_id: str
    date: str  # YYYY-MM-DD, 사용자 컬렉션 안에서의 자연 키
    pain_level: int
    swelling_level: int
    medications_taken: List[str] = field(default_factory=list)
    custom_medication: Optional[str] = None
    mood: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    photo_path: Optional[str] = None  # 삭제를 위한 Storage 경로 (photo_url과 항상 함께 존재)
    recovery_tips: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    log_id: Optional[str] = None  # Firestore 문서 ID (문서 본문에는 저장하지 않음)

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_url and self.photo_path)

    def to_firestore(self) -> Dict[str, Any]:
        """
        Firestore에 저장할 딕셔너리를 생성합니다.
        값이 None인 선택 필드는 문서에서 제외됩니다 (필드가 '없음' 상태).
        """
        data = {}
        for attr, key in _FIELD_MAP.items():
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = value
        return DateTimeUtils.for_firestore(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], log_id: Optional[str] = None) -> "DailyLog":
        """
        Firestore에서 받은 딕셔너리로부터 DailyLog 인스턴스를 생성합니다.
        빠른 기분 기록처럼 일부 필드만 있는 문서도 기본값으로 보정합니다.
        """
        processed_data = DateTimeUtils.from_firestore(dict(data))
        kwargs = {}
        for attr, key in _FIELD_MAP.items():
            if key in processed_data:
                kwargs[attr] = processed_data[key]

        kwargs.setdefault('pain_level', 0)
        kwargs.setdefault('swelling_level', 0)
        if kwargs.get('medications_taken') is None:
            kwargs['medications_taken'] = []

        for attr in ('created_at', 'updated_at'):
            if isinstance(kwargs.get(attr), str):
                kwargs[attr] = DateTimeUtils.parse_timestamp(kwargs[attr])

        # 빈 문자열로 저장된 사진 필드는 '없음'으로 취급
        if not kwargs.get('photo_url') or not kwargs.get('photo_path'):
            kwargs['photo_url'] = None
            kwargs['photo_path'] = None

        return cls(log_id=log_id, **kwargs)

    def to_response(self) -> Dict[str, Any]:
        """API 응답용 딕셔너리 (camelCase 키, ISO 타임스탬프)."""
        data = {'id': self.log_id}
        for attr, key in _FIELD_MAP.items():
            value = getattr(self, attr)
            if isinstance(value, datetime):
                value = DateTimeUtils.to_iso_string(value)
            data[key] = value
        return data
