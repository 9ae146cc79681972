# recovery_compass/models/user.py
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from recovery_compass.utils.datetime_utils import DateTimeUtils

@dataclass
class UserProfile:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    id는 외부 인증 시스템이 발급한 불투명 식별자(JWT identity)입니다.
    """
    id: str
    name: str
    email: str
    surgery_type: Optional[str] = None
    surgery_date: Optional[str] = None  # YYYY-MM-DD
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, user_id: str, data: Dict[str, Any]) -> "UserProfile":
        data = DateTimeUtils.from_firestore(data)
        return cls(
            id=user_id,
            name=data.get('name', ''),
            email=data.get('email', ''),
            surgery_type=data.get('surgeryType') or None,
            surgery_date=data.get('surgeryDate') or None,
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'email': self.email,
            'surgeryType': self.surgery_type,
            'surgeryDate': self.surgery_date,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
        return DateTimeUtils.for_firestore({k: v for k, v in data.items() if v is not None})
