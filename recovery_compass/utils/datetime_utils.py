# recovery_compass/utils/datetime_utils.py
"""
날짜/시간 처리 유틸리티

- 모든 타임스탬프는 UTC timezone-aware datetime으로 다룹니다.
- 일일 기록의 날짜는 사용자 컬렉션 안에서 자연 키이자 문서 ID이므로 'YYYY-MM-DD' 문자열만 허용합니다.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'


def _as_utc(dt: datetime) -> datetime:
    # timezone-naive 값은 UTC로 간주
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class DateTimeUtils:
    """날짜/시간 변환 함수 모음"""

    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def today() -> date:
        """서버 기준(UTC) 오늘 날짜"""
        return DateTimeUtils.now().date()

    @staticmethod
    def parse_date_string(date_string: str) -> date:
        """'YYYY-MM-DD' 문자열을 date로 변환합니다. 다른 형식은 ValueError."""
        try:
            return datetime.strptime(date_string or '', DATE_FORMAT).date()
        except ValueError:
            logger.warning(f"날짜 문자열 파싱 실패: {date_string!r}")
            raise ValueError(f"Invalid date (YYYY-MM-DD): {date_string}")

    @staticmethod
    def parse_timestamp(value: str) -> datetime:
        """
        문자열로 저장된 타임스탬프(예: 웹 클라이언트가 직접 쓴 '2024-01-15T10:30:00Z')를 UTC datetime으로 변환합니다.
        """
        if not value:
            raise ValueError("빈 문자열은 파싱할 수 없습니다")
        try:
            return _as_utc(dateutil_parser.isoparse(value))
        except ValueError as e:
            logger.error(f"타임스탬프 파싱 실패: {value} - {e}")
            raise ValueError(f"Invalid ISO timestamp: {value}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """UTC ISO 문자열 (Z 접미사)"""
        return _as_utc(dt).isoformat().replace('+00:00', 'Z')

    @staticmethod
    def to_date_string(d: date) -> str:
        return d.strftime(DATE_FORMAT)

    @staticmethod
    def resolve_today(value: Optional[str]) -> date:
        """
        클라이언트가 보낸 현지 기준 '오늘' 날짜를 해석합니다.
        값이 없으면 서버 기준(UTC) 오늘 날짜를 사용합니다.
        """
        if not value:
            return DateTimeUtils.today()
        return DateTimeUtils.parse_date_string(value)

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore에 쓰기 전 변환. dict/list는 재귀적으로 처리합니다.
        datetime은 UTC로 맞추고, date는 자정(UTC) datetime으로 바꿉니다.
        기록 날짜처럼 문자열로 저장하는 값은 건드리지 않습니다.
        """
        if isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        if isinstance(obj, datetime):
            return _as_utc(obj)
        if isinstance(obj, date):
            return datetime.combine(obj, time.min, tzinfo=timezone.utc)
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Firestore에서 읽은 값 변환. DatetimeWithNanoseconds 등 timestamp 계열은 UTC datetime이 됩니다.
        """
        if isinstance(obj, dict):
            return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [DateTimeUtils.from_firestore(item) for item in obj]
        if isinstance(obj, datetime):
            return _as_utc(obj)
        return obj
