# recovery_compass/utils/test_datetime_utils.py
"""
날짜/시간 유틸리티 테스트

사용법: python -m pytest recovery_compass/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, date, timezone
from recovery_compass.utils.datetime_utils import DateTimeUtils

def test_parse_timestamp():
    """문자열 타임스탬프는 UTC로 정규화되어야 함"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for value in test_cases:
        dt = DateTimeUtils.parse_timestamp(value)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc

    assert DateTimeUtils.parse_timestamp("2024-01-15T10:30:00+09:00").hour == 1

def test_parse_date_string_accepts_only_iso_dates():
    """일일 기록 날짜는 YYYY-MM-DD만 허용"""
    assert DateTimeUtils.parse_date_string("2024-01-15") == date(2024, 1, 15)

    for invalid in ["2024/01/15", "01-15-2024", "2024-02-30", "", None]:
        with pytest.raises(ValueError):
            DateTimeUtils.parse_date_string(invalid)

def test_to_date_string():
    assert DateTimeUtils.to_date_string(date(2024, 1, 5)) == "2024-01-05"

def test_to_iso_string_uses_z_suffix():
    dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T10:30:00Z"
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"

def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'surgeryDay': date(2024, 1, 2),
        'createdAt': datetime(2024, 1, 15, 10, 30),
        'nested': {
            'event_date': date(2023, 12, 25)
        },
        'list_data': [
            {'updatedAt': datetime(2024, 1, 1)}
        ],
        'date': '2024-01-10',
    }

    converted = DateTimeUtils.for_firestore(test_data)

    # date는 datetime으로 변환되어야 함
    assert converted['surgeryDay'] == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert isinstance(converted['nested']['event_date'], datetime)
    assert isinstance(converted['list_data'][0]['updatedAt'], datetime)
    assert converted['createdAt'].tzinfo == timezone.utc

    # 기록 날짜 문자열은 그대로 유지
    assert converted['date'] == '2024-01-10'

def test_from_firestore_normalizes_naive_datetimes():
    converted = DateTimeUtils.from_firestore({'createdAt': datetime(2024, 1, 1, 9, 0), 'mood': '😊'})
    assert converted['createdAt'].tzinfo == timezone.utc
    assert converted['mood'] == '😊'

def test_resolve_today():
    """클라이언트가 보낸 '오늘' 날짜 우선, 없으면 서버 기준"""
    assert DateTimeUtils.resolve_today("2024-01-10") == date(2024, 1, 10)
    assert DateTimeUtils.resolve_today(None) == DateTimeUtils.today()
    assert DateTimeUtils.resolve_today("") == DateTimeUtils.today()

    with pytest.raises(ValueError):
        DateTimeUtils.resolve_today("10/01/2024")

def test_error_handling():
    """오류 처리 테스트"""
    with pytest.raises(ValueError):
        DateTimeUtils.parse_timestamp("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_timestamp("")
