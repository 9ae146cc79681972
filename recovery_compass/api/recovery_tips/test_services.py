# recovery_compass/api/recovery_tips/test_services.py
"""
회복 팁 생성 서비스 테스트

사용법: python -m pytest recovery_compass/api/recovery_tips/test_services.py -v
"""

import pytest

from recovery_compass.api.recovery_tips.services import (
    NoDailyLogError,
    TipGenerationError,
    build_tip_request,
    join_medications,
)
from recovery_compass.conftest import TEST_USER_ID
from recovery_compass.models.daily_log import DailyLog
from recovery_compass.models.user import UserProfile


def make_log(**overrides):
    values = dict(user_id=TEST_USER_ID, date='2024-01-10', pain_level=3, swelling_level=6,
                  medications_taken=['Ibuprofen'], log_id='2024-01-10')
    values.update(overrides)
    return DailyLog(**values)


def test_join_medications_appends_custom_only_once():
    assert join_medications(make_log()) == 'Ibuprofen'
    assert join_medications(make_log(medications_taken=[])) == ''
    assert join_medications(make_log(medications_taken=['Ibuprofen', 'Arnica'], custom_medication='Arnica')) \
        == 'Ibuprofen, Arnica'
    assert join_medications(make_log(custom_medication='Arnica')) == 'Ibuprofen, Arnica'


def test_build_tip_request_uses_defaults_for_missing_values():
    profile = UserProfile(id=TEST_USER_ID, name='Sam', email='sam@example.com')

    payload = build_tip_request(make_log(notes=''), profile)

    assert payload == {
        'painLevel': 3,
        'swellingLevel': 6,
        'medicationTaken': 'Ibuprofen',
        'notes': 'No additional notes.',
        'surgeryType': 'General Surgery',
        'surgeryDate': 'Not specified',
        'userName': 'Sam',
    }


def test_build_tip_request_prefers_fresh_data_uri_over_stored_url():
    profile = UserProfile(id=TEST_USER_ID, name='Sam', email='sam@example.com',
                          surgery_type='Hip Replacement', surgery_date='2023-12-20')
    log = make_log(photo_url='https://storage.example.com/a.jpg', photo_path='a.jpg', notes='Sore')

    assert build_tip_request(log, profile)['photoDataUri'] == 'https://storage.example.com/a.jpg'
    payload = build_tip_request(log, profile, 'data:image/png;base64,AAAA')
    assert payload['photoDataUri'] == 'data:image/png;base64,AAAA'
    assert payload['notes'] == 'Sore'
    assert payload['surgeryType'] == 'Hip Replacement'


def test_generate_for_log_requires_profile(tip_service, fake_db, openai_fake):
    fake_db.collection('users').docs.clear()

    with pytest.raises(TipGenerationError):
        tip_service.generate_for_log(TEST_USER_ID, make_log())
    assert openai_fake.requests == []


def test_generate_for_log_reports_save_failure(tip_service, fake_db):
    # 팁 대상 기록 문서가 없으면 update가 실패함
    with pytest.raises(TipGenerationError, match='could not be saved'):
        tip_service.generate_for_log(TEST_USER_ID, make_log(log_id='missing'))


def test_regenerate_latest_updates_most_recent_log(tip_service, fake_db, openai_fake):
    logs = fake_db.logs(TEST_USER_ID)
    logs['2024-01-08'] = {'userId': TEST_USER_ID, 'date': '2024-01-08', 'painLevel': 8, 'swellingLevel': 7}
    logs['2024-01-09'] = {'userId': TEST_USER_ID, 'date': '2024-01-09', 'painLevel': 4, 'swellingLevel': 3,
                          'recoveryTips': 'old'}

    result = tip_service.regenerate_latest(TEST_USER_ID)

    assert result['log'].log_id == '2024-01-09'
    assert result['tips'] == openai_fake.tips
    assert logs['2024-01-09']['recoveryTips'] == openai_fake.tips
    assert 'recoveryTips' not in logs['2024-01-08']
    assert openai_fake.requests[0]['painLevel'] == 4
    assert openai_fake.requests[0]['medicationTaken'] == ''


def test_regenerate_latest_without_logs(tip_service):
    with pytest.raises(NoDailyLogError):
        tip_service.regenerate_latest(TEST_USER_ID)


def test_generate_manual_does_not_persist(tip_service, fake_db, openai_fake):
    tips = tip_service.generate_manual(TEST_USER_ID, {'pain_level': 5, 'swelling_level': 5,
                                                      'medication_taken': '', 'notes': ''})

    assert tips == openai_fake.tips
    assert openai_fake.requests[0]['notes'] == 'No additional notes.'
    assert fake_db.write_count == 0


def test_manual_tips_endpoint(client, auth_headers, openai_fake):
    response = client.post('/api/recovery-tips/manual', json={'painLevel': 2, 'medicationTaken': 'Ibuprofen'},
                           headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()['recoveryTips'] == openai_fake.tips
    assert openai_fake.requests[0]['swellingLevel'] == 5

    invalid = client.post('/api/recovery-tips/manual', json={'painLevel': 12}, headers=auth_headers)
    assert invalid.status_code == 400


def test_latest_tips_endpoint_errors(client, auth_headers, fake_db, openai_fake):
    response = client.post('/api/recovery-tips/latest', headers=auth_headers)
    assert response.status_code == 404
    assert response.get_json()['error_code'] == 'NO_DAILY_LOG'

    fake_db.logs(TEST_USER_ID)['2024-01-09'] = {'userId': TEST_USER_ID, 'date': '2024-01-09',
                                                'painLevel': 4, 'swellingLevel': 3}
    openai_fake.fail = True
    response = client.post('/api/recovery-tips/latest', headers=auth_headers)
    assert response.status_code == 502
    assert response.get_json()['error_code'] == 'TIP_GENERATION_FAILED'


def test_manual_tips_profile_read_failure_returns_502(client, auth_headers, user_service, monkeypatch):
    def broken_profile_read(user_id):
        raise RuntimeError("firestore deadline exceeded")
    monkeypatch.setattr(user_service, 'get_profile', broken_profile_read)

    response = client.post('/api/recovery-tips/manual', json={'painLevel': 2}, headers=auth_headers)

    assert response.status_code == 502
    assert response.get_json()['error_code'] == 'TIP_GENERATION_FAILED'
