# recovery_compass/services/firestore_service.py
from firebase_admin import firestore

USERS_COLLECTION = 'users'
DAILY_LOGS_SUBCOLLECTION = 'dailyLogs'


def get_client():
    """초기화된 firebase_admin 앱의 Firestore 클라이언트를 반환합니다."""
    return firestore.client()


def users_ref(db):
    """'users' 컬렉션 참조를 반환합니다."""
    return db.collection(USERS_COLLECTION)


def daily_logs_ref(db, user_id: str):
    """
    사용자별 일일 기록 하위 컬렉션('users/{user_id}/dailyLogs') 참조를 반환합니다.

    :param db: Firestore 클라이언트
    :param user_id: 컬렉션을 소유한 사용자 ID
    """
    return users_ref(db).document(user_id).collection(DAILY_LOGS_SUBCOLLECTION)
