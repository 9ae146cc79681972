# recovery_compass/conftest.py
"""
테스트 공용 픽스처

Firestore는 메모리 기반 가짜 컬렉션 트리로, Storage와 OpenAI는 호출을 기록하는 가짜 서비스로 대체합니다.
"""

import copy
import uuid
from datetime import date

import pytest
from firebase_admin import firestore
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import AlreadyExists, NotFound

from recovery_compass import create_app
from recovery_compass.api.daily_logs.services import DailyLogService
from recovery_compass.api.recovery_tips.services import RecoveryTipService
from recovery_compass.api.users.services import UserProfileService
from recovery_compass.services.storage_service import StorageService

TEST_USER_ID = "user-123"
TODAY = date(2024, 1, 10)


# =====================================================================================
# Firestore 가짜 구현
# =====================================================================================
class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeQuery:
    _OPS = {
        '==': lambda a, b: a == b,
        '>=': lambda a, b: a is not None and a >= b,
        '<=': lambda a, b: a is not None and a <= b,
        '>': lambda a, b: a is not None and a > b,
        '<': lambda a, b: a is not None and a < b,
    }

    def __init__(self, collection, filters=None, orders=None, limit_count=None):
        self._collection = collection
        self._filters = filters or []
        self._orders = orders or []
        self._limit = limit_count

    def where(self, field, op, value):
        return FakeQuery(self._collection, self._filters + [(field, op, value)], self._orders, self._limit)

    def order_by(self, field, direction=None):
        descending = direction == firestore.Query.DESCENDING
        return FakeQuery(self._collection, self._filters, self._orders + [(field, descending)], self._limit)

    def limit(self, count):
        return FakeQuery(self._collection, self._filters, self._orders, count)

    def stream(self):
        self._collection.db.query_count += 1
        items = [(doc_id, data) for doc_id, data in self._collection.docs.items()]
        for field, op, value in self._filters:
            items = [(i, d) for i, d in items if self._OPS[op](d.get(field), value)]
        for field, descending in reversed(self._orders):
            items.sort(key=lambda item: item[1].get(field), reverse=descending)
        if self._limit is not None:
            items = items[:self._limit]
        return iter([FakeSnapshot(i, copy.deepcopy(d)) for i, d in items])


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    @property
    def _db(self):
        return self._collection.db

    def get(self):
        return FakeSnapshot(self.id, copy.deepcopy(self._collection.docs.get(self.id)))

    def set(self, data):
        self._db.write_count += 1
        self._collection.docs[self.id] = copy.deepcopy(data)

    def create(self, data):
        if self.id in self._collection.docs:
            raise AlreadyExists(f"Document already exists: {self.id}")
        self.set(data)

    def update(self, data):
        if self._db.fail_updates:
            raise RuntimeError("Firestore unavailable")
        if self.id not in self._collection.docs:
            raise NotFound(f"No document to update: {self.id}")
        self._db.write_count += 1
        doc = self._collection.docs[self.id]
        for key, value in data.items():
            if value is firestore.DELETE_FIELD:
                doc.pop(key, None)
            else:
                doc[key] = copy.deepcopy(value)

    def delete(self):
        self._collection.docs.pop(self.id, None)

    def collection(self, name):
        return self._collection.db._collection_at(f"{self._collection.path}/{self.id}/{name}")


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(self)
        self.db = db
        self.path = path
        self.docs = {}

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or uuid.uuid4().hex)


class FakeFirestore:
    """users/{uid}/dailyLogs 같은 하위 컬렉션 경로를 지원하는 최소한의 Firestore 대역."""
    def __init__(self):
        self._collections = {}
        self.query_count = 0
        self.write_count = 0
        self.fail_updates = False

    def _collection_at(self, path):
        if path not in self._collections:
            self._collections[path] = FakeCollection(self, path)
        return self._collections[path]

    def collection(self, name):
        return self._collection_at(name)

    def logs(self, user_id):
        """테스트 검증용: 사용자의 dailyLogs 문서 딕셔너리."""
        return self._collection_at(f"users/{user_id}/dailyLogs").docs


# =====================================================================================
# Storage / OpenAI 가짜 구현
# =====================================================================================
class FakeStorageService(StorageService):
    """업로드/삭제 호출을 기록합니다. 경로 생성과 data URI 변환은 실제 구현을 사용합니다."""
    def __init__(self):
        super().__init__()
        self.objects = {}
        self.uploads = []
        self.deletes = []
        self.fail_upload = False
        self.fail_delete = False

    def upload_bytes(self, file_path, data, content_type):
        self.uploads.append(file_path)
        if self.fail_upload:
            raise RuntimeError("storage unavailable")
        self.objects[file_path] = data
        return f"https://storage.example.com/{file_path}"

    def delete_file(self, file_path):
        self.deletes.append(file_path)
        if self.fail_delete:
            raise NotFound(f"No such object: {file_path}")
        if file_path not in self.objects:
            raise NotFound(f"No such object: {file_path}")
        del self.objects[file_path]


class FakeOpenAIService:
    def __init__(self):
        self.requests = []
        self.fail = False
        self.tips = "Keep your leg elevated and stay hydrated."

    def generate_recovery_tips(self, payload):
        self.requests.append(payload)
        if self.fail:
            raise RuntimeError("model overloaded")
        return {"tips": self.tips}


# =====================================================================================
# 픽스처
# =====================================================================================
@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def storage():
    return FakeStorageService()


@pytest.fixture
def openai_fake():
    return FakeOpenAIService()


@pytest.fixture
def user_service(fake_db):
    service = UserProfileService(db=fake_db)
    # 쓰기 횟수에 잡히지 않도록 문서를 직접 넣음
    fake_db.collection('users').docs[TEST_USER_ID] = {
        'name': 'Jamie',
        'email': 'jamie@example.com',
        'surgeryType': 'ACL Reconstruction',
        'surgeryDate': '2024-01-02',
    }
    return service


@pytest.fixture
def tip_service(fake_db, openai_fake, user_service):
    return RecoveryTipService(openai_service=openai_fake, user_service=user_service, db=fake_db)


@pytest.fixture
def daily_log_service(fake_db, storage, tip_service):
    return DailyLogService(storage_service=storage, tip_service=tip_service, db=fake_db)


@pytest.fixture
def app(storage, openai_fake, user_service, tip_service, daily_log_service):
    services = {
        'storage': storage,
        'openai': openai_fake,
        'users': user_service,
        'recovery_tips': tip_service,
        'daily_logs': daily_log_service,
    }
    return create_app('testing', services=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    with app.app_context():
        token = create_access_token(identity=TEST_USER_ID)
    return {"Authorization": f"Bearer {token}"}
