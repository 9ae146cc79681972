# recovery_compass/core/config.py

import os # 'os' 모듈: 환경 변수를 읽기 위해 사용합니다.

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 토큰의 identity가 곧 사용자 ID(userId)로 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # 회복 팁 생성을 위한 OpenAI 설정
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    OPENAI_TIPS_MODEL = os.getenv('OPENAI_TIPS_MODEL', 'gpt-4o-mini')

    # 일일 기록 사진 제한: 5MB, jpeg/png/webp/gif
    MAX_PHOTO_SIZE = 5 * 1024 * 1024
    ALLOWED_PHOTO_TYPES = ('image/jpeg', 'image/png', 'image/webp', 'image/gif')
    # 5MB 초과 사진도 요청 자체는 받아서 필드 단위 검증 오류로 응답하기 위해 여유를 둡니다.
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'test-secret-key-for-recovery-compass-0000')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')

class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

# config_by_name: FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
