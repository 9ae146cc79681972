# recovery_compass/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from recovery_compass.core.config import config_by_name

# - API 블루프린트
from recovery_compass.api.users.routes import users_bp
from recovery_compass.api.daily_logs.routes import daily_logs_bp
from recovery_compass.api.recovery_tips.routes import recovery_tips_bp

# - 서비스 모듈
from recovery_compass.services import storage_service as storage_service_module
from recovery_compass.services import openai_service as openai_service_module
from recovery_compass.api.users.services import UserProfileService
from recovery_compass.api.recovery_tips.services import RecoveryTipService
from recovery_compass.api.daily_logs.services import DailyLogService

def create_app(config_name=None, services=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development', 'testing', 'production' 중 하나. 없으면 FLASK_ENV 사용
    :param services: 미리 구성된 서비스 딕셔너리. 주어지면 Firebase/OpenAI 초기화를 건너뜁니다 (테스트용).
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if services is not None:
        app.services = services
    else:
        _init_firebase(app)
        app.services = _build_services(app)

    # =====================================================================================
    # 5. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(daily_logs_bp, url_prefix='/api/daily-logs')
    app.register_blueprint(recovery_tips_bp, url_prefix='/api/recovery-tips')

    # =====================================================================================
    # 6. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(413)
    def handle_request_too_large(err):
        response = {"error_code": "PAYLOAD_TOO_LARGE", "message": "Max image size is 5MB."}
        return jsonify(response), 413

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리 (404, 405 등 HTTP 예외는 그대로 반환)
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 7. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app


def _init_firebase(app: Flask):
    """firebase_admin 기본 앱을 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def _build_services(app: Flask) -> dict:
    """
    서비스 인스턴스를 생성해 딕셔너리로 반환합니다 (의존성 주입).
    의존성이 없는 공용 서비스를 먼저 만들고, 이를 주입받는 도메인 서비스를 나중에 만듭니다.
    """
    services = {}

    try:
        storage_instance = storage_service_module.StorageService()
        storage_instance.init_app(app)
        services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    try:
        openai_instance = openai_service_module.OpenAIService()
        openai_instance.init_app(app)
        services['openai'] = openai_instance
        logging.info("OpenAI service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize OpenAI service: {e}")
        raise

    services['users'] = UserProfileService()
    services['recovery_tips'] = RecoveryTipService(
        openai_service=services['openai'],
        user_service=services['users']
    )
    services['daily_logs'] = DailyLogService(
        storage_service=services['storage'],
        tip_service=services['recovery_tips'],
        max_photo_size=app.config['MAX_PHOTO_SIZE'],
        allowed_photo_types=app.config['ALLOWED_PHOTO_TYPES']
    )
    logging.info("Daily log service initialized successfully")

    return services
