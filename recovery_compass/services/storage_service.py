# recovery_compass/services/storage_service.py
import base64
import logging
from flask import Flask
from firebase_admin import storage

class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    일일 기록 사진의 업로드, 공개 URL 발급, 삭제 기능을 제공합니다.
    """

    def __init__(self):
        """
        클래스 인스턴스 생성 시 버킷을 None으로 초기화합니다.
        실제 버킷 객체는 init_app 메서드를 통해 주입됩니다.
        """
        self.bucket = None

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.
        이 메서드는 recovery_compass/__init__.py에서 단 한 번만 호출됩니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.bucket

    @staticmethod
    def build_log_photo_path(user_id: str, log_date: str, filename: str) -> str:
        """
        일일 기록 사진이 저장될 경로를 생성합니다.
        같은 경로에 다시 올리면 기존 객체를 덮어쓰므로, 호출 측에서 파일명에 고유 접두어를 붙입니다.

        :param user_id: 사진을 올린 사용자 ID
        :param log_date: 기록 날짜 (YYYY-MM-DD)
        :param filename: 클라이언트가 보낸 원본 파일명
        """
        safe_name = filename.replace('/', '_').strip() or 'photo'
        return f"users/{user_id}/logs/{log_date}_{safe_name}"

    def upload_bytes(self, file_path: str, data: bytes, content_type: str) -> str:
        """
        바이트 데이터를 지정된 경로에 업로드하고 공개 URL을 반환합니다.

        :param file_path: 저장할 객체 경로
        :param data: 파일 내용
        :param content_type: MIME 타입 (예: "image/jpeg")
        :return: 공개적으로 접근 가능한 URL
        """
        bucket = self._require_bucket()
        blob = bucket.blob(file_path)

        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            logging.info(f"Storage 업로드 완료: {file_path} ({len(data)} bytes)")
            return blob.public_url
        except Exception as e:
            logging.error(f"Storage 업로드 실패 ({file_path}): {e}", exc_info=True)
            raise

    def delete_file(self, file_path: str) -> None:
        """
        지정된 경로의 객체를 삭제합니다.
        객체가 없으면 google.api_core.exceptions.NotFound가 그대로 전파됩니다.

        :param file_path: 삭제할 객체 경로
        """
        bucket = self._require_bucket()
        bucket.blob(file_path).delete()
        logging.info(f"Storage 객체 삭제 완료: {file_path}")

    @staticmethod
    def to_data_uri(data: bytes, content_type: str) -> str:
        """업로드한 사진을 AI 요청에 바로 넘길 수 있도록 base64 data URI로 변환합니다."""
        encoded = base64.b64encode(data).decode('ascii')
        return f"data:{content_type};base64,{encoded}"
