# recovery_compass/services/openai_service.py
import logging
from typing import Dict, Any, List
from flask import Flask
from openai import OpenAI

class OpenAIService:
    """
    OpenAI API 연동을 담당하는 서비스 클래스.
    일일 회복 기록을 바탕으로 개인 맞춤 회복 팁을 생성합니다.
    """

    def __init__(self):
        """
        OpenAI 클라이언트를 None으로 초기화합니다.
        실제 클라이언트는 init_app 메서드를 통해 설정됩니다.
        """
        self.client = None
        self.model = "gpt-4o-mini"

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 OpenAI 클라이언트를 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        api_key = app.config.get('OPENAI_API_KEY')
        if not api_key:
            raise ValueError("OPENAI_API_KEY 설정이 .env 파일에 필요합니다.")

        self.client = OpenAI(api_key=api_key)
        self.model = app.config.get('OPENAI_TIPS_MODEL') or self.model
        logging.info("OpenAIService: OpenAI API 서비스가 성공적으로 초기화되었습니다.")

    def generate_recovery_tips(self, payload: Dict[str, Any]) -> Dict[str, str]:
        """
        회복 상태 페이로드로 개인 맞춤 회복 팁을 생성합니다.
        사진(data URI 또는 공개 URL)이 있으면 함께 분석하도록 요청합니다.
        실패 시 예외를 그대로 전파하며 재시도는 하지 않습니다.

        :param payload: painLevel, swellingLevel, medicationTaken, notes, photoDataUri(선택),
                        surgeryType, surgeryDate, userName 키를 가진 딕셔너리
        :return: {"tips": str}
        """
        if not self.client:
            raise RuntimeError("OpenAIService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self._build_system_prompt()},
                {"role": "user", "content": self._build_user_content(payload)},
            ],
            max_tokens=800,
        )

        tips = (response.choices[0].message.content or "").strip()
        if not tips:
            raise RuntimeError("AI 응답에 회복 팁 내용이 없습니다.")

        logging.info(f"회복 팁 생성 완료 (model: {self.model}, length: {len(tips)})")
        return {"tips": tips}

    def _build_system_prompt(self) -> str:
        return (
            "You are a virtual assistant providing personalized recovery tips to patients after surgery. "
            "Based on the user's daily log, provide tips and suggestions to improve their recovery process. "
            "Consider the pain level, swelling level, medications taken, and any additional notes provided by the user. "
            "If a photo is provided, analyze it to provide more specific and tailored advice."
        )

    def _build_user_content(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        프롬프트 본문과 (선택) 사진을 멀티모달 메시지 형식으로 구성합니다.
        """
        text = f"""The user had a {payload['surgeryType']} surgery on {payload['surgeryDate']}.

Here is the user's recovery log:
- Pain Level: {payload['painLevel']}
- Swelling Level: {payload['swellingLevel']}
- Medication Taken: {payload['medicationTaken']}
- Notes: {payload['notes']}

Provide specific and actionable advice to help the user improve their recovery. Address the user as {payload['userName']}."""

        content: List[Dict[str, Any]] = [{"type": "text", "text": text}]

        photo = payload.get('photoDataUri')
        if photo:
            content.append({"type": "image_url", "image_url": {"url": photo}})
        return content
