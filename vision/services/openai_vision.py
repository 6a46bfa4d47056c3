from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from django.conf import settings
from openai import AsyncOpenAI, OpenAIError

from vision.exceptions import RecognitionFailure

logger = logging.getLogger(__name__)

DEFAULT_VISION_MODEL = "gpt-4o-mini"
VISION_TIMEOUT = 30.0
DEFAULT_IMAGE_MIME = "image/jpeg"
NO_FOOD_SENTINEL = "無食物"

PROMPT_TEMPLATE = """請辨識這張圖片中的食物，回覆格式規定如下：
- 若有食物：只回傳食物名稱，以頓號或逗號分隔，例如「白飯、炒蛋、青菜」。
- 若無食物：只回傳「無食物」。
不要加任何說明、標點以外的多餘文字。"""

TEXT_PART_TYPES = {"text", "output_text"}


@dataclass(frozen=True)
class RecognitionResult:
    text: str
    success: bool

    @property
    def has_food(self) -> bool:
        """只有真正辨識出食物的結果才能被之後的「儲存」使用。"""
        return self.success and bool(self.text) and not is_no_food(self.text)


def is_no_food(text: str) -> bool:
    return text.strip().rstrip("。.") == NO_FOOD_SENTINEL


def build_image_data_url(jpeg_bytes: bytes, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    encoded = base64.b64encode(jpeg_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def extract_text_from_output(output: Iterable[Any]) -> str:
    # content 可能是字串，也可能是 [{type, text}, ...]
    for item in output or []:
        text = _field(item, "text")
        if isinstance(text, str) and text:
            return text
        content = _field(item, "content")
        if _field(item, "type") != "message" or not content:
            continue
        if isinstance(content, str):
            return content
        for part in content:
            part_text = _field(part, "text")
            if _field(part, "type") in TEXT_PART_TYPES and part_text:
                return part_text
    return ""


def extract_response_text(response: Any) -> str:
    text = _field(response, "output_text")
    if isinstance(text, str) and text:
        return text
    return extract_text_from_output(_field(response, "output"))


class FoodRecognitionClient:
    """OpenAI Responses API 的食物辨識 client，輸入為已正規化的 JPEG。"""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_VISION_MODEL,
        timeout: float = VISION_TIMEOUT,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_VISION_MODEL
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._client_loop = None

    @classmethod
    def from_settings(cls) -> "FoodRecognitionClient":
        return cls(
            api_key=getattr(settings, "OPENAI_API_KEY", None),
            model=getattr(settings, "OPENAI_IMAGE_MODEL", DEFAULT_VISION_MODEL),
            timeout=getattr(settings, "OPENAI_VISION_TIMEOUT", VISION_TIMEOUT),
        )

    def _get_client(self) -> AsyncOpenAI:
        if not self._owns_client:
            return self._client
        if not self.api_key:
            raise RecognitionFailure("OPENAI_API_KEY 未設定")
        # 連線池綁定建立時的 event loop，WSGI 下每個請求各自一個 loop
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
            self._client_loop = loop
        return self._client

    async def recognize(self, jpeg_bytes: bytes) -> RecognitionResult:
        client = self._get_client()
        request = client.responses.create(
            model=self.model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": PROMPT_TEMPLATE},
                        {"type": "input_image", "image_url": build_image_data_url(jpeg_bytes)},
                    ],
                }
            ],
        )
        try:
            response = await asyncio.wait_for(request, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise RecognitionFailure(f"OpenAI 辨識逾時 ({self.timeout}s)") from exc
        except OpenAIError as exc:
            logger.warning("OpenAI Vision 呼叫失敗 model=%s error=%s", self.model, exc)
            raise RecognitionFailure(f"OpenAI 呼叫失敗: {exc}") from exc

        text = extract_response_text(response).strip()
        return RecognitionResult(text=text, success=bool(text))
