"""
LINE Messaging API client.

Provides:
- reply_text: 以 reply token 回覆一則文字訊息（token 只能使用一次）
- fetch_content: 下載使用者傳送的圖片原始內容

Endpoints:
https://api.line.me/v2/bot/message/reply
https://api-data.line.me/v2/bot/message/{message_id}/content
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

import httpx
from django.conf import settings

from vision.exceptions import FetchFailure, ReplyFailure

logger = logging.getLogger(__name__)

REPLY_URL = "https://api.line.me/v2/bot/message/reply"
CONTENT_URL = "https://api-data.line.me/v2/bot/message/{message_id}/content"
DEFAULT_TIMEOUT = 10.0
CONTENT_TIMEOUT = 30.0


class LineMessagingClient:
    def __init__(
        self,
        access_token: str | None,
        timeout: float = DEFAULT_TIMEOUT,
        content_timeout: float = CONTENT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token
        self.timeout = timeout
        self.content_timeout = content_timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "LineMessagingClient":
        return cls(
            access_token=getattr(settings, "LINE_CHANNEL_ACCESS_TOKEN", None),
            timeout=getattr(settings, "LINE_API_TIMEOUT", DEFAULT_TIMEOUT),
            content_timeout=getattr(settings, "LINE_CONTENT_TIMEOUT", CONTENT_TIMEOUT),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.access_token)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _post(self, url: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            logger.info("[dry-run] %s", json.dumps(payload, ensure_ascii=False))
            return
        async with self._client(self.timeout) as client:
            response = await client.post(url, json=payload, headers=self._headers())
        if response.is_error:
            raise ReplyFailure(f"LINE reply 回傳 {response.status_code}: {response.text}")

    async def reply_text(self, reply_token: str, text: str) -> None:
        if not reply_token:
            raise ReplyFailure("缺少 reply token")
        payload = {"replyToken": reply_token, "messages": [{"type": "text", "text": text}]}
        try:
            await self._post(REPLY_URL, payload)
        except httpx.HTTPError as exc:
            raise ReplyFailure(f"LINE reply 失敗: {exc}") from exc

    async def fetch_content(self, message_id: str, timeout: float | None = None) -> Tuple[bytes, str]:
        """回傳 (bytes, content_type)，content_type 可能為空字串。"""
        if not self.enabled:
            raise FetchFailure("LINE_CHANNEL_ACCESS_TOKEN 未設定")
        if not message_id:
            raise FetchFailure("缺少 message id")
        url = CONTENT_URL.format(message_id=message_id)
        try:
            async with self._client(timeout or self.content_timeout) as client:
                response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise FetchFailure(f"取得圖片失敗: {exc}") from exc
        if response.is_error:
            raise FetchFailure(f"取得圖片回傳 {response.status_code}")
        return response.content, response.headers.get("content-type", "")
