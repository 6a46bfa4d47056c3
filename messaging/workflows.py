from __future__ import annotations

import asyncio
import logging
from typing import Callable

from asgiref.sync import sync_to_async

from messaging import replies
from messaging.client import LineMessagingClient
from messaging.events import ImageEvent
from vision.exceptions import (
    DecodeFailure,
    FetchFailure,
    FoodBotError,
    RecognitionFailure,
    StorageUnavailable,
    UploadFailure,
)
from vision.services.image_resize import NormalizedImage, normalize_image
from vision.services.object_store import DEFAULT_CONTENT_TYPE, FoodImageStore
from vision.services.openai_vision import FoodRecognitionClient
from vision.utils.context import UserContextStore

logger = logging.getLogger(__name__)

SAVE_FETCH_TIMEOUT = 15.0
SAVE_UPLOAD_TIMEOUT = 15.0


def _log_failure(action: str, user_id: str, exc: FoodBotError) -> None:
    logger.error("%s失敗 user=%s stage=%s error=%s", action, user_id, exc.stage, exc)


class FoodRecognitionFlow:
    """圖片訊息：下載 → 縮放 → 辨識 → 回傳回覆文字，辨識出食物時寫入 context。"""

    def __init__(
        self,
        line: LineMessagingClient,
        recognizer: FoodRecognitionClient,
        context_store: UserContextStore,
        normalizer: Callable[[bytes], NormalizedImage] = normalize_image,
    ):
        self.line = line
        self.recognizer = recognizer
        self.context_store = context_store
        self.normalizer = normalizer

    async def run(self, event: ImageEvent) -> str:
        user_id = event.user_id
        try:
            data, _ = await self.line.fetch_content(event.content_id)
        except FetchFailure as exc:
            _log_failure("辨識", user_id, exc)
            return replies.FETCH_FAILED

        try:
            image = await sync_to_async(self.normalizer, thread_sensitive=False)(data)
        except DecodeFailure as exc:
            _log_failure("辨識", user_id, exc)
            return replies.DECODE_FAILED

        try:
            result = await self.recognizer.recognize(image.content)
        except RecognitionFailure as exc:
            _log_failure("辨識", user_id, exc)
            return replies.RECOGNITION_FAILED

        if not result.has_food:
            logger.info("未辨識出食物 user=%s text=%r", user_id, result.text)
            return replies.FOOD_NOT_RECOGNIZED

        await sync_to_async(self.context_store.put, thread_sensitive=False)(
            user_id, event.content_id, event.reply_token
        )
        logger.info("辨識成功 user=%s foods=%s", user_id, result.text)
        return result.text


class SaveImageFlow:
    """「儲存」指令：把使用者上一張成功辨識的原圖上傳到 S3。"""

    def __init__(
        self,
        line: LineMessagingClient,
        context_store: UserContextStore,
        image_store: FoodImageStore | None,
        fetch_timeout: float = SAVE_FETCH_TIMEOUT,
        upload_timeout: float = SAVE_UPLOAD_TIMEOUT,
    ):
        self.line = line
        self.context_store = context_store
        self.image_store = image_store
        self.fetch_timeout = fetch_timeout
        self.upload_timeout = upload_timeout

    def _require_image_store(self) -> FoodImageStore:
        if self.image_store is None:
            raise StorageUnavailable("S3 未設定")
        return self.image_store

    async def run(self, user_id: str, reply_token: str) -> str:
        context = await sync_to_async(self.context_store.get, thread_sensitive=False)(user_id)
        if context is None:
            return replies.SAVE_NO_CONTEXT
        try:
            image_store = self._require_image_store()
        except StorageUnavailable as exc:
            _log_failure("上傳", user_id, exc)
            return replies.SAVE_STORAGE_UNAVAILABLE

        try:
            data, content_type = await asyncio.wait_for(
                self.line.fetch_content(context.content_id, timeout=self.fetch_timeout),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            _log_failure("上傳", user_id, FetchFailure(f"取得圖片逾時 ({self.fetch_timeout}s)"))
            return replies.SAVE_FAILED
        except FetchFailure as exc:
            _log_failure("上傳", user_id, exc)
            return replies.SAVE_FAILED

        upload = sync_to_async(image_store.upload, thread_sensitive=False)
        try:
            key = await asyncio.wait_for(
                upload(user_id, data, content_type or DEFAULT_CONTENT_TYPE),
                timeout=self.upload_timeout,
            )
        except asyncio.TimeoutError:
            _log_failure("上傳", user_id, UploadFailure(f"S3 上傳逾時 ({self.upload_timeout}s)"))
            return replies.SAVE_FAILED
        except UploadFailure as exc:
            _log_failure("上傳", user_id, exc)
            return replies.SAVE_FAILED

        logger.info("上傳成功 user=%s key=%s", user_id, key)
        return replies.SAVE_SUCCEEDED
