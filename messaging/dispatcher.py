from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Iterable, List, Set

from django.conf import settings

from messaging import replies
from messaging.client import LineMessagingClient
from messaging.events import ImageEvent, InboundEvent, OtherEvent, TextEvent
from messaging.workflows import SAVE_FETCH_TIMEOUT, SAVE_UPLOAD_TIMEOUT, FoodRecognitionFlow, SaveImageFlow
from vision.exceptions import ReplyFailure
from vision.services.object_store import FoodImageStore
from vision.services.openai_vision import FoodRecognitionClient
from vision.utils.context import get_context_store

logger = logging.getLogger(__name__)


def fallback_reply(event: InboundEvent) -> str:
    """流程中出現未預期錯誤時仍要回覆的文字。"""
    if isinstance(event, ImageEvent):
        return replies.RECOGNITION_FAILED
    if isinstance(event, TextEvent) and replies.is_save_command(event.text):
        return replies.SAVE_FAILED
    return replies.GUIDANCE


class EventDispatcher:
    """
    Webhook 事件分派。每個事件各自一個 asyncio task，彼此不保證順序；
    單一事件失敗只會被記錄，不影響同批其他事件。每個事件只嘗試回覆一次。
    """

    def __init__(
        self,
        line: LineMessagingClient,
        recognition_flow: FoodRecognitionFlow,
        save_flow: SaveImageFlow,
    ):
        self.line = line
        self.recognition_flow = recognition_flow
        self.save_flow = save_flow
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls) -> "EventDispatcher":
        line = LineMessagingClient.from_settings()
        context_store = get_context_store()
        recognition_flow = FoodRecognitionFlow(
            line=line,
            recognizer=FoodRecognitionClient.from_settings(),
            context_store=context_store,
        )
        save_flow = SaveImageFlow(
            line=line,
            context_store=context_store,
            image_store=FoodImageStore.from_settings(),
            fetch_timeout=getattr(settings, "SAVE_FETCH_TIMEOUT", SAVE_FETCH_TIMEOUT),
            upload_timeout=getattr(settings, "SAVE_UPLOAD_TIMEOUT", SAVE_UPLOAD_TIMEOUT),
        )
        return cls(line=line, recognition_flow=recognition_flow, save_flow=save_flow)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, events: Iterable[InboundEvent]) -> List[asyncio.Task]:
        """事件丟到背景 task 後立即返回，webhook 不等待處理結果。"""
        tasks = []
        for event in events:
            task = asyncio.create_task(self._handle_isolated(event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def handle(self, events: Iterable[InboundEvent]) -> None:
        await asyncio.gather(*self.dispatch(events))

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _handle_isolated(self, event: InboundEvent) -> None:
        try:
            await self.handle_event(event)
        except Exception:  # noqa: BLE001
            logger.exception("事件回覆失敗 user=%s event=%s", getattr(event, "user_id", ""), type(event).__name__)

    async def handle_event(self, event: InboundEvent) -> None:
        try:
            text = await self.route(event)
        except Exception:  # noqa: BLE001
            logger.exception("事件處理失敗 user=%s event=%s", event.user_id, type(event).__name__)
            text = fallback_reply(event)
        await self._reply(event, text)

    async def route(self, event: InboundEvent) -> str:
        if isinstance(event, ImageEvent):
            return await self.recognition_flow.run(event)
        if isinstance(event, TextEvent):
            logger.info("收到訊息: %s (來自: %s)", event.text, event.user_id)
            if replies.is_save_command(event.text):
                return await self.save_flow.run(event.user_id, event.reply_token)
            return replies.GUIDANCE
        if isinstance(event, OtherEvent):
            logger.info("未處理的訊息類型: %s (來自: %s)", event.message_type, event.user_id)
            return replies.GUIDANCE
        raise TypeError(f"不支援的事件: {event!r}")

    async def _reply(self, event: InboundEvent, text: str) -> None:
        try:
            await self.line.reply_text(event.reply_token, text)
        except ReplyFailure as exc:
            logger.error("回覆訊息失敗 user=%s error=%s", event.user_id, exc)


@lru_cache(maxsize=1)
def get_dispatcher() -> EventDispatcher:
    return EventDispatcher.from_settings()
