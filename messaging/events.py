from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Union

logger = logging.getLogger(__name__)

UNKNOWN_USER_ID = "unknown"


@dataclass(frozen=True)
class TextEvent:
    user_id: str
    reply_token: str
    text: str


@dataclass(frozen=True)
class ImageEvent:
    user_id: str
    reply_token: str
    content_id: str


@dataclass(frozen=True)
class OtherEvent:
    user_id: str
    reply_token: str
    message_type: str


InboundEvent = Union[TextEvent, ImageEvent, OtherEvent]


def normalize_user_id(user_id: str | None) -> str:
    return user_id or UNKNOWN_USER_ID


def parse_event(raw: Dict[str, Any]) -> InboundEvent | None:
    """LINE webhook 的單一事件轉成 InboundEvent；非 message 事件回傳 None。"""
    event_type = raw.get("type")
    if event_type != "message":
        logger.info("未處理的事件類型: %s", event_type)
        return None

    user_id = normalize_user_id((raw.get("source") or {}).get("userId"))
    reply_token = raw.get("replyToken") or ""
    message = raw.get("message") or {}
    message_type = message.get("type") or ""

    if message_type == "text":
        return TextEvent(user_id=user_id, reply_token=reply_token, text=message.get("text") or "")
    if message_type == "image":
        return ImageEvent(user_id=user_id, reply_token=reply_token, content_id=str(message.get("id") or ""))
    return OtherEvent(user_id=user_id, reply_token=reply_token, message_type=message_type)


def parse_events(raw_events: Iterable[Dict[str, Any]]) -> List[InboundEvent]:
    events = []
    for raw in raw_events:
        event = parse_event(raw)
        if event is not None:
            events.append(event)
    return events
