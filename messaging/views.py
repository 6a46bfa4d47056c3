from __future__ import annotations

import logging

import orjson
from django.core.handlers.asgi import ASGIRequest
from django.http import JsonResponse
from django.utils.timezone import now
from django.views.decorators.http import require_POST

from messaging.dispatcher import get_dispatcher
from messaging.events import parse_events
from messaging.serializers import LineWebhookSerializer

logger = logging.getLogger(__name__)


def fail(code: int, message: str) -> JsonResponse:
    return JsonResponse(
        {"status": "error", "code": code, "message": message, "meta": {"timestamp": now().isoformat()}},
        status=code,
    )


@require_POST
async def line_webhook(request):
    """
    LINE Platform 送來的 Webhook。ASGI 下事件交給 dispatcher 背景處理後立即回 200；
    WSGI（runserver）下請求的 event loop 隨回應結束，只能等事件處理完再回應。
    個別事件成功與否不影響回應。
    """
    try:
        payload = orjson.loads(request.body or b"{}")
    except orjson.JSONDecodeError as exc:
        logger.warning("解析 Webhook 失敗: %s", exc)
        return fail(400, "Bad Request")

    serializer = LineWebhookSerializer(data=payload)
    if not serializer.is_valid():
        logger.warning("Webhook 格式錯誤: %s", serializer.errors)
        return fail(400, "Bad Request")

    events = parse_events(serializer.validated_data["events"])
    if events:
        dispatcher = get_dispatcher()
        if isinstance(request, ASGIRequest):
            dispatcher.dispatch(events)
        else:
            await dispatcher.handle(events)
    return JsonResponse({"status": "success", "code": 200, "message": "OK"}, status=200)
