import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

from django.test import SimpleTestCase

from messaging import replies
from messaging.dispatcher import EventDispatcher
from messaging.events import ImageEvent, TextEvent
from messaging.workflows import FoodRecognitionFlow
from vision.exceptions import FetchFailure
from vision.utils.context import InMemoryUserContextStore

WEBHOOK_BODY = {
    "destination": "Uxxxxxxxx",
    "events": [
        {
            "type": "message",
            "replyToken": "token-1",
            "source": {"type": "user", "userId": "U1"},
            "message": {"type": "image", "id": "msg-1"},
        },
        {
            "type": "message",
            "replyToken": "token-2",
            "source": {"type": "user", "userId": "U1"},
            "message": {"type": "text", "id": "msg-2", "text": "儲存"},
        },
        {"type": "follow", "replyToken": "token-3", "source": {"type": "user", "userId": "U2"}},
    ],
}


class LineWebhookViewTests(SimpleTestCase):
    url = "/line/webhook"

    def setUp(self):
        patcher = patch("messaging.views.get_dispatcher")
        self.get_dispatcher = patcher.start()
        self.addCleanup(patcher.stop)
        self.dispatcher = MagicMock()
        self.get_dispatcher.return_value = self.dispatcher

    async def test_events_are_dispatched_and_acknowledged(self):
        response = await self.async_client.post(
            self.url, data=json.dumps(WEBHOOK_BODY), content_type="application/json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "OK")
        self.dispatcher.dispatch.assert_called_once_with(
            [
                ImageEvent(user_id="U1", reply_token="token-1", content_id="msg-1"),
                TextEvent(user_id="U1", reply_token="token-2", text="儲存"),
            ]
        )

    async def test_empty_event_list_is_acknowledged(self):
        response = await self.async_client.post(
            self.url, data=json.dumps({"destination": "U", "events": []}), content_type="application/json"
        )

        self.assertEqual(response.status_code, 200)
        self.dispatcher.dispatch.assert_not_called()

    async def test_invalid_json(self):
        response = await self.async_client.post(self.url, data="{not json", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["status"], "error")
        self.dispatcher.dispatch.assert_not_called()

    async def test_missing_events(self):
        response = await self.async_client.post(
            self.url, data=json.dumps({"destination": "U"}), content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    async def test_get_is_not_allowed(self):
        response = await self.async_client.get(self.url)
        self.assertEqual(response.status_code, 405)


class LineWebhookSyncRequestTests(SimpleTestCase):
    def test_sync_request_finishes_events_before_responding(self):
        line = MagicMock()
        line.reply_text = AsyncMock()

        async def slow_fetch(content_id):
            await asyncio.sleep(0.05)
            raise FetchFailure("content expired")

        line.fetch_content = slow_fetch
        recognition_flow = FoodRecognitionFlow(line, MagicMock(), InMemoryUserContextStore())
        dispatcher = EventDispatcher(line, recognition_flow, MagicMock())
        body = {"destination": "U", "events": WEBHOOK_BODY["events"][:1]}

        with patch("messaging.views.get_dispatcher", return_value=dispatcher):
            with self.assertLogs("messaging.workflows", level="ERROR"):
                response = self.client.post("/line/webhook", data=json.dumps(body), content_type="application/json")

        self.assertEqual(response.status_code, 200)
        line.reply_text.assert_awaited_once_with("token-1", replies.FETCH_FAILED)
        self.assertEqual(dispatcher.pending, 0)


class HealthViewTests(SimpleTestCase):
    def test_health(self):
        for url in ["/", "/health/"]:
            with self.subTest(url=url):
                response = self.client.get(url)
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.json()["status"], "ok")
