import json

import httpx
from django.test import SimpleTestCase

from messaging.client import CONTENT_URL, REPLY_URL, LineMessagingClient
from vision.exceptions import FetchFailure, ReplyFailure


class RecordingTransport(httpx.MockTransport):
    def __init__(self, handler):
        self.requests = []

        def record(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


class LineMessagingClientTests(SimpleTestCase):
    def make_client(self, handler, token="channel-token"):
        transport = RecordingTransport(handler)
        return LineMessagingClient(access_token=token, transport=transport), transport

    async def test_reply_text_posts_reply_payload(self):
        client, transport = self.make_client(lambda request: httpx.Response(200, json={}))
        await client.reply_text("reply-token", "白飯、炒蛋")

        request = transport.requests[0]
        self.assertEqual(str(request.url), REPLY_URL)
        self.assertEqual(request.headers["Authorization"], "Bearer channel-token")
        self.assertEqual(
            json.loads(request.content),
            {"replyToken": "reply-token", "messages": [{"type": "text", "text": "白飯、炒蛋"}]},
        )

    async def test_reply_error_status(self):
        client, _ = self.make_client(lambda request: httpx.Response(400, json={"message": "Invalid reply token"}))
        with self.assertRaises(ReplyFailure):
            await client.reply_text("used-token", "hi")

    async def test_reply_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = self.make_client(handler)
        with self.assertRaises(ReplyFailure):
            await client.reply_text("reply-token", "hi")

    async def test_reply_without_token_is_dry_run(self):
        client, transport = self.make_client(lambda request: httpx.Response(500), token="")
        with self.assertLogs("messaging.client", level="INFO"):
            await client.reply_text("reply-token", "hi")
        self.assertEqual(transport.requests, [])

    async def test_fetch_content(self):
        client, transport = self.make_client(
            lambda request: httpx.Response(200, content=b"\xff\xd8jpeg", headers={"Content-Type": "image/jpeg"})
        )
        data, content_type = await client.fetch_content("123456")

        self.assertEqual((data, content_type), (b"\xff\xd8jpeg", "image/jpeg"))
        self.assertEqual(str(transport.requests[0].url), CONTENT_URL.format(message_id="123456"))

    async def test_fetch_content_error_status(self):
        client, _ = self.make_client(lambda request: httpx.Response(404))
        with self.assertRaises(FetchFailure):
            await client.fetch_content("123456")

    async def test_fetch_content_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = self.make_client(handler)
        with self.assertRaises(FetchFailure):
            await client.fetch_content("123456", timeout=0.1)

    async def test_fetch_content_requires_token(self):
        client, transport = self.make_client(lambda request: httpx.Response(200), token="")
        with self.assertRaises(FetchFailure):
            await client.fetch_content("123456")
        self.assertEqual(transport.requests, [])
