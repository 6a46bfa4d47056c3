from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from django.test import SimpleTestCase, override_settings
from rest_framework.test import APIClient

from vision.exceptions import UploadFailure
from vision.services.object_store import FoodImageStore, build_object_key

LOCMEM_CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}


class SteppingClock:
    def __init__(self, start, step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


def make_store(now=None):
    storage = MagicMock()
    storage.bucket_name = "food-bucket"
    store = FoodImageStore(storage, now=now or SteppingClock(datetime(2026, 2, 18, 11, 13, 36)))
    return store, storage.connection.meta.client


class BuildObjectKeyTests(SimpleTestCase):
    def test_key_format(self):
        key = build_object_key("U80b35e", datetime(2026, 2, 18, 11, 13, 36))
        self.assertEqual(key, "food-images/U80b35e/20260218_111336.jpg")

    def test_empty_user_id(self):
        key = build_object_key("", datetime(2026, 2, 18, 9, 5, 7))
        self.assertEqual(key, "food-images/unknown/20260218_090507.jpg")


class FoodImageStoreTests(SimpleTestCase):
    def test_upload_puts_object(self):
        store, client = make_store()
        key = store.upload("U1", b"raw-image", "image/png")

        self.assertEqual(key, "food-images/U1/20260218_111336.jpg")
        client.put_object.assert_called_once_with(
            Bucket="food-bucket",
            Key=key,
            Body=b"raw-image",
            ContentType="image/png",
            ContentLength=9,
        )

    def test_upload_defaults_content_type(self):
        store, client = make_store()
        store.upload("U1", b"raw", "")
        self.assertEqual(client.put_object.call_args.kwargs["ContentType"], "image/jpeg")

    def test_sequential_uploads_get_distinct_keys(self):
        store, _ = make_store()
        first = store.upload("U1", b"raw", "image/jpeg")
        second = store.upload("U1", b"raw", "image/jpeg")
        self.assertNotEqual(first, second)

    def test_client_error_becomes_upload_failure(self):
        store, client = make_store()
        client.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        with self.assertRaises(UploadFailure):
            store.upload("U1", b"raw", "image/jpeg")

    @override_settings(CACHES=LOCMEM_CACHES)
    def test_presigned_url_is_cached(self):
        store, client = make_store()
        client.generate_presigned_url.return_value = "https://food-bucket.s3.amazonaws.com/x?sig=1"

        first = store.presign_get_url("food-images/U1/20260218_111336.jpg", 3600)
        second = store.presign_get_url("food-images/U1/20260218_111336.jpg", 3600)

        self.assertEqual(first, second)
        client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "food-bucket", "Key": "food-images/U1/20260218_111336.jpg"},
            ExpiresIn=3600,
        )

    @override_settings(CACHES=LOCMEM_CACHES)
    def test_non_positive_expiry_defaults_to_one_hour(self):
        store, client = make_store()
        client.generate_presigned_url.return_value = "https://example.com/x"
        store.presign_get_url("food-images/U1/a.jpg", 0)
        self.assertEqual(client.generate_presigned_url.call_args.kwargs["ExpiresIn"], 3600)

    @override_settings(AWS_STORAGE_BUCKET_NAME="")
    def test_from_settings_without_bucket(self):
        self.assertIsNone(FoodImageStore.from_settings())


class FoodImageURLViewTests(SimpleTestCase):
    url = "/api/v1/vision/food-images/url/"

    def setUp(self):
        self.client = APIClient()

    @patch("vision.views.get_food_image_store")
    def test_returns_presigned_url(self, get_store):
        get_store.return_value.presign_get_url.return_value = "https://example.com/food.jpg?sig=1"

        response = self.client.post(self.url, {"s3_key": "food-images/U1/20260218_111336.jpg"}, format="json")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "success")
        self.assertEqual(body["data"], {"url": "https://example.com/food.jpg?sig=1"})
        get_store.return_value.presign_get_url.assert_called_once_with("food-images/U1/20260218_111336.jpg", 3600)

    @patch("vision.views.get_food_image_store")
    def test_missing_key_is_rejected(self, get_store):
        response = self.client.post(self.url, {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error_code"], "validation_error")
        get_store.assert_not_called()

    @patch("vision.views.get_food_image_store", return_value=None)
    def test_storage_not_configured(self, _get_store):
        response = self.client.post(self.url, {"s3_key": "food-images/U1/a.jpg"}, format="json")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error_code"], "storage_unavailable")

    @patch("vision.views.get_food_image_store")
    def test_presign_failure(self, get_store):
        get_store.return_value.presign_get_url.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetObject"
        )
        response = self.client.post(self.url, {"s3_key": "food-images/U1/a.jpg"}, format="json")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error_code"], "presign_failed")
