from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.utils import timezone
from storages.backends.s3boto3 import S3Boto3Storage

from vision.exceptions import UploadFailure
from vision.utils.cache import build_cache_key, get_cache_value, set_cache_value

logger = logging.getLogger(__name__)

KEY_PREFIX = "food-images"
KEY_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_CONTENT_TYPE = "image/jpeg"
DEFAULT_URL_TTL = 3600
UNKNOWN_USER_ID = "unknown"

REQUIRED_SETTINGS = (
    "AWS_STORAGE_BUCKET_NAME",
    "AWS_S3_REGION_NAME",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
)


def build_object_key(user_id: str, moment: datetime) -> str:
    return f"{KEY_PREFIX}/{user_id or UNKNOWN_USER_ID}/{moment.strftime(KEY_TIMESTAMP_FORMAT)}.jpg"


class FoodImageStore:
    """
    S3 上的食物圖片。key 格式 food-images/{user_id}/{YYYYMMDD_HHMMSS}.jpg，
    同一秒內重複上傳會覆蓋同一個 key。
    """

    def __init__(self, storage: S3Boto3Storage, now: Callable[[], datetime] = timezone.localtime):
        self.storage = storage
        self._now = now

    @classmethod
    def from_settings(cls) -> "FoodImageStore | None":
        missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name, "")]
        if missing:
            logger.info("S3 未設定，缺少 %s", ", ".join(missing))
            return None
        storage = S3Boto3Storage(
            bucket_name=settings.AWS_STORAGE_BUCKET_NAME,
            region_name=settings.AWS_S3_REGION_NAME,
            access_key=settings.AWS_ACCESS_KEY_ID,
            secret_key=settings.AWS_SECRET_ACCESS_KEY,
        )
        return cls(storage)

    @property
    def bucket_name(self) -> str:
        return self.storage.bucket_name

    @property
    def client(self):
        return self.storage.connection.meta.client

    def upload(self, user_id: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        key = build_object_key(user_id, self._now())
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
                ContentLength=len(data),
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadFailure(f"S3 上傳失敗 key={key}: {exc}") from exc
        return key

    def presign_get_url(self, key: str, expires: int = DEFAULT_URL_TTL) -> str:
        if expires <= 0:
            expires = DEFAULT_URL_TTL
        cache_key = build_cache_key("presign", key, str(expires))
        cached = get_cache_value(cache_key)
        if cached:
            return cached

        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=expires,
        )
        set_cache_value(cache_key, url, max(expires - 60, 60))
        return url
