from __future__ import annotations

import logging
from functools import lru_cache

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from vision.exceptions import PresignFailedException, StorageUnavailableException
from vision.serializers import FoodImageURLRequestSerializer, FoodImageURLSerializer
from vision.services.object_store import DEFAULT_URL_TTL, FoodImageStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_food_image_store() -> FoodImageStore | None:
    return FoodImageStore.from_settings()


class FoodImageURLView(APIView):
    """已儲存食物圖片的 Presigned URL 查詢。"""

    @extend_schema(request=FoodImageURLRequestSerializer, responses=FoodImageURLSerializer)
    def post(self, request):
        serializer = FoodImageURLRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store = get_food_image_store()
        if store is None:
            raise StorageUnavailableException()

        key = serializer.validated_data["s3_key"]
        expires = getattr(settings, "FOOD_IMAGE_URL_TTL", DEFAULT_URL_TTL)
        try:
            url = store.presign_get_url(key, expires)
        except (BotoCoreError, ClientError) as exc:
            logger.error("產生圖片連結失敗 key=%s error=%s", key, exc)
            raise PresignFailedException() from exc

        return Response(FoodImageURLSerializer({"url": url}).data, status=status.HTTP_200_OK)
