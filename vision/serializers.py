from __future__ import annotations

from rest_framework import serializers


class FoodImageURLRequestSerializer(serializers.Serializer):
    # 上傳成功時回傳的完整 key，例如 food-images/U80b35e.../20260218_111336.jpg
    s3_key = serializers.CharField(error_messages={"required": "s3_key 必填", "blank": "s3_key 必填"})


class FoodImageURLSerializer(serializers.Serializer):
    url = serializers.URLField()
