from rest_framework import serializers


class LineWebhookSerializer(serializers.Serializer):
    destination = serializers.CharField(required=False, allow_blank=True)
    events = serializers.ListField(child=serializers.DictField(), allow_empty=True)
