from django.urls import path

from messaging.views import line_webhook

urlpatterns = [
    path("webhook", line_webhook, name="line-webhook"),
]
