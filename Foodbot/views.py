from django.http import JsonResponse
from django.utils.timezone import now
from django.views.decorators.http import require_GET


@require_GET
def health(request):
    """服務存活檢查，LINE Developers 設定 Webhook 時也會先打這裡。"""
    return JsonResponse(
        {
            "status": "ok",
            "message": "LINE Bot Webhook API is running",
            "meta": {"timestamp": now().isoformat()},
        }
    )
