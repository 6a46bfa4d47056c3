from django.http import JsonResponse
from django.utils.timezone import now
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.views import exception_handler


def error_payload(code: int, message: str, error_code: str, **extra) -> dict:
    payload = {
        "status": "error",
        "code": code,
        "message": message,
        "error_code": error_code,
        "meta": {"timestamp": now().isoformat()},
    }
    payload.update(extra)
    return payload


def custom_exception_handler(exc, context):
    # 先交給 DRF 預設處理器
    response = exception_handler(exc, context)

    if isinstance(exc, DRFValidationError):
        return JsonResponse(
            error_payload(400, "參數驗證失敗", "validation_error", errors=exc.detail),
            status=400,
        )

    if isinstance(exc, APIException):
        return JsonResponse(
            error_payload(exc.status_code, str(exc.detail), exc.default_code),
            status=exc.status_code,
        )

    if response is not None:
        response.data = error_payload(
            response.status_code,
            response.data.get('detail', '處理請求時發生錯誤'),
            "error",
        )

    return response
