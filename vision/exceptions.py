from rest_framework import status
from rest_framework.exceptions import APIException


class FoodBotError(Exception):
    """單一事件處理過程中的失敗，會在 handler 邊界被記錄並轉成固定回覆。"""

    stage = "unknown"

    def __init__(self, message: str = ""):
        self.message = message or self.stage
        super().__init__(self.message)


class FetchFailure(FoodBotError):
    stage = "fetch"


class DecodeFailure(FoodBotError):
    stage = "decode"


class RecognitionFailure(FoodBotError):
    stage = "recognize"


class StorageUnavailable(FoodBotError):
    stage = "storage"


class UploadFailure(FoodBotError):
    stage = "upload"


class ReplyFailure(FoodBotError):
    stage = "reply"


class StorageUnavailableException(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'S3 未設定'
    default_code = 'storage_unavailable'


class PresignFailedException(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = '產生圖片連結失敗'
    default_code = 'presign_failed'
