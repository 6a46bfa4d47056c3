"""使用者看到的固定回覆文字。"""

GUIDANCE = "請上傳食物圖片，我會幫你辨識圖片中的食物。"

FETCH_FAILED = "無法取得圖片，請再試一次"
DECODE_FAILED = "圖片格式有誤，請重傳"
RECOGNITION_FAILED = "辨識失敗，請稍後再試"
FOOD_NOT_RECOGNIZED = "無法辨識圖片中的食物"

SAVE_NO_CONTEXT = "請先上傳食物圖片再儲存"
SAVE_STORAGE_UNAVAILABLE = "上傳失敗（S3 未設定）"
SAVE_FAILED = "上傳失敗"
SAVE_SUCCEEDED = "上傳成功"

SAVE_KEYWORDS = ("save", "儲存")


def is_save_command(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in SAVE_KEYWORDS)
