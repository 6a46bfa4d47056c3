from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from vision.exceptions import DecodeFailure

logger = logging.getLogger(__name__)

SHORT_SIDE_MAX = 768
LONG_SIDE_MAX = 2000
JPEG_QUALITY = 85
JPEG_MIME = "image/jpeg"


@dataclass(frozen=True)
class NormalizedImage:
    content: bytes
    content_type: str
    width: int
    height: int


def compute_target_size(width: int, height: int) -> tuple[int, int]:
    """
    短邊縮到 768 以內，縮完後長邊若仍超過 2000 再縮一次。只縮小不放大。
    """
    # 整數運算取 floor
    new_w, new_h = width, height
    short = min(new_w, new_h)
    if short > SHORT_SIDE_MAX:
        new_w, new_h = new_w * SHORT_SIDE_MAX // short, new_h * SHORT_SIDE_MAX // short

    long = max(new_w, new_h)
    if long > LONG_SIDE_MAX:
        new_w, new_h = new_w * LONG_SIDE_MAX // long, new_h * LONG_SIDE_MAX // long

    return max(new_w, 1), max(new_h, 1)


def normalize_image(data: bytes) -> NormalizedImage:
    """JPEG/PNG 等圖片解碼後依尺寸限制縮放，輸出品質 85 的 JPEG。"""
    if not data:
        raise DecodeFailure("圖片內容為空")
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = source.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeFailure(f"圖片解碼失敗: {exc}") from exc

    width, height = image.size
    target = compute_target_size(width, height)
    if target != (width, height):
        image = image.resize(target, resample=Image.Resampling.BICUBIC)
        logger.debug("圖片縮放 %sx%s -> %sx%s", width, height, *target)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return NormalizedImage(
        content=buffer.getvalue(),
        content_type=JPEG_MIME,
        width=image.width,
        height=image.height,
    )
