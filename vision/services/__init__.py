from .image_resize import NormalizedImage, compute_target_size, normalize_image
from .object_store import FoodImageStore, build_object_key
from .openai_vision import (
    NO_FOOD_SENTINEL,
    FoodRecognitionClient,
    RecognitionResult,
    extract_response_text,
)

__all__ = [
    "NormalizedImage",
    "compute_target_size",
    "normalize_image",
    "FoodImageStore",
    "build_object_key",
    "NO_FOOD_SENTINEL",
    "FoodRecognitionClient",
    "RecognitionResult",
    "extract_response_text",
]
