from __future__ import annotations

import hashlib
from typing import TypeVar

from django.core.cache import cache

T = TypeVar("T")


def _hash_suffix(raw_suffix: str) -> str:
    return hashlib.sha256(raw_suffix.encode("utf-8")).hexdigest()


def build_cache_key(namespace: str, *parts: str) -> str:
    digest = _hash_suffix(":".join(parts))
    return f"vision:{namespace}:{digest}"


def get_cache_value(key: str) -> T | None:
    return cache.get(key)


def set_cache_value(key: str, value: T, timeout: int) -> None:
    cache.set(key, value, timeout)


def delete_cache_value(key: str) -> None:
    cache.delete(key)
