from __future__ import annotations

import logging
import threading
import time
import zlib
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Protocol

from django.conf import settings

from vision.utils.cache import build_cache_key, delete_cache_value, get_cache_value, set_cache_value

logger = logging.getLogger(__name__)

CONTEXT_TTL_SECONDS = 10 * 60
LOCK_STRIPES = 64


@dataclass(frozen=True)
class UserImageContext:
    """使用者上一張成功辨識的圖片，供「儲存」指令使用。"""

    user_id: str
    content_id: str
    reply_token: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at < now


class UserContextStore(Protocol):
    def put(self, user_id: str, content_id: str, reply_token: str) -> None: ...

    def get(self, user_id: str) -> Optional[UserImageContext]: ...


class InMemoryUserContextStore:
    """
    程序內的使用者圖片 context。

    每個 user_id 依雜湊對應到一把 stripe lock，同一使用者的讀寫互斥，
    不同使用者之間不會被同一把全域鎖序列化。過期資料只在下一次 get 時清除。
    """

    def __init__(
        self,
        ttl: float = CONTEXT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        stripes: int = LOCK_STRIPES,
    ):
        self.ttl = ttl
        self._clock = clock
        self._records: Dict[str, UserImageContext] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, user_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(user_id.encode("utf-8")) % len(self._locks)]

    def put(self, user_id: str, content_id: str, reply_token: str) -> None:
        if not user_id or not content_id:
            return
        record = UserImageContext(
            user_id=user_id,
            content_id=content_id,
            reply_token=reply_token,
            expires_at=self._clock() + self.ttl,
        )
        with self._lock_for(user_id):
            self._records[user_id] = record

    def get(self, user_id: str) -> Optional[UserImageContext]:
        if not user_id:
            return None
        now = self._clock()
        with self._lock_for(user_id):
            record = self._records.get(user_id)
            if record is None:
                return None
            if record.is_expired(now):
                del self._records[user_id]
                logger.debug("context 已過期並清除 user=%s", user_id)
                return None
            return record

    def __len__(self) -> int:
        return len(self._records)


class CacheUserContextStore:
    """同樣的 put/get 介面，但存放在 Django 快取（Redis），讓多個 worker 共用。"""

    namespace = "image_context"

    def __init__(self, ttl: int = CONTEXT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock

    def _key(self, user_id: str) -> str:
        return build_cache_key(self.namespace, user_id)

    def put(self, user_id: str, content_id: str, reply_token: str) -> None:
        if not user_id or not content_id:
            return
        record = UserImageContext(
            user_id=user_id,
            content_id=content_id,
            reply_token=reply_token,
            expires_at=self._clock() + self.ttl,
        )
        set_cache_value(self._key(user_id), asdict(record), self.ttl)

    def get(self, user_id: str) -> Optional[UserImageContext]:
        if not user_id:
            return None
        raw = get_cache_value(self._key(user_id))
        if not raw:
            return None
        try:
            record = UserImageContext(**raw)
        except TypeError:
            logger.warning("context 格式錯誤，已清除 user=%s", user_id)
            delete_cache_value(self._key(user_id))
            return None
        if record.is_expired(self._clock()):
            delete_cache_value(self._key(user_id))
            return None
        return record


CONTEXT_BACKENDS = {
    "memory": InMemoryUserContextStore,
    "cache": CacheUserContextStore,
}


@lru_cache(maxsize=1)
def get_context_store() -> UserContextStore:
    backend = getattr(settings, "USER_CONTEXT_BACKEND", "memory")
    try:
        store_class = CONTEXT_BACKENDS[backend]
    except KeyError as exc:
        raise ValueError(f"未知的 USER_CONTEXT_BACKEND: {backend}") from exc
    logger.info("使用者圖片 context 使用 %s 儲存", backend)
    return store_class()
