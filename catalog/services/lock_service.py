"""
상품별 임계 영역(락) 서비스

같은 상품에 대한 사진 교체/삭제, 상품 수정/삭제가 서로 끼어들지 않도록
상품 ID 단위로 직렬화합니다.

- LocalProductLockManager: 단일 프로세스용 (threading.Lock)
- RedisProductLockManager: 여러 워커 프로세스가 같은 저장소를 쓰는 배포용
  (SET NX EX + Lua 스크립트 원자적 해제)
"""

import threading
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis

from catalog.core.config import Settings
from catalog.core.exceptions import LockAcquisitionException


class ProductLockManager(ABC):
    """상품 ID 단위 임계 영역"""

    @abstractmethod
    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        """
        상품 락을 잡은 채로 블록을 실행합니다.

        Raises:
            LockAcquisitionException: 제한 시간 내에 락을 얻지 못한 경우
        """


class LocalProductLockManager(ProductLockManager):
    """프로세스 내 상품별 threading.Lock (사용 중인 상품의 락만 보관)"""

    def __init__(self, timeout_seconds: float = 10.0):
        self._timeout = timeout_seconds
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalProductLockManager":
        return cls(timeout_seconds=settings.lock_timeout_seconds)

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(product_id, threading.Lock())
            self._users[product_id] = self._users.get(product_id, 0) + 1

        try:
            if not lock.acquire(timeout=self._timeout):
                raise LockAcquisitionException(f"product:{product_id}")
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._guard:
                self._users[product_id] -= 1
                if self._users[product_id] == 0:
                    del self._users[product_id]
                    del self._locks[product_id]


# GET + 비교 + DEL을 하나의 연산으로 실행하여, 내가 획득한 락만 해제
RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
else
    return 0
end
"""


class RedisProductLockManager(ProductLockManager):
    """Redis SET NX EX 기반 상품별 분산 락"""

    def __init__(self, redis: Redis, settings: Settings):
        self._redis = redis
        self._settings = settings

    @staticmethod
    def _get_lock_key(product_id: str) -> str:
        """
        상품의 락 키를 생성합니다.

        Args:
            product_id: 상품 ID

        Returns:
            락 키 문자열
        """
        return f"lock:product:{product_id}"

    def _acquire_lock(self, product_id: str) -> Optional[str]:
        """
        TTL을 설정하여 SETNX로 락을 획득합니다.

        Returns:
            획득 성공 시 락 ID (UUID), 이미 락이 점유 중이면 None
        """
        lock_id = str(uuid.uuid4())

        # NX: 키가 없을 때만 설정
        # EX: 데드락 방지를 위한 만료 시간(TTL) 설정
        acquired = self._redis.set(
            self._get_lock_key(product_id),
            lock_id,
            nx=True,
            ex=self._settings.lock_timeout_seconds,
        )
        return lock_id if acquired else None

    def _release_lock(self, product_id: str, lock_id: str) -> bool:
        """
        락 ID가 일치하는 경우에만 락을 해제합니다.

        Returns:
            락 해제 성공 시 True, 실패 시 False
        """
        result = self._redis.eval(
            RELEASE_SCRIPT, 1, self._get_lock_key(product_id), lock_id
        )
        return bool(result)

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        max_retries = self._settings.lock_retry_attempts
        retry_delay = self._settings.lock_retry_delay_ms / 1000.0  # ms를 초로 변환

        lock_id = None
        for attempt in range(max_retries):
            lock_id = self._acquire_lock(product_id)
            if lock_id is not None:
                break
            # 락 획득 실패, 지연 후 재시도
            if attempt < max_retries - 1:
                time.sleep(retry_delay)

        if lock_id is None:
            raise LockAcquisitionException(
                self._get_lock_key(product_id),
                f"Failed to acquire lock after {max_retries} retries",
            )

        try:
            yield
        finally:
            # 항상 락 해제
            self._release_lock(product_id, lock_id)
