"""Tests for product lock managers."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from catalog.core.exceptions import LockAcquisitionException
from catalog.services.lock_service import (
    RELEASE_SCRIPT,
    LocalProductLockManager,
    RedisProductLockManager,
)


class TestLocalProductLockManager:
    """Test cases for LocalProductLockManager."""

    def test_hold_serializes_same_product(self):
        """Test: 같은 상품의 임계 영역은 동시에 실행되지 않음"""
        locks = LocalProductLockManager(timeout_seconds=5)
        active = 0
        max_active = 0
        guard = threading.Lock()

        def work():
            nonlocal active, max_active
            with locks.hold("p1"):
                with guard:
                    active += 1
                    max_active = max(max_active, active)
                time.sleep(0.01)
                with guard:
                    active -= 1

        with ThreadPoolExecutor(max_workers=8) as executor:
            for future in [executor.submit(work) for _ in range(20)]:
                future.result(timeout=10)

        assert max_active == 1

    def test_different_products_do_not_block(self):
        """Test: 다른 상품의 락은 서로 독립"""
        locks = LocalProductLockManager(timeout_seconds=0.5)

        with locks.hold("p1"):
            with locks.hold("p2"):
                pass

    def test_hold_timeout(self):
        """Test: 제한 시간 내 락을 얻지 못하면 LockAcquisitionException"""
        locks = LocalProductLockManager(timeout_seconds=0.1)
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("p1"):
                entered.set()
                release.wait(timeout=5)

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(holder)
            assert entered.wait(timeout=5)
            with pytest.raises(LockAcquisitionException):
                with locks.hold("p1"):
                    pass
            release.set()
            future.result(timeout=5)

    def test_released_on_exception(self):
        """Test: 블록에서 예외가 나도 락은 해제됨"""
        locks = LocalProductLockManager(timeout_seconds=0.1)

        with pytest.raises(RuntimeError):
            with locks.hold("p1"):
                raise RuntimeError("boom")

        with locks.hold("p1"):
            pass

    def test_unused_locks_are_dropped(self):
        """Test: 사용이 끝난 상품의 락은 보관하지 않음"""
        locks = LocalProductLockManager()

        with locks.hold("p1"):
            assert "p1" in locks._locks

        assert locks._locks == {}

    def test_from_settings(self, settings):
        """Test: 설정값의 제한 시간 사용"""
        locks = LocalProductLockManager.from_settings(settings)

        assert locks._timeout == settings.lock_timeout_seconds


class TestRedisProductLockManager:
    """Test cases for RedisProductLockManager (Redis 클라이언트는 mock)."""

    def test_get_lock_key(self):
        """Test: 락 키 생성 테스트"""
        assert RedisProductLockManager._get_lock_key("p1") == "lock:product:p1"

    def test_hold_acquires_and_releases(self, settings):
        """Test: SET NX EX로 획득하고 Lua 스크립트로 해제"""
        redis = MagicMock()
        redis.set.return_value = True
        redis.eval.return_value = 1
        locks = RedisProductLockManager(redis, settings)

        with locks.hold("p1"):
            redis.eval.assert_not_called()

        args, kwargs = redis.set.call_args
        assert args[0] == "lock:product:p1"
        assert kwargs == {"nx": True, "ex": settings.lock_timeout_seconds}
        lock_id = args[1]
        redis.eval.assert_called_once_with(RELEASE_SCRIPT, 1, "lock:product:p1", lock_id)

    def test_hold_retries_until_acquired(self, settings):
        """Test: 락이 점유 중이면 지연 후 재시도"""
        redis = MagicMock()
        redis.set.side_effect = [None, None, True]
        locks = RedisProductLockManager(redis, settings)

        with patch("catalog.services.lock_service.time.sleep") as sleep:
            with locks.hold("p1"):
                pass

        assert redis.set.call_count == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(settings.lock_retry_delay_ms / 1000.0)

    def test_hold_gives_up_after_retries(self, settings):
        """Test: 재시도 횟수를 모두 소진하면 LockAcquisitionException"""
        redis = MagicMock()
        redis.set.return_value = None
        locks = RedisProductLockManager(redis, settings)

        with patch("catalog.services.lock_service.time.sleep"):
            with pytest.raises(LockAcquisitionException):
                with locks.hold("p1"):
                    pytest.fail("block must not run without the lock")

        assert redis.set.call_count == settings.lock_retry_attempts
        redis.eval.assert_not_called()

    def test_released_on_exception(self, settings):
        """Test: 블록에서 예외가 나도 락 해제"""
        redis = MagicMock()
        redis.set.return_value = True
        locks = RedisProductLockManager(redis, settings)

        with pytest.raises(RuntimeError):
            with locks.hold("p1"):
                raise RuntimeError("boom")

        redis.eval.assert_called_once()
