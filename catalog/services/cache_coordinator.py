"""
캐시 코디네이터

상품 조회 경로를 위한 프로세스 내 cache-aside 계층입니다.

- 리전(region)마다 독립된 크기 제한(LRU)과 TTL을 가집니다.
- 같은 (리전, 키)에 대한 동시 미스는 하나의 loader 호출로 합쳐집니다 (single-flight).
- invalidate(product_id)는 상품 ID로 주소 지정되는 모든 리전의 항목을 제거하고,
  ID로 주소 지정할 수 없는 목록/검색 리전은 통째로 비웁니다.
- 항목마다 버전 태그를 기록하여, 무효화 이전에 시작된 조회가 끝난 뒤
  이전 값을 다시 채워 넣지 못하게 합니다.
"""

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from catalog.core.config import Settings

logger = logging.getLogger(__name__)

PRODUCT_REGION = "products:by_id"
PHOTO_REGION = "products:photo"
LIST_REGION = "products:list"
SEARCH_REGION = "products:search"


@dataclass(frozen=True)
class RegionConfig:
    """
    리전 설정

    Attributes:
        name: 리전 이름
        max_entries: 최대 항목 수 (초과 시 가장 오래 사용되지 않은 항목 제거)
        ttl_seconds: 항목 유효 시간, None이면 만료 없음
        keyed_by_product: 키가 상품 ID인지 여부 (False면 쓰기마다 통째로 무효화)
    """

    name: str
    max_entries: int
    ttl_seconds: Optional[float]
    keyed_by_product: bool


@dataclass
class CacheEntry:
    value: Any
    version: int
    expires_at: Optional[float]

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class CacheRegion:
    """LRU + TTL 리전. 동기화는 CacheCoordinator의 락이 담당합니다."""

    def __init__(self, config: RegionConfig):
        self.config = config
        self.generation = 0
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()

    @property
    def name(self) -> str:
        return self.config.name

    def get(self, key: Hashable, now: float) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_expired(now):
            del self._entries[key]
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def store(self, key: Hashable, value: Any, version: int, now: float) -> None:
        ttl = self.config.ttl_seconds
        expires_at = now + ttl if ttl is not None else None
        self._entries[key] = CacheEntry(value=value, version=version, expires_at=expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self.config.max_entries:
            self._entries.popitem(last=False)

    def peek(self, key: Hashable, now: float) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def discard(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.generation += 1

    def __len__(self) -> int:
        return len(self._entries)


class CacheCoordinator:
    """
    여러 리전을 하나의 무효화 규약으로 묶는 cache-aside 코디네이터

    프로세스의 모든 요청이 공유하며, 내부 락은 딕셔너리 조작 동안에만 잡고
    loader 실행 중에는 잡지 않습니다.
    """

    def __init__(
        self,
        regions: list[RegionConfig],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._regions = {config.name: CacheRegion(config) for config in regions}
        self._clock = clock
        self._lock = threading.Lock()
        self._inflight: dict[tuple[str, Hashable], Future] = {}
        self._product_versions: dict[Hashable, int] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheCoordinator":
        """설정값으로 카탈로그의 고정 리전 구성을 생성합니다."""
        return cls(
            [
                RegionConfig(
                    PRODUCT_REGION,
                    settings.cache_product_max_entries,
                    settings.cache_product_ttl_seconds,
                    keyed_by_product=True,
                ),
                RegionConfig(
                    PHOTO_REGION,
                    settings.cache_photo_max_entries,
                    settings.cache_photo_ttl_seconds,
                    keyed_by_product=True,
                ),
                RegionConfig(
                    LIST_REGION,
                    settings.cache_listing_max_entries,
                    settings.cache_listing_ttl_seconds,
                    keyed_by_product=False,
                ),
                RegionConfig(
                    SEARCH_REGION,
                    settings.cache_listing_max_entries,
                    settings.cache_listing_ttl_seconds,
                    keyed_by_product=False,
                ),
            ]
        )

    def _region(self, name: str) -> CacheRegion:
        try:
            return self._regions[name]
        except KeyError:
            raise KeyError(f"Unknown cache region: {name}") from None

    def _version_for(self, region: CacheRegion, key: Hashable) -> int:
        if region.config.keyed_by_product:
            return self._product_versions.get(key, 0)
        return region.generation

    def get_or_load(self, region_name: str, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        캐시에서 값을 조회하고, 없으면 loader로 채웁니다.

        같은 (리전, 키)에 대해 동시에 들어온 호출은 loader를 한 번만 실행하고
        모두 같은 결과(또는 같은 예외)를 받습니다.
        loader 실패는 캐시하지 않으므로 다음 요청이 다시 시도합니다.

        Args:
            region_name: 리전 이름
            key: 리전 내 키
            loader: 캐시 미스 시 원천 저장소에서 값을 읽는 함수

        Returns:
            캐시된 값 또는 loader 결과
        """
        region = self._region(region_name)
        flight_key = (region_name, key)

        with self._lock:
            entry = region.get(key, self._clock())
            if entry is not None:
                return entry.value

            future = self._inflight.get(flight_key)
            is_leader = future is None
            if is_leader:
                future = Future()
                self._inflight[flight_key] = future
                version = self._version_for(region, key)

        if not is_leader:
            # 이미 진행 중인 조회 결과를 기다림
            return future.result()

        logger.debug("Cache miss on %s for key %r", region_name, key)
        try:
            value = loader()
        except BaseException as exc:
            with self._lock:
                if self._inflight.get(flight_key) is future:
                    del self._inflight[flight_key]
            future.set_exception(exc)
            raise

        with self._lock:
            if self._inflight.get(flight_key) is future:
                del self._inflight[flight_key]
            # 조회 도중 무효화가 일어났다면 이전 값을 채우지 않음
            if self._version_for(region, key) == version:
                region.store(key, value, version, self._clock())
        future.set_result(value)
        return value

    def put(
        self,
        region_name: str,
        key: Hashable,
        value: Any,
        version: Optional[int] = None,
    ) -> bool:
        """
        값을 캐시에 직접 기록합니다 (쓰기 후 새 값 선반영).

        version이 주어지면 그 사이 다른 무효화가 없었을 때만 기록합니다.

        Returns:
            기록했으면 True, 버전이 바뀌어 건너뛰었으면 False
        """
        region = self._region(region_name)
        with self._lock:
            current = self._version_for(region, key)
            if version is not None and version != current:
                logger.debug(
                    "Skipped stale put on %s for key %r (version %s != %s)",
                    region_name,
                    key,
                    version,
                    current,
                )
                return False
            region.store(key, value, current, self._clock())
            return True

    def invalidate(self, product_id: Hashable) -> int:
        """
        상품 하나에 대한 쓰기가 커밋된 뒤 호출합니다.

        상품 ID로 주소 지정되는 모든 리전에서 해당 항목을 제거하고,
        목록/검색 리전은 통째로 비웁니다. 진행 중인 조회는 분리되어
        이후 요청은 새로 조회합니다.

        Returns:
            새 버전 번호 (이어지는 put의 version 인자로 사용)
        """
        with self._lock:
            version = self._product_versions.get(product_id, 0) + 1
            self._product_versions[product_id] = version
            for region in self._regions.values():
                if region.config.keyed_by_product:
                    region.discard(product_id)
                    self._inflight.pop((region.name, product_id), None)
                else:
                    self._clear_region(region)
        logger.debug("Invalidated cache for product %s (version %d)", product_id, version)
        return version

    def invalidate_listings(self) -> None:
        """목록/검색 리전만 통째로 비웁니다 (새 상품 생성 시)."""
        with self._lock:
            for region in self._regions.values():
                if not region.config.keyed_by_product:
                    self._clear_region(region)

    def _clear_region(self, region: CacheRegion) -> None:
        region.clear()
        for flight_key in [k for k in self._inflight if k[0] == region.name]:
            del self._inflight[flight_key]

    def peek(self, region_name: str, key: Hashable) -> Any:
        """통계나 LRU 순서를 바꾸지 않고 캐시된 값을 확인합니다. 없으면 None."""
        region = self._region(region_name)
        with self._lock:
            entry = region.peek(key, self._clock())
        return entry.value if entry is not None else None

    def clear(self) -> None:
        with self._lock:
            for region in self._regions.values():
                self._clear_region(region)

    def stats(self) -> dict[str, dict[str, int]]:
        """리전별 항목 수와 적중/미스 횟수"""
        with self._lock:
            return {
                name: {"size": len(region), "hits": region.hits, "misses": region.misses}
                for name, region in self._regions.items()
            }
