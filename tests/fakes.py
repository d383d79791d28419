"""
테스트용 인메모리 협력 객체

HTTP 클라이언트, 사진 저장소와 같은 인터페이스를 구현하며
실패나 지연을 강제로 발생시키는 스위치를 제공합니다.
"""

import threading
import time
import uuid
from datetime import datetime, timedelta

from catalog.core.exceptions import CollaboratorException, StorageFailureException
from catalog.services.collaborators import Comment, CommentClient, LikeClient
from catalog.services.photo_storage import PhotoStorage


class FakeLikeClient(LikeClient):
    """좋아요 서비스 대역 (호출 순서를 calls에 기록)"""

    def __init__(
        self,
        counts: dict[str, int] | None = None,
        liked: set[tuple[str, str]] | None = None,
    ) -> None:
        self.counts = counts or {}
        self.liked = liked or set()
        self.fail = False
        self.delay = 0.0
        self.calls: list[str] = []

    def _maybe_fail(self) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise CollaboratorException("like", "service unavailable")

    def get_likes_count(self, entity_id: str, entity_type: str) -> int:
        self.calls.append("get_likes_count")
        self._maybe_fail()
        return self.counts.get(entity_id, 0)

    def check_if_liked(self, entity_id: str, entity_type: str, user_id: str) -> bool:
        self.calls.append("check_if_liked")
        self._maybe_fail()
        return (entity_id, user_id) in self.liked


class FakeCommentClient(CommentClient):
    """댓글 서비스 대역"""

    def __init__(self) -> None:
        self._comments: dict[str, list[Comment]] = {}
        self.fail = False
        self.delay = 0.0
        self.calls: list[str] = []

    def seed(self, entity_id: str, count: int) -> list[Comment]:
        """1분 간격으로 댓글 count개를 추가하고 최신순 목록을 반환"""
        base = datetime(2024, 1, 1, 12, 0, 0)
        for i in range(count):
            comment = Comment(
                id=f"c{i}",
                entity_id=entity_id,
                entity_type="PRODUCT",
                user_id=f"user-{i}",
                content=f"comment {i}",
                created_at=base + timedelta(minutes=i),
            )
            self._comments.setdefault(entity_id, []).insert(0, comment)
        return list(self._comments[entity_id])

    def get_comments_for_entity(self, entity_id: str, entity_type: str) -> list[Comment]:
        self.calls.append("get_comments_for_entity")
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise CollaboratorException("comment", "service unavailable")
        return list(self._comments.get(entity_id, []))

    def add_comment(
        self, entity_id: str, entity_type: str, user_id: str, content: str
    ) -> Comment:
        self.calls.append("add_comment")
        if self.fail:
            raise CollaboratorException("comment", "service unavailable")
        comment = Comment(
            id=str(uuid.uuid4()),
            entity_id=entity_id,
            entity_type=entity_type,
            user_id=user_id,
            content=content,
            created_at=datetime.now(),
        )
        self._comments.setdefault(entity_id, []).insert(0, comment)
        return comment


class FlakyPhotoStorage(PhotoStorage):
    """실제 저장소에 위임하되, 지정한 작업을 실패시키거나 대기시키는 저장소"""

    def __init__(self, inner: PhotoStorage) -> None:
        self.inner = inner
        self.fail_upload = False
        self.fail_delete = False
        self.upload_gate: threading.Event | None = None
        self.fetch_gate: threading.Event | None = None
        self.fetch_started = threading.Event()
        self.uploads: list[str] = []
        self.deletes: list[str] = []

    def upload(self, content: bytes, key: str) -> str:
        if self.upload_gate is not None:
            self.upload_gate.wait(timeout=5)
        if self.fail_upload:
            raise StorageFailureException("upload", key, "connection reset")
        self.uploads.append(key)
        return self.inner.upload(content, key)

    def delete(self, path: str) -> None:
        if self.fail_delete:
            raise StorageFailureException("delete", path, "connection reset")
        self.deletes.append(path)
        self.inner.delete(path)

    def fetch(self, path: str) -> bytes:
        # fetch_gate는 첫 조회 한 번만 멈춤
        gate, self.fetch_gate = self.fetch_gate, None
        if gate is not None:
            self.fetch_started.set()
            gate.wait(timeout=5)
        return self.inner.fetch(path)
