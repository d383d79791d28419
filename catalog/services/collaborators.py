"""
협력 서비스 클라이언트

상품 상세 조회에 필요한 좋아요 서비스와 댓글 서비스의 계약과
HTTP 구현을 정의합니다. 두 서비스의 내부 로직은 이 저장소의 범위가 아닙니다.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import requests

from catalog.core.config import Settings
from catalog.core.exceptions import CollaboratorException

logger = logging.getLogger(__name__)

PRODUCT_ENTITY_TYPE = "PRODUCT"


@dataclass(frozen=True)
class Comment:
    """댓글 서비스가 반환하는 댓글"""

    id: str
    entity_id: str
    entity_type: str
    user_id: str
    content: str
    created_at: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "Comment":
        return cls(
            id=str(data["id"]),
            entity_id=str(data["entity_id"]),
            entity_type=data["entity_type"],
            user_id=str(data["user_id"]),
            content=data["content"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class LikeClient(ABC):
    """좋아요 서비스 계약"""

    @abstractmethod
    def get_likes_count(self, entity_id: str, entity_type: str) -> int:
        ...

    @abstractmethod
    def check_if_liked(self, entity_id: str, entity_type: str, user_id: str) -> bool:
        ...


class CommentClient(ABC):
    """댓글 서비스 계약"""

    @abstractmethod
    def get_comments_for_entity(self, entity_id: str, entity_type: str) -> list[Comment]:
        """대상의 댓글을 최신순으로 반환합니다."""

    @abstractmethod
    def add_comment(
        self, entity_id: str, entity_type: str, user_id: str, content: str
    ) -> Comment:
        ...


class _HttpClient:
    """requests.Session 기반 JSON 호출 공통 처리"""

    service_name = "collaborator"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise CollaboratorException(self.service_name, str(e)) from e
        except ValueError as e:
            # 응답 본문이 JSON이 아님
            raise CollaboratorException(self.service_name, f"invalid response: {e}") from e


class HttpLikeClient(_HttpClient, LikeClient):
    """좋아요 서비스 HTTP 클라이언트"""

    service_name = "like"

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpLikeClient":
        return cls(settings.like_service_url, settings.collaborator_timeout_seconds)

    def get_likes_count(self, entity_id: str, entity_type: str) -> int:
        data = self._request("GET", f"/api/likes/{entity_type}/{entity_id}/count")
        return int(data["count"])

    def check_if_liked(self, entity_id: str, entity_type: str, user_id: str) -> bool:
        data = self._request(
            "GET", f"/api/likes/{entity_type}/{entity_id}/users/{user_id}"
        )
        return bool(data["liked"])


class HttpCommentClient(_HttpClient, CommentClient):
    """댓글 서비스 HTTP 클라이언트"""

    service_name = "comment"

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpCommentClient":
        return cls(settings.comment_service_url, settings.collaborator_timeout_seconds)

    def get_comments_for_entity(self, entity_id: str, entity_type: str) -> list[Comment]:
        data = self._request("GET", f"/api/comments/{entity_type}/{entity_id}")
        return [Comment.from_dict(item) for item in data]

    def add_comment(
        self, entity_id: str, entity_type: str, user_id: str, content: str
    ) -> Comment:
        data = self._request(
            "POST",
            f"/api/comments/{entity_type}/{entity_id}",
            json={"user_id": user_id, "content": content},
        )
        return Comment.from_dict(data)
