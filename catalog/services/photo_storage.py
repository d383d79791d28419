"""
상품 사진 저장소 (PhotoBlobStore)

상품 레코드 저장소와 별개로 장애가 나는 바이너리 저장소입니다.

- 업로드는 기존 키를 덮어쓰지 않습니다. 호출자는 사진 세대마다 새 키를 만들어야 합니다.
- 존재하지 않는 경로 삭제는 오류가 아닙니다 (멱등).
- 전송 오류는 StorageFailureException으로, 없는 사진 조회는
  PhotoNotFoundException으로 변환합니다.
"""

import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path

from azure.core.exceptions import (
    AzureError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.storage.blob import BlobServiceClient, ContentSettings

from catalog.core.config import Settings
from catalog.core.exceptions import PhotoNotFoundException, StorageFailureException

logger = logging.getLogger(__name__)

DEFAULT_PHOTO_EXTENSION = "jpg"


def photo_extension(filename: str | None) -> str:
    """
    클라이언트 파일명에서 확장자를 추출합니다.

    파일명이 없거나 "."이 없으면 jpg를 사용합니다.

    >>> photo_extension("cover.final.PNG")
    'PNG'
    >>> photo_extension("cover")
    'jpg'
    """
    if not filename or "." not in filename:
        return DEFAULT_PHOTO_EXTENSION
    extension = filename.rsplit(".", 1)[1]
    return extension or DEFAULT_PHOTO_EXTENSION


def photo_key(product_id: str, timestamp_ms: int, extension: str) -> str:
    """(상품 ID, 타임스탬프, 확장자)로 저장 키를 만듭니다."""
    return f"product_{product_id}_{timestamp_ms}.{extension}"


def media_type_for(path: str) -> str:
    media_type, _ = mimetypes.guess_type(path)
    return media_type or "application/octet-stream"


class PhotoStorage(ABC):
    """사진 바이너리 저장소 인터페이스"""

    @abstractmethod
    def upload(self, content: bytes, key: str) -> str:
        """
        새 키로 사진을 저장하고 저장 경로를 반환합니다.

        Raises:
            StorageFailureException: 전송 오류 또는 키가 이미 존재하는 경우
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """
        사진을 삭제합니다. 없는 경로는 무시합니다.

        Raises:
            StorageFailureException: 전송 오류
        """

    @abstractmethod
    def fetch(self, path: str) -> bytes:
        """
        사진 내용을 읽습니다.

        Raises:
            PhotoNotFoundException: 경로에 사진이 없는 경우
            StorageFailureException: 전송 오류
        """


class LocalPhotoStorage(PhotoStorage):
    """로컬 디렉터리에 사진을 파일로 저장"""

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, operation: str, path: str) -> Path:
        target = (self._root / path).resolve()
        if self._root not in target.parents:
            raise StorageFailureException(operation, path, "path escapes storage root")
        return target

    def upload(self, content: bytes, key: str) -> str:
        target = self._resolve("upload", key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # "x" 모드: 파일이 이미 있으면 실패 (덮어쓰기 금지)
            with open(target, "xb") as f:
                f.write(content)
        except FileExistsError:
            raise StorageFailureException("upload", key, "key already exists")
        except OSError as e:
            target.unlink(missing_ok=True)
            raise StorageFailureException("upload", key, str(e)) from e
        return key

    def delete(self, path: str) -> None:
        target = self._resolve("delete", path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailureException("delete", path, str(e)) from e

    def fetch(self, path: str) -> bytes:
        target = self._resolve("fetch", path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise PhotoNotFoundException(path=path)
        except OSError as e:
            raise StorageFailureException("fetch", path, str(e)) from e


class AzureBlobPhotoStorage(PhotoStorage):
    """Azure Blob Storage 컨테이너에 사진을 저장"""

    def __init__(self, service_client: BlobServiceClient, container_name: str):
        self._container_name = container_name
        self._container = service_client.get_container_client(container_name)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AzureBlobPhotoStorage":
        service_client = BlobServiceClient.from_connection_string(
            settings.azure_storage_connection_string
        )
        storage = cls(service_client, settings.azure_storage_container_name)
        storage.ensure_container()
        return storage

    def ensure_container(self) -> None:
        try:
            self._container.create_container()
            logger.info("Created photo container '%s'", self._container_name)
        except ResourceExistsError:
            pass
        except AzureError as e:
            logger.warning(
                "Could not verify photo container '%s': %s", self._container_name, e
            )

    def upload(self, content: bytes, key: str) -> str:
        try:
            self._container.upload_blob(
                name=key,
                data=content,
                overwrite=False,
                content_settings=ContentSettings(content_type=media_type_for(key)),
            )
        except ResourceExistsError:
            raise StorageFailureException("upload", key, "key already exists")
        except AzureError as e:
            raise StorageFailureException("upload", key, str(e)) from e
        return key

    def delete(self, path: str) -> None:
        try:
            self._container.delete_blob(path)
        except ResourceNotFoundError:
            logger.debug("Photo blob '%s' already absent", path)
        except AzureError as e:
            raise StorageFailureException("delete", path, str(e)) from e

    def fetch(self, path: str) -> bytes:
        try:
            return self._container.download_blob(path).readall()
        except ResourceNotFoundError:
            raise PhotoNotFoundException(path=path)
        except AzureError as e:
            raise StorageFailureException("fetch", path, str(e)) from e


def create_photo_storage(settings: Settings) -> PhotoStorage:
    """설정의 storage_backend에 맞는 사진 저장소를 생성합니다."""
    if settings.storage_backend == "azure":
        return AzureBlobPhotoStorage.from_settings(settings)
    return LocalPhotoStorage(settings.storage_local_root)
