"""Tests for photo storage backends."""

from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import (
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
)

from catalog.core.exceptions import PhotoNotFoundException, StorageFailureException
from catalog.services.photo_storage import (
    AzureBlobPhotoStorage,
    LocalPhotoStorage,
    create_photo_storage,
    media_type_for,
    photo_extension,
    photo_key,
)


class TestPhotoKeys:
    """Test cases for photo key helpers."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("cover.png", "png"),
            ("archive.tar.gz", "gz"),
            ("cover", "jpg"),
            ("cover.", "jpg"),
            (None, "jpg"),
            ("", "jpg"),
        ],
    )
    def test_photo_extension(self, filename, expected):
        """Test: 파일명 확장자 추출 (없으면 jpg)"""
        assert photo_extension(filename) == expected

    def test_photo_key(self):
        """Test: product_<id>_<millis>.<ext> 형식"""
        assert photo_key("abc", 1700000000123, "png") == "product_abc_1700000000123.png"

    def test_media_type_for(self):
        """Test: 확장자로 미디어 타입 추정"""
        assert media_type_for("product_a_1.png") == "image/png"
        assert media_type_for("product_a_1.unknownext") == "application/octet-stream"


class TestLocalPhotoStorage:
    """Test cases for LocalPhotoStorage."""

    def test_upload_and_fetch(self, photo_storage):
        """Test: 업로드한 사진 조회"""
        path = photo_storage.upload(b"data", "product_a_1.jpg")

        assert path == "product_a_1.jpg"
        assert photo_storage.fetch(path) == b"data"

    def test_upload_does_not_overwrite(self, photo_storage):
        """Test: 이미 존재하는 키로 업로드하면 StorageFailureException, 기존 내용 유지"""
        photo_storage.upload(b"first", "product_a_1.jpg")

        with pytest.raises(StorageFailureException):
            photo_storage.upload(b"second", "product_a_1.jpg")

        assert photo_storage.fetch("product_a_1.jpg") == b"first"

    def test_delete_is_idempotent(self, photo_storage):
        """Test: 없는 경로 삭제는 오류가 아님"""
        photo_storage.upload(b"data", "product_a_1.jpg")

        photo_storage.delete("product_a_1.jpg")
        photo_storage.delete("product_a_1.jpg")

        with pytest.raises(PhotoNotFoundException):
            photo_storage.fetch("product_a_1.jpg")

    def test_fetch_missing(self, photo_storage):
        """Test: 없는 사진 조회는 PhotoNotFoundException"""
        with pytest.raises(PhotoNotFoundException) as exc_info:
            photo_storage.fetch("product_missing_1.jpg")

        assert exc_info.value.path == "product_missing_1.jpg"

    def test_path_outside_root_is_rejected(self, photo_storage):
        """Test: 저장소 루트를 벗어나는 경로 거부"""
        with pytest.raises(StorageFailureException):
            photo_storage.upload(b"data", "../escape.jpg")


class TestAzureBlobPhotoStorage:
    """Test cases for AzureBlobPhotoStorage (BlobServiceClient는 mock)."""

    @pytest.fixture
    def container(self):
        return MagicMock()

    @pytest.fixture
    def storage(self, container):
        service_client = MagicMock()
        service_client.get_container_client.return_value = container
        storage = AzureBlobPhotoStorage(service_client, "product-photos")
        service_client.get_container_client.assert_called_once_with("product-photos")
        return storage

    def test_upload_never_overwrites(self, storage, container):
        """Test: overwrite=False와 콘텐츠 타입으로 업로드"""
        path = storage.upload(b"data", "product_a_1.png")

        assert path == "product_a_1.png"
        kwargs = container.upload_blob.call_args.kwargs
        assert kwargs["name"] == "product_a_1.png"
        assert kwargs["data"] == b"data"
        assert kwargs["overwrite"] is False
        assert kwargs["content_settings"].content_type == "image/png"

    def test_upload_existing_key(self, storage, container):
        """Test: 이미 존재하는 blob은 StorageFailureException"""
        container.upload_blob.side_effect = ResourceExistsError("exists")

        with pytest.raises(StorageFailureException):
            storage.upload(b"data", "product_a_1.png")

    def test_upload_transport_error(self, storage, container):
        """Test: 전송 오류는 StorageFailureException"""
        container.upload_blob.side_effect = ServiceRequestError("connection reset")

        with pytest.raises(StorageFailureException) as exc_info:
            storage.upload(b"data", "product_a_1.png")

        assert exc_info.value.operation == "upload"

    def test_delete_missing_blob_is_ignored(self, storage, container):
        """Test: 없는 blob 삭제는 무시"""
        container.delete_blob.side_effect = ResourceNotFoundError("missing")

        storage.delete("product_a_1.png")

        container.delete_blob.assert_called_once_with("product_a_1.png")

    def test_delete_transport_error(self, storage, container):
        """Test: 삭제 중 전송 오류는 StorageFailureException"""
        container.delete_blob.side_effect = ServiceRequestError("timeout")

        with pytest.raises(StorageFailureException):
            storage.delete("product_a_1.png")

    def test_fetch(self, storage, container):
        """Test: blob 내용 조회"""
        container.download_blob.return_value.readall.return_value = b"data"

        assert storage.fetch("product_a_1.png") == b"data"
        container.download_blob.assert_called_once_with("product_a_1.png")

    def test_fetch_missing(self, storage, container):
        """Test: 없는 blob 조회는 PhotoNotFoundException"""
        container.download_blob.side_effect = ResourceNotFoundError("missing")

        with pytest.raises(PhotoNotFoundException):
            storage.fetch("product_a_1.png")

    def test_ensure_container_already_exists(self, storage, container):
        """Test: 컨테이너가 이미 있으면 그대로 사용"""
        container.create_container.side_effect = ResourceExistsError("exists")

        storage.ensure_container()

        container.create_container.assert_called_once()


class TestCreatePhotoStorage:
    """Test cases for create_photo_storage."""

    def test_local_backend(self, settings, tmp_path):
        """Test: storage_backend=local이면 LocalPhotoStorage"""
        local_settings = settings.model_copy(
            update={"storage_backend": "local", "storage_local_root": str(tmp_path)}
        )

        storage = create_photo_storage(local_settings)

        assert isinstance(storage, LocalPhotoStorage)
        assert storage.root == tmp_path.resolve()
