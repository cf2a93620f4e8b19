"""
Unit tests for the upload manager.
"""

import pytest

from photogallery.error_handling import AuthenticationError, StorageError, UploadError, ValidationError
from photogallery.services.auth import UserInfo
from photogallery.services.image_processor import ImageProcessor
from photogallery.services.upload_manager import (
    PhotoUploadManager,
    UploadFile,
    UploadOptions,
    UploadStatus,
)

USER = UserInfo(user_id="user-1", email="hana@example.com", username="hana")


class TestUploadSingleFile:
    """Single file pipeline."""

    @pytest.fixture(autouse=True)
    def setup_manager(self, mock_storage):
        self.storage = mock_storage
        self.manager = PhotoUploadManager(
            storage_service=mock_storage,
            image_processor=ImageProcessor(),
            queue_retention_seconds=0,
        )
        yield
        self.manager.shutdown()

    def test_upload_small_image(self, make_image):
        """Small images keep their type and go through the signed URL."""
        updates = []
        completed = []
        options = UploadOptions(category="daily", on_progress=updates.append, on_complete=completed.append)

        data = make_image(image_format="PNG")

        result = self.manager.upload_single_file(USER, data, "cat.png", options)

        assert result.storage_path == "user-1/daily/1700000000000-abc123.png"
        assert result.url == "https://storage.googleapis.com/test-photos-bucket/user-1/daily/1700000000000-abc123.png"
        assert completed == [result]
        self.storage.create_signed_upload_url.assert_called_once_with(result.storage_path, "image/png", expiration=7200)
        signed_url, sent, content_type = self.storage.upload_via_signed_url.call_args.args[:3]
        assert signed_url.endswith("X-Goog-Signature=sig")
        assert (sent, content_type) == (data, "image/png")
        self.storage.upload_photo.assert_not_called()

        statuses = [update.status for update in updates]
        assert statuses[0] is UploadStatus.PENDING
        assert UploadStatus.UPLOADING in statuses
        assert UploadStatus.PROCESSING in statuses
        assert statuses[-1] is UploadStatus.COMPLETED
        progress = [update.progress for update in updates]
        assert progress == sorted(progress)
        assert progress[-1] == 100.0
        assert updates[-1].preview.startswith("data:image/png;base64,")

    def test_large_image_is_stored_as_jpeg(self, make_image):
        result = self.manager.upload_single_file(
            USER, make_image(2000, 1000, image_format="PNG"), "wide.png", UploadOptions(category="travel")
        )

        assert result.storage_path.endswith(".jpg")
        assert self.storage.upload_via_signed_url.call_args.args[2] == "image/jpeg"

    def test_falls_back_to_sdk_upload(self, make_image):
        """A failed direct upload is retried with the storage SDK."""
        self.storage.upload_via_signed_url.side_effect = StorageError("denied", code="direct_upload_failed")

        result = self.manager.upload_single_file(USER, make_image(), "a.jpg", UploadOptions(category="selfie"))

        self.storage.upload_photo.assert_called_once()
        args, kwargs = self.storage.upload_photo.call_args
        assert args[0] == result.storage_path
        assert args[2] == "image/jpeg"
        assert kwargs["upsert"] is False

    def test_sdk_only(self, make_image, mock_storage):
        manager = PhotoUploadManager(storage_service=mock_storage, use_signed_url=False, queue_retention_seconds=0)

        manager.upload_single_file(USER, make_image(), "a.jpg", UploadOptions(category="daily"))

        mock_storage.create_signed_upload_url.assert_not_called()
        mock_storage.upload_photo.assert_called_once()

    def test_invalid_file_is_rejected_before_queueing(self):
        with pytest.raises(ValidationError):
            self.manager.upload_single_file(USER, b"text", "notes.txt", UploadOptions(category="daily"))

        assert self.manager.get_upload_queue() == []

    def test_invalid_category(self, make_image):
        with pytest.raises(ValidationError) as exc_info:
            self.manager.upload_single_file(USER, make_image(), "a.jpg", UploadOptions(category="food"))
        assert exc_info.value.code == "invalid_category"

    def test_requires_user(self, make_image):
        """Uploads without a user fail and the entry is marked as failed."""
        errors = []

        with pytest.raises(AuthenticationError) as exc_info:
            self.manager.upload_single_file(
                None, make_image(), "a.jpg", UploadOptions(category="daily", on_error=errors.append)
            )

        assert exc_info.value.code == "upload_requires_login"
        assert errors == ["Please sign in before uploading photos."]
        [entry] = self.manager.get_upload_queue()
        assert entry.status is UploadStatus.ERROR

    def test_storage_failure(self, make_image):
        self.storage.upload_via_signed_url.side_effect = StorageError("denied")
        self.storage.upload_photo.side_effect = StorageError("also denied")

        with pytest.raises(StorageError):
            self.manager.upload_single_file(USER, make_image(), "a.jpg", UploadOptions(category="daily"))

        [entry] = self.manager.get_upload_queue()
        assert entry.status is UploadStatus.ERROR

    def test_cancel_upload(self, make_image):
        """Cancelling an uploading entry stops the upload before transfer."""

        def on_progress(update):
            if update.status is UploadStatus.UPLOADING:
                assert self.manager.cancel_upload(update.id) is True

        with pytest.raises(UploadError) as exc_info:
            self.manager.upload_single_file(
                USER, make_image(), "a.jpg", UploadOptions(category="daily", on_progress=on_progress)
            )

        assert exc_info.value.code == "upload_cancelled"
        self.storage.upload_via_signed_url.assert_not_called()
        [entry] = self.manager.get_upload_queue()
        assert entry.error == "Upload cancelled by user"

    def test_cancel_right_before_processing_is_kept(self, make_image):
        """A cancel arriving with the last compression update is never overwritten by the processing state."""
        updates = []

        def on_progress(update):
            updates.append(update)
            if update.status is UploadStatus.UPLOADING and update.progress == pytest.approx(40.0):
                self.manager.cancel_upload(update.id)

        with pytest.raises(UploadError) as exc_info:
            self.manager.upload_single_file(
                USER, make_image(), "a.jpg", UploadOptions(category="daily", on_progress=on_progress)
            )

        assert exc_info.value.code == "upload_cancelled"
        assert UploadStatus.PROCESSING not in [update.status for update in updates]
        [entry] = self.manager.get_upload_queue()
        assert entry.status is UploadStatus.ERROR
        assert entry.error == "Upload cancelled by user"

    def test_cancel_unknown_upload(self):
        assert self.manager.cancel_upload("upload_missing") is False


class TestQueueRetention:
    def test_completed_entries_are_retained(self, make_image, mock_storage):
        manager = PhotoUploadManager(storage_service=mock_storage, queue_retention_seconds=60)
        try:
            manager.upload_single_file(USER, make_image(), "a.jpg", UploadOptions(category="daily"))

            [entry] = manager.get_upload_queue()
            assert entry.status is UploadStatus.COMPLETED
            assert entry.progress == 100.0
            assert manager.clear_completed() == 1
            assert manager.get_upload_queue() == []
        finally:
            manager.shutdown()


class TestUploadMultipleFiles:
    @pytest.fixture(autouse=True)
    def setup_manager(self, mock_storage):
        self.manager = PhotoUploadManager(
            storage_service=mock_storage, max_concurrent_uploads=2, queue_retention_seconds=0
        )

    def test_results_keep_file_order(self, make_image):
        """Aggregated progress ends at 100."""
        progress = []
        files = [UploadFile(f"photo{i}.jpg", make_image(color=(i, i, i))) for i in range(3)]

        results = self.manager.upload_multiple_files(
            USER, files, UploadOptions(category="festival", on_progress=lambda update: progress.append(update.progress))
        )

        assert len(results) == 3
        assert all(result.storage_path.startswith("user-1/festival/") for result in results)
        assert max(progress) == 100.0
        assert all(0 <= value <= 100 for value in progress)

    def test_aggregate_progress_per_file(self, make_image):
        """Each file reports (index / total) * 100 + its own progress / total."""
        manager = PhotoUploadManager(
            storage_service=self.manager.storage, max_concurrent_uploads=3, queue_retention_seconds=0
        )
        updates = []
        files = [UploadFile(f"photo{i}.jpg", make_image(color=(i, i, i))) for i in range(4)]

        manager.upload_multiple_files(USER, files, UploadOptions(category="daily", on_progress=updates.append))

        for index in range(4):
            own = [update for update in updates if update.filename == f"photo{index}.jpg"]
            by_status = {}
            for update in own:
                by_status.setdefault(update.status, update.progress)
            assert by_status[UploadStatus.PENDING] == pytest.approx(index * 25)
            assert by_status[UploadStatus.PROCESSING] == pytest.approx(index * 25 + 10)
            assert by_status[UploadStatus.COMPLETED] == pytest.approx((index + 1) * 25)
            assert all(index * 25 <= update.progress <= (index + 1) * 25 for update in own)

        positions = [update.filename for update in updates]
        first_of_second_batch = positions.index("photo3.jpg")
        last_of_first_batch = max(i for i, name in enumerate(positions) if name != "photo3.jpg")
        assert last_of_first_batch < first_of_second_batch

    def test_partial_failure(self, make_image):
        files = [
            UploadFile("good.jpg", make_image()),
            UploadFile("bad.txt", b"plain text"),
            UploadFile("also-good.jpg", make_image()),
        ]

        with pytest.raises(UploadError) as exc_info:
            self.manager.upload_multiple_files(USER, files, UploadOptions(category="daily"))

        error = exc_info.value
        assert error.code == "batch_upload_failed"
        assert len(error.details["failed"]) == 1
        assert error.details["failed"][0].startswith("bad.txt: ")
        assert len(error.details["uploaded"]) == 2
