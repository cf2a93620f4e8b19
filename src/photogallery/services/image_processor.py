"""Image processing service for the photogallery application."""

import base64
import io
from collections.abc import Callable
from datetime import datetime

from PIL import Image, ImageOps, UnidentifiedImageError

from ..config import get_max_file_size
from ..error_handling import ImageProcessingError, ValidationError
from ..logging_config import get_logger, log_error, log_performance

logger = get_logger(__name__)

# Images this small are stored as-is
SKIP_COMPRESSION_MAX_BYTES = 1024 * 1024

PIL_FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "MPO": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


class ImageProcessor:
    """Service for validating, compressing and previewing images."""

    ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

    def __init__(self, max_file_size: int | None = None) -> None:
        self.max_file_size = max_file_size or get_max_file_size()

    def detect_mime_type(self, image_data: bytes) -> str | None:
        """
        Detect the MIME type from the image bytes.

        Returns:
            str | None: MIME type, or None when Pillow cannot identify the data
        """
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                return PIL_FORMAT_MIME_TYPES.get(image.format or "", f"image/{(image.format or '').lower()}")
        except (UnidentifiedImageError, OSError):
            return None

    def validate_file(self, image_data: bytes, filename: str, mime_type: str | None = None) -> str:
        """
        Validate an upload candidate.

        Args:
            image_data: Raw file bytes
            filename: Name of the file (used in messages)
            mime_type: Type reported by the client; detected from the bytes when missing

        Returns:
            str: The accepted MIME type

        Raises:
            ValidationError: If the file is not an image, is too large, or has an unsupported type
        """
        mime_type = (mime_type or self.detect_mime_type(image_data) or "").lower()

        if not mime_type.startswith("image/"):
            raise ValidationError(
                f"File '{filename}' is not an image (type: {mime_type or 'unknown'})",
                code="not_an_image",
                user_message="Please choose an image file (JPG, PNG, GIF, WebP).",
                details={"filename": filename, "mime_type": mime_type},
            )

        file_size = len(image_data)
        if file_size > self.max_file_size:
            max_size_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                f"File '{filename}' is too large ({file_size / (1024 * 1024):.1f}MB). "
                f"Maximum size: {max_size_mb:.0f}MB",
                code="file_too_large",
                user_message=f"Images cannot be larger than {max_size_mb:.0f}MB.",
                details={"filename": filename, "file_size": file_size, "max_size": self.max_file_size},
            )

        if mime_type not in self.ALLOWED_MIME_TYPES:
            raise ValidationError(
                f"Unsupported image type '{mime_type}' for file '{filename}'",
                code="unsupported_format",
                user_message="Unsupported image format. Please use JPG, PNG, GIF or WebP.",
                details={"filename": filename, "mime_type": mime_type, "allowed": list(self.ALLOWED_MIME_TYPES)},
            )

        logger.debug("file_validated", filename=filename, mime_type=mime_type, file_size=file_size)
        return mime_type

    def compress_image(
        self,
        image_data: bytes,
        max_width: int = 800,
        quality: int = 80,
        on_progress: Callable[[int], None] | None = None,
    ) -> bytes:
        """
        Downscale and re-encode an image as JPEG.

        Images whose sides both fit in ``max_width`` and that are smaller than
        1 MiB are returned unchanged. Otherwise the longer side is scaled down
        to ``max_width`` and the result is flattened onto white.

        Args:
            image_data: Raw image bytes
            max_width: Maximum length of the longer side in pixels
            quality: JPEG quality (1-100)
            on_progress: Called with 10, 20, 60 and 100

        Returns:
            bytes: Compressed JPEG bytes (or the input when skipped)

        Raises:
            ImageProcessingError: If the image cannot be decoded or encoded
        """
        start_time = datetime.now()

        def report(value: int) -> None:
            if on_progress:
                on_progress(value)

        report(10)
        try:
            with Image.open(io.BytesIO(image_data)) as opened:
                image = ImageOps.exif_transpose(opened)
                report(20)

                width, height = image.size
                if width <= max_width and height <= max_width and len(image_data) < SKIP_COMPRESSION_MAX_BYTES:
                    logger.debug("compression_skipped", width=width, height=height, file_size=len(image_data))
                    report(100)
                    return image_data

                target_size = self._calculate_target_size((width, height), max_width)
                resized = image.resize(target_size, Image.Resampling.LANCZOS) if target_size != image.size else image

                background = Image.new("RGB", resized.size, (255, 255, 255))
                if resized.mode in ("RGBA", "LA") or (resized.mode == "P" and "transparency" in resized.info):
                    rgba = resized.convert("RGBA")
                    background.paste(rgba, mask=rgba.getchannel("A"))
                else:
                    background.paste(resized.convert("RGB"))
                report(60)

                buffer = io.BytesIO()
                background.save(buffer, format="JPEG", quality=quality, optimize=True)
                compressed = buffer.getvalue()

        except (UnidentifiedImageError, OSError, ValueError) as e:
            log_error(e, {"operation": "compress_image", "file_size": len(image_data)})
            raise ImageProcessingError(
                f"Failed to compress image: {e}",
                code="compression_failed",
                details={"file_size": len(image_data), "max_width": max_width, "quality": quality},
                original_exception=e,
            ) from e

        duration = (datetime.now() - start_time).total_seconds()
        log_performance(
            "compress_image",
            duration,
            original_size=(width, height),
            target_size=target_size,
            original_file_size=len(image_data),
            compressed_file_size=len(compressed),
            quality=quality,
        )
        report(100)
        return compressed

    def _calculate_target_size(self, original_size: tuple[int, int], max_width: int) -> tuple[int, int]:
        """Scale the longer side down to max_width, preserving the aspect ratio. Never upscales."""
        width, height = original_size
        if width > height:
            if width > max_width:
                return max_width, max(1, round(height * max_width / width))
        elif height > max_width:
            return max(1, round(width * max_width / height)), max_width
        return width, height

    def generate_preview(self, image_data: bytes, mime_type: str) -> str:
        """Encode the file as a ``data:`` URL for immediate display."""
        encoded = base64.b64encode(image_data).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"


_image_processor: ImageProcessor | None = None


def get_image_processor() -> ImageProcessor:
    """
    Get the global image processor instance.

    Returns:
        ImageProcessor: Global image processor instance
    """
    global _image_processor
    if _image_processor is None:
        _image_processor = ImageProcessor()
    return _image_processor
