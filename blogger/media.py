import io
import logging
from dataclasses import dataclass

import cloudinary
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool

from blogger.config import settings
from blogger.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    """An image received from a client, not yet sent to the host."""

    filename: str
    data: bytes


@dataclass(frozen=True)
class HostedImage:
    url: str
    asset_id: str


class MediaHost:
    """
    Thin async wrapper around the Cloudinary upload API.

    The Cloudinary SDK is blocking, so every call is pushed onto
    Starlette's threadpool.  ``upload`` raises ``UpstreamFailure`` when the
    host rejects or cannot be reached; ``delete`` never raises and reports
    success as a boolean so callers can treat it as best-effort cleanup.
    """

    def __init__(self) -> None:
        self._configured = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def configure(self) -> None:
        """Apply credentials from settings.  Called once at application startup."""
        missing = [
            name
            for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
            if not getattr(settings, name)
        ]
        if missing:
            logger.warning(
                "Missing media host settings: %s; image uploads will fail", ", ".join(missing)
            )
            return

        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )
        self._configured = True
        logger.info("Media host configured for cloud %r", settings.CLOUDINARY_CLOUD_NAME)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upload(self, data: bytes, filename: str) -> HostedImage:
        if not self._configured:
            raise UpstreamFailure("Image hosting is not configured")
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                io.BytesIO(data),
                folder=settings.MEDIA_FOLDER,
                resource_type="image",
            )
        except Exception as exc:
            logger.error("Image upload failed for %r: %s", filename, exc)
            raise UpstreamFailure("Error uploading image") from exc

        logger.info("Uploaded %r as %s", filename, result["public_id"])
        return HostedImage(url=result["secure_url"], asset_id=result["public_id"])

    async def delete(self, asset_id: str) -> bool:
        if not self._configured:
            logger.warning("Skipping deletion of %s: image hosting is not configured", asset_id)
            return False
        try:
            result = await run_in_threadpool(cloudinary.uploader.destroy, asset_id)
        except Exception as exc:
            logger.warning("Hosted image %s could not be deleted: %s", asset_id, exc)
            return False
        return result.get("result") == "ok"


# Module-level singleton shared across all request handlers.
media_host = MediaHost()


def get_media_host() -> MediaHost:
    """FastAPI dependency; overridden in tests with an in-memory fake."""
    return media_host
