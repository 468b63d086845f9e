"""
media/host.py -- Cloudinary-backed image host for cover art and profile images.

AssetHost is the only code that talks to Cloudinary. Credentials come from
Settings and are passed on every SDK call instead of through the global
cloudinary.config(), so two hosts with different accounts (or a test double)
can coexist in one process.

Failure policy:
  upload() -- one attempt; an SDK/network failure raises Unexpected (500).
              A disallowed file extension raises InvalidRequest (400) before
              anything is sent.
  delete() -- best-effort. Failures are logged and swallowed so a cleanup
              call can never mask the error that triggered it.

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import PurePath
from typing import BinaryIO

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.errors import InvalidRequest, Unexpected

logger = logging.getLogger("craterra.media")

ALLOWED_IMAGE_FORMATS: tuple[str, ...] = ("jpg", "jpeg", "png", "gif", "webp")


@dataclass(frozen=True)
class UploadedAsset:
    """Where an uploaded image lives: public URL plus the host's asset id."""

    url: str
    asset_id: str


def image_extension(filename: str | None) -> str:
    """Return the lower-cased extension of filename without the dot."""
    return PurePath(filename or "").suffix.lstrip(".").lower()


class AssetHost:
    """Upload and delete images on Cloudinary.

    Usage:
        host = AssetHost(cloud_name, api_key, api_secret, folder="craterra")
        asset = host.upload(fileobj, "cover.jpg")
        host.delete(asset.asset_id)
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "craterra") -> None:
        self.folder = folder
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
            "secure": True,
        }

    @property
    def configured(self) -> bool:
        return all(self._credentials[k] for k in ("cloud_name", "api_key", "api_secret"))

    def upload(self, fileobj: BinaryIO, filename: str | None) -> UploadedAsset:
        """Upload one image and return its URL and asset id."""
        ext = image_extension(filename)
        if ext not in ALLOWED_IMAGE_FORMATS:
            raise InvalidRequest(f"Unsupported image format. Allowed: {', '.join(ALLOWED_IMAGE_FORMATS)}")
        if not self.configured:
            raise Unexpected("Image hosting is not configured")
        try:
            result = cloudinary.uploader.upload(
                fileobj,
                folder=self.folder,
                resource_type="image",
                allowed_formats=list(ALLOWED_IMAGE_FORMATS),
                overwrite=False,
                **self._credentials,
            )
        except CloudinaryError as exc:
            logger.error("Cloudinary upload failed for %s: %s", filename, exc)
            raise Unexpected("Image upload failed") from exc
        logger.info("Uploaded image %s", result["public_id"])
        return UploadedAsset(url=result["secure_url"], asset_id=result["public_id"])

    def delete(self, asset_id: str | None) -> None:
        """Delete an image by asset id. Never raises."""
        if not asset_id:
            return
        try:
            cloudinary.uploader.destroy(asset_id, invalidate=True, resource_type="image", **self._credentials)
        except Exception as exc:  # noqa: BLE001 -- cleanup must not mask the caller's error
            logger.warning("Could not delete image %s: %s", asset_id, exc)

    @contextmanager
    def discard_on_error(self, asset: UploadedAsset | None) -> Iterator[None]:
        """Delete asset if the wrapped block raises, then re-raise.

        Wrap the record write that follows an upload so a failed save does not
        leave an orphaned image behind:

            with host.discard_on_error(uploaded):
                store.create_album(album)
        """
        try:
            yield
        except BaseException:
            if asset is not None:
                logger.info("Discarding image %s after failed write", asset.asset_id)
                self.delete(asset.asset_id)
            raise
