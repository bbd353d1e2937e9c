"""
Cloudinary Uploader

Posts an image or video file to Cloudinary with an unsigned upload preset
and returns the hosted URL, which can then go into a product's image_url,
additional_image_urls or video_url.
"""

import logging
import os
from typing import BinaryIO, Optional, Union

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Upload rejected by Cloudinary or response without a URL."""


class CloudinaryUploader:
    """
    Usage:
        uploader = CloudinaryUploader(cloud_name="demo", upload_preset="unsigned_products")
        with open("mug.jpg", "rb") as f:
            url = uploader.upload_image(f, "mug.jpg", "image/jpeg")
    """

    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/{resource_type}/upload"

    def __init__(
        self,
        cloud_name: str,
        upload_preset: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 120,
    ):
        if not cloud_name or not upload_preset:
            raise ValueError("Cloudinary Cloud Name and Upload Preset are required.")
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "CloudinaryUploader":
        """Build from CLOUDINARY_CLOUD_NAME and CLOUDINARY_UPLOAD_PRESET."""
        load_dotenv(dotenv_path)
        return cls(
            cloud_name=os.environ.get("CLOUDINARY_CLOUD_NAME", ""),
            upload_preset=os.environ.get("CLOUDINARY_UPLOAD_PRESET", ""),
        )

    def upload_image(self, file: Union[bytes, BinaryIO], filename: str, content_type: str) -> str:
        if not content_type.startswith("image/"):
            raise ValueError("Invalid file type. Please upload an image.")
        return self._upload("image", file, filename, content_type)

    def upload_video(self, file: Union[bytes, BinaryIO], filename: str, content_type: str) -> str:
        if not content_type.startswith("video/"):
            raise ValueError("Invalid file type. Please upload a video.")
        return self._upload("video", file, filename, content_type)

    def _upload(self, resource_type: str, file, filename: str, content_type: str) -> str:
        url = self.UPLOAD_URL.format(cloud_name=self.cloud_name, resource_type=resource_type)
        logger.info('Uploading %s "%s" to Cloudinary cloud "%s"...', resource_type, filename, self.cloud_name)

        try:
            response = self.session.post(
                url,
                data={"upload_preset": self.upload_preset},
                files={"file": (filename, file, content_type)},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error('Failed to upload "%s": %s', filename, e)
            raise UploadError(f"Upload request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            logger.error("Cloudinary API Error %d: %s", response.status_code, (response.text or "")[:200])
            raise UploadError(message or f"Failed to upload {resource_type} to Cloudinary.")

        secure_url = data.get("secure_url") if isinstance(data, dict) else None
        if not secure_url:
            raise UploadError("Cloudinary API did not return a valid URL.")

        logger.info('Successfully uploaded "%s". URL: %s', filename, secure_url)
        return secure_url
