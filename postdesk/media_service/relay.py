"""
Media Upload Relay.

Forwards uploaded bytes to Cloudinary and hands back the hosted URL. The
file is never written to local disk.
"""

import io
import logging
from typing import Optional

import cloudinary
import cloudinary.uploader

from postdesk.errors import UploadFailed


class MediaRelay:
    """
    Thin wrapper over the Cloudinary upload API.

    Args:
        cloud_name, api_key, api_secret: Cloudinary account credentials.
        folder (str, optional): Cloudinary folder to upload into.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: Optional[str] = None):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )
        self.folder = folder

    def relay(self, data: bytes, filename: Optional[str] = None) -> str:
        """
        Upload a file and return its secure URL.

        Cloudinary detects whether the file is an image, video or raw asset
        (`resource_type="auto"`).

        Raises:
            UploadFailed: No bytes were provided or Cloudinary errored.
        """
        if not data:
            raise UploadFailed("No media provided")

        options = {"resource_type": "auto"}
        if self.folder:
            options["folder"] = self.folder
        if filename:
            options["filename_override"] = filename
            options["use_filename"] = True

        buffer = io.BytesIO(data)
        if filename:
            buffer.name = filename

        try:
            result = cloudinary.uploader.upload(buffer, **options)
        except Exception as e:
            logging.error(f"[Media] Cloudinary upload failed: {e}")
            raise UploadFailed("Media host rejected the upload") from e

        url = result.get("secure_url")
        if not url:
            raise UploadFailed("Media host returned no URL")

        logging.info(f"[Media] Uploaded {result.get('resource_type', '?')} -> {url}")
        return url
