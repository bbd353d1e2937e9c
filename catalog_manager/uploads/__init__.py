"""Media upload helpers (hosted URLs for product images and videos)."""

from .cloudinary import CloudinaryUploader, UploadError

__all__ = ['CloudinaryUploader', 'UploadError']
