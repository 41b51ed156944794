from functools import lru_cache
from io import BytesIO
from typing import NamedTuple

import cloudinary
import cloudinary.uploader

import config
from services.errors import UpstreamUnavailable
from utils.logging import get_logger

logger = get_logger(__name__)

cloudinary.config(
    cloud_name=config.CLOUDINARY_CLOUD_NAME,
    api_key=config.CLOUDINARY_API_KEY,
    api_secret=config.CLOUDINARY_API_SECRET,
    secure=True,
)


class UploadedImage(NamedTuple):
    url: str
    path: str


# Complaint and proof photos are stored under complaints/{key}
class CloudinaryImageStorage:
    def upload(self, data: bytes, key: str) -> UploadedImage:
        try:
            result = cloudinary.uploader.upload(
                BytesIO(data),
                folder=f"complaints/{key}",
                resource_type="image",
                transformation=[
                    {"width": 1920, "height": 1920, "crop": "limit"},
                    {"quality": "auto", "fetch_format": "auto"},
                ],
            )
        except Exception as exc:
            logger.warning("Image upload to complaints/%s failed: %s", key, exc)
            raise UpstreamUnavailable("Image upload failed") from exc
        return UploadedImage(result["secure_url"], result["public_id"])

    def delete(self, path: str) -> None:
        try:
            result = cloudinary.uploader.destroy(path)
        except Exception as exc:
            logger.warning("Could not delete image %s: %s", path, exc)
            raise UpstreamUnavailable("Image delete failed") from exc
        if result.get("result") != "ok":
            logger.warning("Cloudinary did not delete %s: %s", path, result)


@lru_cache(maxsize=1)
def get_image_storage() -> CloudinaryImageStorage:
    return CloudinaryImageStorage()
