import cloudinary
import cloudinary.uploader
from core.config import settings
import logging
from typing import Optional, Dict, Any
from urllib.parse import urlparse
import base64
import re

logger = logging.getLogger(__name__)

# Configure Cloudinary
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True
)

_VERSION_SEGMENT = re.compile(r"^v\d+$")


def public_id_from_url(url: str) -> Optional[str]:
    """
    Recover the public ID from a delivery URL such as
    https://res.cloudinary.com/demo/image/upload/v1712/reviews/abc.jpg -> reviews/abc
    """
    path = urlparse(url).path
    parts = [p for p in path.split("/") if p]
    if "upload" not in parts:
        return None

    rest = parts[parts.index("upload") + 1:]
    if rest and _VERSION_SEGMENT.match(rest[0]):
        rest = rest[1:]
    if not rest:
        return None

    public_id = "/".join(rest)
    return public_id.rsplit(".", 1)[0] if "." in rest[-1] else public_id


class CloudinaryService:
    @staticmethod
    async def upload_image(file_data: bytes, folder: str, public_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Upload an image to Cloudinary

        Args:
            file_data: The image file data
            folder: The folder to upload to
            public_id: Optional public ID for the image

        Returns:
            Dict containing the public ID and the public URL
        """
        try:
            base64_data = base64.b64encode(file_data).decode("utf-8")

            upload_result = cloudinary.uploader.upload(
                f"data:image/png;base64,{base64_data}",
                folder=folder,
                public_id=public_id,
                overwrite=True,
                resource_type="image"
            )

            return {
                "public_id": upload_result["public_id"],
                "url": upload_result["secure_url"],
            }
        except Exception as e:
            logger.error(f"Error uploading image to Cloudinary: {e}")
            raise e

    @staticmethod
    async def delete_image(url: str) -> bool:
        """
        Delete an image from Cloudinary by its public URL

        Returns:
            True if successful, False otherwise
        """
        public_id = public_id_from_url(url)
        if not public_id:
            logger.warning(f"Not a Cloudinary URL, nothing to delete: {url}")
            return False

        try:
            result = cloudinary.uploader.destroy(public_id)
            return result.get("result") == "ok"
        except Exception as e:
            logger.error(f"Error deleting image from Cloudinary: {e}")
            return False


cloudinary_service = CloudinaryService()
