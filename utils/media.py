import logging
import shutil
from config import MEDIA_DIR, THUMBNAIL_QUALITY, THUMBNAIL_WIDTH
from core.errors import UploadFailure
from dataclasses import dataclass
from pathlib import Path
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

MEDIA_FOLDERS = {
    'photo': 'photos',
    'video': 'videos',
    'audio': 'audio',
    'thumbnail': 'thumbnails',
}


@dataclass
class UploadResult:
    file_url: str
    thumbnail_url: str | None = None


class MediaUploader:
    """Copy submitted media files into the trip media directory"""

    def __init__(self, media_dir: Path = MEDIA_DIR):
        self.media_dir = media_dir

    def destination(self, trip_id: str, media_id: str, kind: str, suffix: str) -> Path:
        folder = MEDIA_FOLDERS.get(kind)
        if folder is None:
            raise ValueError(f"Unknown media kind: {kind}")
        return self.media_dir / 'trips' / trip_id / folder / f"{media_id}{suffix.lower()}"

    def create_thumbnail(self, image_file: Path, trip_id: str, media_id: str) -> str | None:
        """
        Write a JPEG thumbnail at most THUMBNAIL_WIDTH pixels wide

        Returns:
            str | None: file URL of the thumbnail, None if the image could not be decoded
        """
        thumb_file = self.destination(trip_id, media_id, 'thumbnail', '.jpg')

        try:
            with Image.open(image_file) as img:
                img = ImageOps.exif_transpose(img)
                img.thumbnail((THUMBNAIL_WIDTH, img.height))
                thumb_file.parent.mkdir(parents=True, exist_ok=True)
                img.convert('RGB').save(thumb_file, 'JPEG', quality=THUMBNAIL_QUALITY)
        except Exception as e:
            logger.warning(f"Could not create thumbnail for {image_file.name}: {e}")
            return None

        return thumb_file.resolve().as_uri()

    def upload(self, source: Path, trip_id: str, media_id: str, kind: str = 'photo') -> UploadResult:
        """
        Store a media file under trips/<trip_id>/<kind folder>/<media_id><suffix>

        Photos also get a thumbnail under trips/<trip_id>/thumbnails/. A photo
        that cannot be decoded is still stored, without a thumbnail.

        Raises:
            UploadFailure: if the source is missing or the copy fails
        """
        if not source.is_file():
            raise UploadFailure(f"Media file not found: {source}")

        dest_file = self.destination(trip_id, media_id, kind, source.suffix)

        try:
            dest_file.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest_file)
        except OSError as e:
            raise UploadFailure(f"Could not store {source.name}: {e}") from e

        logger.info(f"Stored: {source.name} -> {dest_file} ({dest_file.stat().st_size} bytes)")

        thumbnail_url = self.create_thumbnail(dest_file, trip_id, media_id) if kind == 'photo' else None
        return UploadResult(file_url=dest_file.resolve().as_uri(), thumbnail_url=thumbnail_url)
