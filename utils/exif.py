import logging
from core.models import Coordinates
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from PIL import Image
from PIL.ExifTags import GPSTAGS

logger = logging.getLogger(__name__)

EXIF_IFD = 0x8769
GPS_IFD = 0x8825
DATETIME_ORIGINAL = 36867
DATETIME_DIGITIZED = 36868
DATETIME = 306
EXIF_DATETIME_FORMAT = '%Y:%m:%d %H:%M:%S'


@dataclass
class ExifData:
    shot_at: datetime | None = None
    coordinates: Coordinates | None = None


def dms_to_decimal(dms, ref: str) -> float:
    """Degrees, minutes and seconds to signed decimal degrees"""
    decimal = float(dms[0]) + float(dms[1]) / 60 + float(dms[2]) / 3600
    if ref in ('S', 'W'):
        decimal = -decimal
    return decimal


def parse_exif_datetime(value) -> datetime | None:
    """EXIF timestamps carry no zone; they are read as UTC"""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip('\x00 '), EXIF_DATETIME_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        logger.debug(f"Unparseable EXIF timestamp: {value!r}")
        return None


def read_gps(exif: Image.Exif) -> Coordinates | None:
    gps_ifd = exif.get_ifd(GPS_IFD)
    if not gps_ifd:
        return None

    gps_data = {GPSTAGS.get(tag_id, tag_id): value for tag_id, value in gps_ifd.items()}
    if 'GPSLatitude' not in gps_data or 'GPSLongitude' not in gps_data:
        return None

    lat = dms_to_decimal(gps_data['GPSLatitude'], gps_data.get('GPSLatitudeRef', 'N'))
    lng = dms_to_decimal(gps_data['GPSLongitude'], gps_data.get('GPSLongitudeRef', 'E'))
    return Coordinates(lat, lng)


def extract_exif(image_file: Path) -> ExifData:
    """
    Read the capture time and GPS position embedded in an image

    The capture time prefers DateTimeOriginal, then DateTimeDigitized, then
    DateTime. Files that are not images, or carry broken EXIF blocks, yield
    an empty ExifData.
    """
    try:
        with Image.open(image_file) as img:
            exif = img.getexif()
            if not exif:
                return ExifData()

            exif_ifd = exif.get_ifd(EXIF_IFD)
            shot_at = (
                parse_exif_datetime(exif_ifd.get(DATETIME_ORIGINAL))
                or parse_exif_datetime(exif_ifd.get(DATETIME_DIGITIZED))
                or parse_exif_datetime(exif.get(DATETIME))
            )

            return ExifData(shot_at=shot_at, coordinates=read_gps(exif))
    except Exception as e:
        logger.warning(f"Could not read EXIF from {image_file.name}: {e}")
        return ExifData()
