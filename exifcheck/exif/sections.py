"""Section identifiers and name tables for EXIF metadata."""

from enum import IntEnum
from typing import Dict, Optional

import piexif


class SectionId(IntEnum):
    """Metadata sections (IFDs) a store can hold."""
    PRIMARY = 0
    THUMBNAIL = 1
    EXIF = 2
    GPS = 3
    IOP = 4
    MAKER = 5
    EMBEDDED = 6


SECTION_NAMES: Dict[int, str] = {
    SectionId.PRIMARY: 'primary',
    SectionId.THUMBNAIL: 'thumbnail',
    SectionId.EXIF: 'exif',
    SectionId.GPS: 'gps',
    SectionId.IOP: 'interoperability',
    SectionId.MAKER: 'maker',
    SectionId.EMBEDDED: 'embedded',
}

# Sections backed by a piexif IFD dict, with that dict's key
PIEXIF_KEYS: Dict[int, str] = {
    SectionId.PRIMARY: '0th',
    SectionId.THUMBNAIL: '1st',
    SectionId.EXIF: 'Exif',
    SectionId.GPS: 'GPS',
    SectionId.IOP: 'Interop',
}

# IFD pointer tags
EXIF_IFD_POINTER_TAG = piexif.ImageIFD.ExifTag              # 34665
GPS_IFD_POINTER_TAG = piexif.ImageIFD.GPSTag                # 34853
IOP_IFD_POINTER_TAG = piexif.ExifIFD.InteroperabilityTag    # 40965
THUMBNAIL_OFFSET_TAG = piexif.ImageIFD.JPEGInterchangeFormat          # 513
THUMBNAIL_LENGTH_TAG = piexif.ImageIFD.JPEGInterchangeFormatLength    # 514
MAKER_NOTE_TAG = piexif.ExifIFD.MakerNote                   # 37500
COMPRESSION_TAG = piexif.ImageIFD.Compression               # 259

# Tags that hold structure rather than data; the codec rewrites them itself
STRUCTURAL_TAGS: Dict[int, frozenset] = {
    SectionId.PRIMARY: frozenset({EXIF_IFD_POINTER_TAG, GPS_IFD_POINTER_TAG}),
    SectionId.THUMBNAIL: frozenset({THUMBNAIL_OFFSET_TAG, THUMBNAIL_LENGTH_TAG}),
    SectionId.EXIF: frozenset({IOP_IFD_POINTER_TAG}),
}

# TIFF Compression tag values
COMPRESSION_NAMES: Dict[int, str] = {
    1: 'uncompressed',
    2: 'CCITT 1D',
    3: 'T4/Group 3 Fax',
    4: 'T6/Group 4 Fax',
    5: 'LZW',
    6: 'JPEG',
    7: 'JPEG',
    8: 'Adobe Deflate',
    32773: 'PackBits',
}


def section_name(section: int) -> str:
    """Display name for a section id, tolerating ids no store knows."""
    return SECTION_NAMES.get(section, f'section {section}')


def to_section_id(section: int) -> Optional[SectionId]:
    """Return the SectionId for an integer, or None if there is none."""
    try:
        return SectionId(section)
    except ValueError:
        return None


def is_known_tag(section: int, tag_id: int) -> bool:
    """True if the codec has a type for ``tag_id`` in this section."""
    key = PIEXIF_KEYS.get(section)
    if key is None:
        return False
    return tag_id in piexif.TAGS[key]


def tag_name(section: int, tag_id: int) -> str:
    key = PIEXIF_KEYS.get(section)
    if key is not None and tag_id in piexif.TAGS[key]:
        return piexif.TAGS[key][tag_id]['name']
    return f'Unknown_0x{tag_id:04x}'


def compression_name(value: Optional[int]) -> str:
    if value is None:
        return 'unknown'
    return COMPRESSION_NAMES.get(value, f'compression {value}')
