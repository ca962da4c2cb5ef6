"""Low-level EXIF block location and raw IFD walking -- stdlib only (struct).

The decoded values come from piexif; this module only needs the raw layout:
where the TIFF-structured EXIF block sits in its container, and which tags
each IFD actually carries (piexif silently skips tags it has no type for).
"""

import io
import logging
import struct
from typing import BinaryIO, Dict, List, Optional, Tuple

from exifcheck.exif.sections import (
    EXIF_IFD_POINTER_TAG,
    GPS_IFD_POINTER_TAG,
    IOP_IFD_POINTER_TAG,
    SectionId,
    section_name,
)

logger = logging.getLogger(__name__)

# TIFF type definitions: {type_id: (element_size_bytes, struct_format_char)}
TIFF_TYPES: Dict[int, Tuple[int, str]] = {
    1: (1, 'B'),    # BYTE
    2: (1, 's'),    # ASCII
    3: (2, 'H'),    # SHORT
    4: (4, 'I'),    # LONG
    5: (8, 'II'),   # RATIONAL (num/denom)
    6: (1, 'b'),    # SBYTE
    7: (1, 's'),    # UNDEFINED
    8: (2, 'h'),    # SSHORT
    9: (4, 'i'),    # SLONG
    10: (8, 'ii'),  # SRATIONAL
    11: (4, 'f'),   # FLOAT
    12: (8, 'd'),   # DOUBLE
}

# Real EXIF IFDs have a few dozen entries; more means the pointer is garbage
MAX_IFD_ENTRIES = 1000

JPEG_SOI = b'\xff\xd8'
JPEG_APP1 = b'\xff\xe1'
JPEG_SOS = b'\xff\xda'
EXIF_HEADER = b'Exif\x00\x00'


class IFDEntry:
    """A single IFD (Image File Directory) entry."""
    __slots__ = ('tag_id', 'dtype', 'count', 'value_offset', 'entry_offset',
                 'is_inline')

    def __init__(self, tag_id: int, dtype: int, count: int,
                 value_offset: int, entry_offset: int, is_inline: bool):
        self.tag_id = tag_id
        self.dtype = dtype
        self.count = count
        self.value_offset = value_offset
        self.entry_offset = entry_offset
        self.is_inline = is_inline

    @property
    def total_size(self) -> int:
        elem_size = TIFF_TYPES.get(self.dtype, (1, 'B'))[0]
        return elem_size * self.count

    def __repr__(self):
        return (f'IFDEntry(tag=0x{self.tag_id:04x}, type={self.dtype}, '
                f'count={self.count})')


class TIFFHeader:
    """Parsed TIFF header of an EXIF block."""
    __slots__ = ('endian', 'first_ifd_offset')

    def __init__(self, endian: str, first_ifd_offset: int):
        self.endian = endian
        self.first_ifd_offset = first_ifd_offset


class ParseIssues:
    """Collects non-fatal layout problems found while walking IFDs."""

    def __init__(self):
        self.messages: List[str] = []

    def add(self, msg: str):
        self.messages.append(msg)

    def __bool__(self):
        return bool(self.messages)


# ---------------------------------------------------------------------------
# Container detection
# ---------------------------------------------------------------------------

def detect_container(data: bytes) -> Optional[str]:
    """Return "jpeg", "tiff" or "webp" from the magic bytes, else None."""
    if data[:2] == JPEG_SOI:
        return 'jpeg'
    if data[:4] in (b'II*\x00', b'MM\x00*'):
        return 'tiff'
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'webp'
    return None


def find_jpeg_exif(data: bytes) -> Optional[bytes]:
    """Return the TIFF block of the first APP1 Exif segment, or None."""
    pos = 2
    while pos + 4 <= len(data):
        marker = data[pos:pos + 2]
        if marker[0:1] != b'\xff' or marker == JPEG_SOS:
            break
        length = struct.unpack('>H', data[pos + 2:pos + 4])[0]
        if length < 2:
            break
        payload = data[pos + 4:pos + 2 + length]
        if marker == JPEG_APP1 and payload.startswith(EXIF_HEADER):
            return payload[len(EXIF_HEADER):]
        pos += 2 + length
    return None


def find_webp_exif(data: bytes) -> Optional[bytes]:
    """Return the TIFF block of the EXIF chunk of a WebP file, or None."""
    pos = 12
    while pos + 8 <= len(data):
        fourcc = data[pos:pos + 4]
        size = struct.unpack('<I', data[pos + 4:pos + 8])[0]
        chunk = data[pos + 8:pos + 8 + size]
        if fourcc == b'EXIF':
            # Some writers keep the JPEG-style header inside the chunk
            if chunk.startswith(EXIF_HEADER):
                chunk = chunk[len(EXIF_HEADER):]
            return chunk
        pos += 8 + size + (size & 1)
    return None


def extract_exif_block(data: bytes, container: str) -> Optional[bytes]:
    """Locate the TIFF-structured EXIF block inside a container."""
    if container == 'jpeg':
        return find_jpeg_exif(data)
    if container == 'webp':
        return find_webp_exif(data)
    if container == 'tiff':
        return data
    return None


# ---------------------------------------------------------------------------
# IFD reading
# ---------------------------------------------------------------------------

def read_header(f: BinaryIO) -> Optional[TIFFHeader]:
    """Read and validate the TIFF header. Returns None if not a classic TIFF."""
    f.seek(0)
    bo = f.read(2)
    if bo == b'II':
        endian = '<'
    elif bo == b'MM':
        endian = '>'
    else:
        return None

    data = f.read(6)
    if len(data) < 6:
        return None
    magic, ifd_offset = struct.unpack(endian + 'HI', data)
    if magic != 42:
        return None
    return TIFFHeader(endian, ifd_offset)


def read_ifd(f: BinaryIO, header: TIFFHeader,
             ifd_offset: int) -> Tuple[List[IFDEntry], int]:
    """Read all entries from an IFD. Returns (entries, next_ifd_offset)."""
    endian = header.endian
    f.seek(ifd_offset)

    data = f.read(2)
    if len(data) < 2:
        return [], 0
    num_entries = struct.unpack(endian + 'H', data)[0]
    if num_entries > MAX_IFD_ENTRIES:
        return [], 0

    entries = []
    for _ in range(num_entries):
        entry_offset = f.tell()
        data = f.read(12)
        if len(data) < 12:
            break
        tag_id, dtype, count = struct.unpack(endian + 'HHI', data[:8])
        elem_size = TIFF_TYPES.get(dtype, (1, 'B'))[0]
        if elem_size * count <= 4:
            value_offset = entry_offset + 8
            is_inline = True
        else:
            value_offset = struct.unpack(endian + 'I', data[8:12])[0]
            is_inline = False
        entries.append(IFDEntry(tag_id, dtype, count, value_offset,
                                entry_offset, is_inline))

    next_data = f.read(4)
    next_offset = struct.unpack(endian + 'I', next_data)[0] if len(next_data) == 4 else 0
    return entries, next_offset


def read_tag_value_bytes(f: BinaryIO, entry: IFDEntry) -> bytes:
    """Read the raw bytes of a tag value."""
    f.seek(entry.value_offset)
    return f.read(entry.total_size)


def read_pointer(f: BinaryIO, header: TIFFHeader, entry: IFDEntry) -> Optional[int]:
    """Read a LONG sub-IFD pointer value."""
    if entry.dtype not in (4, 13) or entry.count != 1:
        return None
    f.seek(entry.value_offset)
    data = f.read(4)
    if len(data) < 4:
        return None
    return struct.unpack(header.endian + 'I', data)[0]


def looks_like_ifd(f: BinaryIO, header: TIFFHeader, offset: int,
                   size: int, max_entries: int = 200) -> bool:
    """Check whether ``size`` bytes at ``offset`` hold a bare IFD."""
    f.seek(offset)
    data = f.read(2)
    if len(data) < 2:
        return False
    count = struct.unpack(header.endian + 'H', data)[0]
    if count == 0 or count > max_entries or 2 + 12 * count > size:
        return False
    entries, _ = read_ifd(f, header, offset)
    return len(entries) == count and all(e.dtype in TIFF_TYPES for e in entries)


def walk_sections(block: bytes, issues: Optional[ParseIssues] = None,
                  trace: bool = False) -> Dict[SectionId, List[IFDEntry]]:
    """Walk the IFD tree of an EXIF block.

    Returns {section: entries} for the primary, thumbnail, exif, gps and
    interoperability IFDs that are present. Layout problems (pointers past
    the end of the block, loops) are recorded in ``issues`` and the
    offending IFD is skipped.
    """
    if issues is None:
        issues = ParseIssues()
    f = io.BytesIO(block)
    header = read_header(f)
    if header is None:
        issues.add('EXIF block does not start with a valid TIFF header')
        return {}

    sections: Dict[SectionId, List[IFDEntry]] = {}
    seen = set()

    def visit(section: SectionId, offset: int) -> int:
        if offset in seen:
            issues.add(f'{section_name(section)} IFD at offset {offset} already visited')
            return 0
        if offset + 2 > len(block):
            issues.add(f'{section_name(section)} IFD offset {offset} is outside '
                       f'the {len(block)} byte metadata block')
            return 0
        seen.add(offset)
        entries, next_offset = read_ifd(f, header, offset)
        if trace:
            logger.debug('%s IFD at offset %d: %d entries', section_name(section),
                         offset, len(entries))
            for e in entries:
                logger.debug('  tag 0x%04x type %d count %d', e.tag_id, e.dtype, e.count)
        for e in entries:
            if not e.is_inline and e.value_offset + e.total_size > len(block):
                issues.add(f'{section_name(section)} tag 0x{e.tag_id:04x} value '
                           f'extends past the end of the metadata block')
        sections[section] = entries
        return next_offset

    def follow(parent: SectionId, tag_id: int, child: SectionId):
        for entry in sections.get(parent, []):
            if entry.tag_id == tag_id:
                pointer = read_pointer(f, header, entry)
                if pointer:
                    visit(child, pointer)
                else:
                    issues.add(f'invalid {section_name(child)} IFD pointer')
                return

    next_offset = visit(SectionId.PRIMARY, header.first_ifd_offset)
    follow(SectionId.PRIMARY, EXIF_IFD_POINTER_TAG, SectionId.EXIF)
    follow(SectionId.PRIMARY, GPS_IFD_POINTER_TAG, SectionId.GPS)
    follow(SectionId.EXIF, IOP_IFD_POINTER_TAG, SectionId.IOP)
    if next_offset:
        visit(SectionId.THUMBNAIL, next_offset)

    return sections
