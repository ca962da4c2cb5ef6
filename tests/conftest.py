"""Shared test fixtures: synthetic TIFF builders, EXIF JPEGs, a recording fake store."""

import io
import logging
import struct

import piexif
import pytest
from PIL import Image

from exifcheck.models import ThumbnailInfo


def build_tiff(entries, endian='<', extra_data=None):
    """Build a minimal TIFF file in memory with given IFD entries.

    Args:
        entries: List of (tag_id, type_id, count, value_or_bytes) tuples.
            For inline values (<=4 bytes), pass an int.
            For out-of-line values, pass bytes.
        endian: '<' for little-endian, '>' for big-endian.
        extra_data: Optional bytes to append after the IFD.

    Returns:
        bytes: Complete TIFF file content.
    """
    bo = b'II' if endian == '<' else b'MM'
    header = bo + struct.pack(endian + 'H', 42) + struct.pack(endian + 'I', 8)

    num_entries = len(entries)
    ifd_header = struct.pack(endian + 'H', num_entries)

    # Out-of-line data starts after: header(8) + ifd_count(2) + entries(12*n) + next_ifd(4)
    data_offset = 8 + 2 + 12 * num_entries + 4
    entry_bytes = b''
    data_bytes = b''

    for tag_id, type_id, count, value in entries:
        entry_bytes += struct.pack(endian + 'HHI', tag_id, type_id, count)
        if isinstance(value, bytes):
            entry_bytes += struct.pack(endian + 'I', data_offset + len(data_bytes))
            data_bytes += value
        else:
            entry_bytes += struct.pack(endian + 'I', value)

    next_ifd = struct.pack(endian + 'I', 0)

    result = header + ifd_header + entry_bytes + next_ifd + data_bytes
    if extra_data:
        result += extra_data
    return result


def build_tiff_with_sub_ifd(main_entries, sub_ifd_entries, pointer_tag, endian='<'):
    """Build a TIFF where the main IFD has a LONG pointer tag to a sub-IFD.

    Args:
        main_entries: (tag_id, type_id, count, value_or_bytes) for the main IFD,
            without the pointer tag, which is appended automatically.
        sub_ifd_entries: (tag_id, type_id, count, value_or_bytes) for the sub-IFD.
        pointer_tag: 34665 (EXIF) or 34853 (GPS).
        endian: '<' or '>'.

    Returns:
        bytes: Complete TIFF file.
    """
    bo = b'II' if endian == '<' else b'MM'

    num_main = len(main_entries) + 1
    main_ool_start = 8 + 2 + 12 * num_main + 4
    main_ool_size = sum(len(v) for _, _, _, v in main_entries if isinstance(v, bytes))
    sub_ifd_offset = main_ool_start + main_ool_size
    sub_ool_start = sub_ifd_offset + 2 + 12 * len(sub_ifd_entries) + 4

    def pack_ifd(entries, ool_start, extra=b''):
        ifd_bytes = struct.pack(endian + 'H', len(entries) + (1 if extra else 0))
        data_bytes = b''
        for tag_id, type_id, count, value in entries:
            ifd_bytes += struct.pack(endian + 'HHI', tag_id, type_id, count)
            if isinstance(value, bytes):
                ifd_bytes += struct.pack(endian + 'I', ool_start + len(data_bytes))
                data_bytes += value
            else:
                ifd_bytes += struct.pack(endian + 'I', value)
        ifd_bytes += extra
        ifd_bytes += struct.pack(endian + 'I', 0)
        return ifd_bytes + data_bytes

    pointer = (struct.pack(endian + 'HHI', pointer_tag, 4, 1) +
               struct.pack(endian + 'I', sub_ifd_offset))
    result = bo + struct.pack(endian + 'H', 42) + struct.pack(endian + 'I', 8)
    result += pack_ifd(main_entries, main_ool_start, extra=pointer)
    result += pack_ifd(sub_ifd_entries, sub_ool_start)
    return result


def make_thumbnail(size=(16, 12), color='red'):
    """A small JPEG suitable as an EXIF thumbnail."""
    buf = io.BytesIO()
    Image.new('RGB', size, color).save(buf, 'JPEG')
    return buf.getvalue()


def sample_exif_dict(thumbnail=None):
    """EXIF metadata with every section piexif can write."""
    exif_dict = {
        '0th': {
            piexif.ImageIFD.Make: b'TestMaker',
            piexif.ImageIFD.Model: b'TestModel',
            piexif.ImageIFD.XResolution: (72, 1),
            piexif.ImageIFD.YResolution: (72, 1),
            piexif.ImageIFD.ResolutionUnit: 2,
            piexif.ImageIFD.Software: b'exifcheck-test',
            piexif.ImageIFD.DateTime: b'2024:06:15 10:30:00',
        },
        'Exif': {
            piexif.ExifIFD.DateTimeOriginal: b'2024:06:15 10:30:00',
            piexif.ExifIFD.MakerNote: b'TESTMAKER\x00\x01\x02\x03',
        },
        'GPS': {
            piexif.GPSIFD.GPSVersionID: (2, 2, 0, 0),
            piexif.GPSIFD.GPSLatitudeRef: b'N',
            piexif.GPSIFD.GPSLatitude: ((40, 1), (26, 1), (4612, 100)),
        },
        'Interop': {
            piexif.InteropIFD.InteroperabilityIndex: b'R98',
        },
        '1st': {},
        'thumbnail': None,
    }
    if thumbnail is not None:
        exif_dict['1st'] = {
            piexif.ImageIFD.Compression: 6,
            piexif.ImageIFD.XResolution: (72, 1),
            piexif.ImageIFD.YResolution: (72, 1),
        }
        exif_dict['thumbnail'] = thumbnail
    return exif_dict


def write_jpeg(path, exif_dict=None, size=(64, 48)):
    """Write a JPEG image, with the given EXIF metadata if any."""
    Image.new('RGB', size, 'blue').save(str(path), 'JPEG')
    if exif_dict is not None:
        piexif.insert(piexif.dump(exif_dict), str(path))
    return path


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_jpeg(tmp_path):
    """A JPEG with primary, exif, gps, interop, maker note and thumbnail metadata."""
    return write_jpeg(tmp_path / 'photo.jpg', sample_exif_dict(make_thumbnail()))


@pytest.fixture
def tmp_jpeg_no_thumbnail(tmp_path):
    return write_jpeg(tmp_path / 'nothumb.jpg', sample_exif_dict())


@pytest.fixture
def tmp_jpeg_no_exif(tmp_path):
    """A JPEG without any EXIF segment."""
    return write_jpeg(tmp_path / 'plain.jpg')


@pytest.fixture
def tmp_tiff_unknown(tmp_path):
    """A TIFF whose primary IFD carries tag 65000, which piexif does not know."""
    make = b'Scanner\x00'
    date = b'2024:06:15 10:30:00\x00'
    entries = [
        (256, 3, 1, 512),                  # ImageWidth
        (257, 3, 1, 512),                  # ImageLength
        (271, 2, len(make), make),         # Make
        (306, 2, len(date), date),         # DateTime
        (65000, 3, 1, 7),                  # unknown
    ]
    filepath = tmp_path / 'scan.tif'
    filepath.write_bytes(build_tiff(entries))
    return filepath


@pytest.fixture
def tmp_tiff_exif_unknown(tmp_path):
    """A TIFF with an EXIF sub-IFD holding an unknown tag 0xeeee."""
    date = b'2024:06:15 10:30:00\x00'
    main = [(256, 3, 1, 512), (257, 3, 1, 512)]
    sub = [(36867, 2, len(date), date), (0xeeee, 3, 1, 5)]
    filepath = tmp_path / 'exif_unknown.tif'
    filepath.write_bytes(build_tiff_with_sub_ifd(main, sub, 34665))
    return filepath


# ---------------------------------------------------------------------------
# Recording fake store
# ---------------------------------------------------------------------------

class FakeStore:
    """Stands in for ExifStore and records every call in order."""

    def __init__(self, calls, fail_on=None, thumbnails=None):
        self.calls = calls
        self.fail_on = fail_on or {}
        self.thumbnails = thumbnails if thumbnails is not None else [
            ThumbnailInfo(origin='thumbnail', compression='JPEG', size=1234)]

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on[name]

    def thumbnail_descriptors(self):
        self._record('thumbnail_descriptors')
        return self.thumbnails

    def format_sections(self, stream, section_ids):
        self._record('format_sections', list(section_ids))
        stream.write('formatted\n')

    def write_original(self, path):
        self._record('write_original', str(path))

    def write_thumbnail(self, path, which):
        self._record('write_thumbnail', str(path), int(which))

    def remove_field(self, section, field_id):
        self._record('remove_field', section, field_id)
        return True

    def remove_section(self, section):
        self._record('remove_section', section)

    def persist(self, path):
        self._record('persist', str(path))


class FakeLoader:
    """Callable loader returning one FakeStore and counting load calls."""

    def __init__(self, **store_kwargs):
        self.calls = []
        self.loads = 0
        self.store_kwargs = store_kwargs

    def __call__(self, path, control):
        self.loads += 1
        self.calls.append(('load', str(path)))
        return FakeStore(self.calls, **self.store_kwargs)


@pytest.fixture
def fake_loader():
    return FakeLoader()


@pytest.fixture(autouse=True)
def _reset_exifcheck_logger():
    """Drop handlers the CLI attaches, so they never outlive a test's streams."""
    yield
    logger = logging.getLogger('exifcheck')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
