"""Metadata store -- one decoded EXIF block and the operations run against it.

Decoding and encoding are done by piexif. The raw IFD walk from
exifcheck.exif.parser supplies what piexif leaves out: tags it has no type
for (unknown fields) and the location of the maker note.
"""

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, TextIO

import piexif
from PIL import Image

from exifcheck.errors import (
    FieldRemovalError,
    MetadataIOError,
    SectionRemovalError,
    UnknownFieldError,
)
from exifcheck.exif.parser import (
    IFDEntry,
    ParseIssues,
    detect_container,
    extract_exif_block,
    looks_like_ifd,
    read_header,
    read_ifd,
    read_tag_value_bytes,
    walk_sections,
)
from exifcheck.exif.sections import (
    COMPRESSION_TAG,
    MAKER_NOTE_TAG,
    PIEXIF_KEYS,
    STRUCTURAL_TAGS,
    SectionId,
    compression_name,
    is_known_tag,
    section_name,
    tag_name,
    to_section_id,
)
from exifcheck.models import Control, ThumbnailInfo, UnknownPolicy

logger = logging.getLogger(__name__)

# Longest value preview shown when formatting
MAX_PREVIEW_BYTES = 32

_RATIONAL_TYPES = (piexif.TYPES.Rational, piexif.TYPES.SRational)


@dataclass
class UnknownField:
    """A field piexif has no type for, kept from the raw IFD walk."""
    tag_id: int
    dtype: int
    count: int
    raw: bytes


def load_store(path, control: Optional[Control] = None) -> 'ExifStore':
    """Read ``path`` and decode its EXIF metadata.

    Raises MetadataIOError if the file cannot be read, is not a JPEG, TIFF or
    WebP image, has no EXIF block, or the block cannot be decoded. Raises
    UnknownFieldError for the first unknown field under the 'stop' policy.
    """
    path = Path(path)
    control = control or Control()

    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise MetadataIOError(path, f'cannot read file ({e.strerror or e})') from e

    container = detect_container(data)
    if container is None:
        raise MetadataIOError(path, 'not a JPEG, TIFF or WebP image')

    block = extract_exif_block(data, container)
    if not block:
        raise MetadataIOError(path, 'no EXIF metadata')

    issues = ParseIssues()
    raw_sections = walk_sections(block, issues, trace=control.parse_debug)
    if not raw_sections:
        raise MetadataIOError(path, 'invalid EXIF metadata: ' +
                              '; '.join(issues.messages or ['no IFD found']))

    try:
        exif_dict = piexif.load(block)
    except (ValueError, struct.error, IndexError) as e:
        raise MetadataIOError(path, f'invalid EXIF metadata: {e}') from e

    store = ExifStore(path, data, container, block, exif_dict, control)
    for msg in issues.messages:
        store._issue(msg)
    store._collect_unknown(raw_sections)
    store._locate_maker_note(raw_sections.get(SectionId.EXIF, []))
    return store


class ExifStore:
    """Decoded EXIF metadata of one image file."""

    def __init__(self, path: Path, data: bytes, container: str, block: bytes,
                 exif_dict: Dict, control: Control):
        self.path = path
        self.container = container
        self.control = control
        self._data = data
        self._block = block
        self._exif = exif_dict
        self._unknown: Dict[SectionId, Dict[int, UnknownField]] = {}
        self._maker_entries: List[IFDEntry] = []
        # Sections that went with a removed parent section
        self._removed_with_parent: Set[SectionId] = set()

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    def _issue(self, msg: str):
        """Report a metadata problem: a warning if asked for, else a trace."""
        if self.control.warn:
            logger.warning('%s: %s', self.path.name, msg)
        else:
            logger.debug('%s: %s', self.path.name, msg)

    def _collect_unknown(self, raw_sections: Dict[SectionId, List[IFDEntry]]):
        f = io.BytesIO(self._block)
        for section, entries in raw_sections.items():
            for entry in entries:
                if is_known_tag(section, entry.tag_id):
                    continue
                if self.control.unknown is UnknownPolicy.STOP:
                    raise UnknownFieldError(self.path, section_name(section), entry.tag_id)
                if self.control.unknown is UnknownPolicy.REMOVE:
                    self._issue(f'removing unknown field 0x{entry.tag_id:04x} '
                                f'from {section_name(section)} section')
                    continue
                self._issue(f'unknown field 0x{entry.tag_id:04x} in '
                            f'{section_name(section)} section')
                raw = read_tag_value_bytes(f, entry)
                self._unknown.setdefault(section, {})[entry.tag_id] = UnknownField(
                    entry.tag_id, entry.dtype, entry.count, raw)

    def _locate_maker_note(self, exif_entries: List[IFDEntry]):
        """List the maker note entries when the note is a bare IFD."""
        for entry in exif_entries:
            if entry.tag_id != MAKER_NOTE_TAG or entry.is_inline:
                continue
            f = io.BytesIO(self._block)
            header = read_header(f)
            if header and looks_like_ifd(f, header, entry.value_offset, entry.total_size):
                self._maker_entries, _ = read_ifd(f, header, entry.value_offset)
                if self.control.parse_debug:
                    logger.debug('maker note IFD at offset %d: %d entries',
                                 entry.value_offset, len(self._maker_entries))
            return

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def exif_dict(self) -> Dict:
        """The piexif dictionary backing this store."""
        return self._exif

    @property
    def thumbnail(self) -> Optional[bytes]:
        return self._exif.get('thumbnail')

    @property
    def maker_note(self) -> Optional[bytes]:
        return self._exif['Exif'].get(MAKER_NOTE_TAG)

    def unknown_fields(self, section: int) -> Dict[int, UnknownField]:
        return dict(self._unknown.get(section, {}))

    def has_section(self, section: int) -> bool:
        if section == SectionId.MAKER:
            return self.maker_note is not None
        if section == SectionId.THUMBNAIL and self.thumbnail:
            return True
        key = PIEXIF_KEYS.get(section)
        if key is None:
            return False
        return bool(self._exif[key]) or bool(self._unknown.get(section))

    def thumbnail_descriptors(self) -> List[ThumbnailInfo]:
        """Describe the embedded thumbnails (the maker preview is not decoded)."""
        thumb = self.thumbnail
        if not thumb:
            return []
        compression = compression_name(self._exif['1st'].get(COMPRESSION_TAG))
        dimensions = None
        try:
            with Image.open(io.BytesIO(thumb)) as im:
                dimensions = im.size
        except OSError:
            self._issue('exif thumbnail data cannot be decoded')
        return [ThumbnailInfo(origin=section_name(SectionId.THUMBNAIL),
                              compression=compression, size=len(thumb),
                              dimensions=dimensions)]

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format_sections(self, stream: TextIO, section_ids: Iterable[int]):
        """Write the fields of each present section to ``stream``."""
        for section in section_ids:
            if not self.has_section(section):
                logger.debug('section %s not present, not formatted', section_name(section))
                continue
            if section == SectionId.MAKER:
                self._format_maker(stream)
                continue

            fields = self._exif[PIEXIF_KEYS[section]]
            unknown = self._unknown.get(section, {})
            stream.write(f'{section_name(section).capitalize()} section: '
                         f'{len(fields) + len(unknown)} field(s)\n')
            types = piexif.TAGS[PIEXIF_KEYS[section]]
            for tag_id in sorted(set(fields) | set(unknown)):
                if tag_id in fields:
                    value = _render_value(fields[tag_id], types[tag_id]['type'])
                else:
                    u = unknown[tag_id]
                    value = f'<type {u.dtype}, count {u.count}> {_render_bytes(u.raw)}'
                stream.write(f'  0x{tag_id:04x} {tag_name(section, tag_id):<30} {value}\n')
            if section == SectionId.THUMBNAIL and self.thumbnail:
                stream.write(f'  thumbnail data: {len(self.thumbnail)} bytes\n')
            stream.write('\n')

    def _format_maker(self, stream: TextIO):
        note = self.maker_note
        stream.write(f'Maker section: {len(note)} bytes\n')
        if self._maker_entries:
            for e in self._maker_entries:
                stream.write(f'  0x{e.tag_id:04x} type {e.dtype} count {e.count}\n')
        else:
            stream.write(f'  {_render_bytes(note)}\n')
        stream.write('\n')

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def write_original(self, path) -> int:
        """Write the unmodified EXIF block as found in the file."""
        return _write_file(path, self._block)

    def write_thumbnail(self, path, which: int) -> int:
        """Write the raw bytes of the exif (THUMBNAIL) or maker (EMBEDDED) thumbnail."""
        if which == SectionId.THUMBNAIL:
            if not self.thumbnail:
                raise MetadataIOError(path, 'no exif thumbnail in metadata')
            return _write_file(path, self.thumbnail)
        if which == SectionId.EMBEDDED:
            raise MetadataIOError(path, 'no maker thumbnail in metadata')
        raise ValueError(f'section {which} does not hold a thumbnail')

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def remove_field(self, section: int, field_id: int) -> bool:
        """Remove one field. Returns False if the field was not there."""
        sid = to_section_id(section)
        if sid is None:
            raise FieldRemovalError(section, field_id, 'unknown section')
        if sid in (SectionId.MAKER, SectionId.EMBEDDED):
            raise FieldRemovalError(section, field_id,
                                    f'{section_name(sid)} fields cannot be removed individually')
        if field_id in STRUCTURAL_TAGS.get(sid, ()):
            raise FieldRemovalError(section, field_id,
                                    'field links metadata sections; remove the section instead')

        fields = self._exif[PIEXIF_KEYS[sid]]
        unknown = self._unknown.get(sid, {})
        if field_id in fields:
            del fields[field_id]
        elif field_id in unknown:
            del unknown[field_id]
        else:
            self._issue(f'field 0x{field_id:04x} not present in {section_name(sid)} section')
            return False
        logger.debug('removed field 0x%04x from %s section', field_id, section_name(sid))
        return True

    def remove_section(self, section: int):
        """Remove a whole section; sections nested in it go too."""
        sid = to_section_id(section)
        if sid is None:
            raise SectionRemovalError(section, 'unknown section')
        if sid in self._removed_with_parent:
            logger.debug('%s section already removed with its parent', section_name(sid))
            return
        if not self.has_section(sid):
            raise SectionRemovalError(section, f'{section_name(sid)} section is not present')

        if sid == SectionId.MAKER:
            del self._exif['Exif'][MAKER_NOTE_TAG]
            self._maker_entries = []
        elif sid == SectionId.EXIF:
            self._removed_with_parent.update(
                s for s in (SectionId.IOP, SectionId.MAKER) if self.has_section(s))
            self._clear(sid)
            self._clear(SectionId.IOP)
            self._maker_entries = []
        else:
            self._clear(sid)
            if sid == SectionId.THUMBNAIL:
                self._exif['thumbnail'] = None
        logger.debug('removed %s section', section_name(sid))

    def _clear(self, sid: SectionId):
        self._exif[PIEXIF_KEYS[sid]] = {}
        self._unknown.pop(sid, None)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def persist(self, path) -> int:
        """Serialize the metadata and write the result to ``path``.

        JPEG and WebP sources are rewritten with the new metadata embedded;
        TIFF sources produce the serialized metadata block alone.
        """
        dropped = sum(len(u) for u in self._unknown.values())
        if dropped:
            self._issue(f'{dropped} unknown field(s) cannot be re-encoded and are '
                        f'left out of {path}')

        try:
            exif_bytes = piexif.dump(self._exif)
        except (ValueError, KeyError, TypeError, struct.error) as e:
            raise MetadataIOError(path, f'cannot serialize metadata: {e}') from e

        if self.control.serialize_debug:
            for sid, key in PIEXIF_KEYS.items():
                logger.debug('serializing %s section: %d field(s)',
                             section_name(sid), len(self._exif[key]))
            logger.debug('serialized metadata: %d bytes', len(exif_bytes))

        if self.container == 'tiff':
            return _write_file(path, exif_bytes[len(b'Exif\x00\x00'):])

        out = io.BytesIO()
        try:
            piexif.insert(exif_bytes, self._data, out)
        except (ValueError, struct.error) as e:
            raise MetadataIOError(path, f'cannot embed metadata: {e}') from e
        return _write_file(path, out.getvalue())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_file(path, data: bytes) -> int:
    try:
        with open(path, 'wb') as f:
            f.write(data)
    except OSError as e:
        raise MetadataIOError(path, f'cannot write file ({e.strerror or e})') from e
    return len(data)


def _render_bytes(raw: bytes) -> str:
    """Printable text for a byte string, hex otherwise."""
    text = raw.rstrip(b'\x00')
    if text and all(32 <= b < 127 for b in text):
        return repr(text.decode('ascii'))
    preview = raw[:MAX_PREVIEW_BYTES].hex(' ')
    if len(raw) > MAX_PREVIEW_BYTES:
        preview += ' ...'
    return f'[{len(raw)} bytes] {preview}'


def _render_value(value, dtype: int) -> str:
    if isinstance(value, bytes):
        return _render_bytes(value)
    if isinstance(value, str):
        return repr(value)
    if dtype in _RATIONAL_TYPES and isinstance(value, tuple):
        if value and isinstance(value[0], tuple):
            return ', '.join(f'{n}/{d}' for n, d in value)
        return f'{value[0]}/{value[1]}'
    if isinstance(value, tuple):
        return ', '.join(str(v) for v in value)
    return str(value)
