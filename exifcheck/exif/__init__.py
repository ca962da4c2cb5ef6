"""EXIF metadata store package.

Re-exports the names the pipeline and command line use, so callers can
write ``from exifcheck.exif import load_store, SectionId``.
"""

# --- sections.py: section ids and name tables ---
from exifcheck.exif.sections import (  # noqa: F401
    SectionId,
    SECTION_NAMES,
    COMPRESSION_NAMES,
    section_name,
    tag_name,
    compression_name,
    to_section_id,
)

# --- parser.py: container detection and raw IFD walking ---
from exifcheck.exif.parser import (  # noqa: F401
    IFDEntry,
    TIFFHeader,
    ParseIssues,
    detect_container,
    extract_exif_block,
    read_header,
    read_ifd,
    walk_sections,
)

# --- store.py: the decoded store ---
from exifcheck.exif.store import (  # noqa: F401
    ExifStore,
    UnknownField,
    load_store,
)
