"""The exifcheck run -- load once, then inspect, print, extract, remove, write.

Stages run in a fixed order and each is skipped unless its configuration
value is set. The first failure ends the run; changes already made to the
in-memory store are not undone, but nothing reaches disk before the final
write.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from exifcheck.errors import MetadataIOError
from exifcheck.exif.sections import SectionId, section_name
from exifcheck.exif.store import load_store
from exifcheck.models import CheckConfig, CheckResult

logger = logging.getLogger(__name__)

# Sections printed by each print flag, in order
TIFF_SECTIONS = (SectionId.PRIMARY, SectionId.THUMBNAIL)
EXIF_SECTIONS = (SectionId.EXIF, SectionId.GPS, SectionId.IOP)
MAKER_SECTIONS = (SectionId.MAKER, SectionId.EMBEDDED)


def sections_to_format(print_tiff: bool = False, print_exif: bool = False,
                       print_maker: bool = False, print_all: bool = False) -> List[SectionId]:
    """Expand the print flags into the ordered list of sections to format."""
    sections: List[SectionId] = []
    if print_tiff or print_all:
        sections.extend(TIFF_SECTIONS)
    if print_exif or print_all:
        sections.extend(EXIF_SECTIONS)
    if print_maker or print_all:
        sections.extend(MAKER_SECTIONS)
    return sections


def run_check(
    config: CheckConfig,
    loader: Optional[Callable] = None,
    console: Optional[TextIO] = None,
) -> CheckResult:
    """Run every requested stage against the metadata of one file.

    Args:
        config: What to print, extract, remove and write.
        loader: Called once as ``loader(path, control)`` to get the store.
                Defaults to exifcheck.exif.load_store.
        console: Stream for thumbnail lines and formatted sections when no
                 print file is configured. Defaults to sys.stdout.

    Returns:
        CheckResult describing what was done.

    Raises:
        ExifCheckError subclasses for reported failures; anything else the
        store raises propagates unchanged.
    """
    loader = loader or load_store
    console = console or sys.stdout
    result = CheckResult(input_path=Path(config.input_path))

    store = loader(config.input_path, config.control)

    # 1. Thumbnail inspection
    if config.print_thumbnails:
        result.thumbnails = list(store.thumbnail_descriptors())
        for thumb in result.thumbnails:
            console.write(f'{thumb.origin} type {thumb.compression} size {thumb.size}\n')

    # 2. Formatted print
    sections = sections_to_format(config.print_tiff, config.print_exif,
                                  config.print_maker, config.print_all)
    if sections:
        if config.print_path:
            with _open_print_file(config.print_path) as out:
                store.format_sections(out, sections)
            result.files_written.append(Path(config.print_path))
        else:
            store.format_sections(console, sections)
        result.formatted_sections = list(sections)

    # 3. Original metadata extraction
    if config.original_path:
        store.write_original(config.original_path)
        result.files_written.append(Path(config.original_path))

    # 4. Thumbnail extraction
    if config.thumbnail_path:
        store.write_thumbnail(config.thumbnail_path, SectionId.THUMBNAIL)
        result.files_written.append(Path(config.thumbnail_path))
    if config.maker_thumbnail_path:
        store.write_thumbnail(config.maker_thumbnail_path, SectionId.EMBEDDED)
        result.files_written.append(Path(config.maker_thumbnail_path))

    # 5. Deletions: fields first, then whole sections
    plan = config.plan
    if not plan.is_empty:
        for group in plan.groups:
            for field_id in group.fields:
                if store.remove_field(group.section, field_id) is not False:
                    result.fields_removed += 1
        for section in plan.sections:
            store.remove_section(section)
            result.sections_removed += 1
        logger.debug('removed %d field(s) and %d section(s) (%s)',
                     result.fields_removed, result.sections_removed,
                     ', '.join(section_name(s) for s in plan.sections) or 'no sections')

    # 6. Persist
    if config.output_path:
        store.persist(config.output_path)
        result.files_written.append(Path(config.output_path))

    return result


def _open_print_file(path):
    try:
        return open(path, 'w', encoding='utf-8')
    except OSError as e:
        raise MetadataIOError(path, f'unable to open file for writing ({e.strerror or e})') from e
