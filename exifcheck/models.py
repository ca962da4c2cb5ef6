"""Data models for exifcheck deletion plans, run configuration and results."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from exifcheck.errors import ArgumentError


@dataclass(frozen=True)
class FieldDeletionGroup:
    """Fields to delete from one section, in the order they were requested."""
    section: int
    fields: Tuple[int, ...]


@dataclass(frozen=True)
class DeletionPlan:
    """Whole-section and per-field deletions derived from a removal spec.

    ``sections`` holds each section id once, in first-seen order. ``groups``
    keeps field groups as received; several groups may share a section.
    """
    sections: Tuple[int, ...] = ()
    groups: Tuple[FieldDeletionGroup, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.sections and not self.groups


class UnknownPolicy(Enum):
    """What to do with fields the metadata codec does not know."""
    KEEP = 'keep'
    REMOVE = 'remove'
    STOP = 'stop'

    @classmethod
    def parse(cls, text: str) -> 'UnknownPolicy':
        """Pick a policy from the first letter of ``text`` (case-insensitive)."""
        first = text[:1].lower()
        for policy in cls:
            if policy.value[0] == first:
                return policy
        raise ArgumentError(f'Unknown action: {text}')


@dataclass
class Control:
    """Options passed through to the metadata store."""
    unknown: UnknownPolicy = UnknownPolicy.KEEP
    warn: bool = False
    parse_debug: bool = False
    serialize_debug: bool = False


@dataclass
class ThumbnailInfo:
    """An embedded thumbnail found in the metadata."""
    origin: str  # section name, e.g. "thumbnail"
    compression: str
    size: int
    dimensions: Optional[Tuple[int, int]] = None


@dataclass
class CheckConfig:
    """Everything one exifcheck run needs, independent of the command line."""
    input_path: Path
    print_tiff: bool = False
    print_exif: bool = False
    print_maker: bool = False
    print_all: bool = False
    print_thumbnails: bool = False
    print_path: Optional[Path] = None
    original_path: Optional[Path] = None
    thumbnail_path: Optional[Path] = None
    maker_thumbnail_path: Optional[Path] = None
    output_path: Optional[Path] = None
    plan: DeletionPlan = field(default_factory=DeletionPlan)
    control: Control = field(default_factory=Control)


@dataclass
class CheckResult:
    """What a run did, stage by stage."""
    input_path: Path
    thumbnails: List[ThumbnailInfo] = field(default_factory=list)
    formatted_sections: List[int] = field(default_factory=list)
    files_written: List[Path] = field(default_factory=list)
    fields_removed: int = 0
    sections_removed: int = 0
