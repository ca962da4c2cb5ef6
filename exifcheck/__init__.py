"""exifcheck -- check, print, extract and strip EXIF metadata in image files."""

__version__ = "0.2.0"

from exifcheck.errors import (
    ArgumentError,
    ExifCheckError,
    FieldRemovalError,
    MetadataIOError,
    RemovalSpecError,
    SectionRemovalError,
    UnknownFieldError,
)
from exifcheck.models import (
    CheckConfig,
    CheckResult,
    Control,
    DeletionPlan,
    FieldDeletionGroup,
    ThumbnailInfo,
    UnknownPolicy,
)
from exifcheck.removal import compact_plan, parse_removal_spec
from exifcheck.pipeline import run_check, sections_to_format
from exifcheck.exif import ExifStore, SectionId, load_store

__all__ = [
    "__version__",
    "ExifCheckError",
    "ArgumentError",
    "RemovalSpecError",
    "MetadataIOError",
    "UnknownFieldError",
    "SectionRemovalError",
    "FieldRemovalError",
    "CheckConfig",
    "CheckResult",
    "Control",
    "DeletionPlan",
    "FieldDeletionGroup",
    "ThumbnailInfo",
    "UnknownPolicy",
    "parse_removal_spec",
    "compact_plan",
    "run_check",
    "sections_to_format",
    "ExifStore",
    "SectionId",
    "load_store",
]
