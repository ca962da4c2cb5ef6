"""Error types reported by exifcheck.

Every error the command reports to the user derives from ExifCheckError and
ends the run with exit code 1. Anything else escaping the metadata store is
treated as an internal fault.
"""

from pathlib import Path
from typing import Optional, Union


class ExifCheckError(Exception):
    """Base class for all reported errors."""
    exit_code = 1


class ArgumentError(ExifCheckError):
    """Wrong number of arguments or an invalid option value."""


class RemovalSpecError(ExifCheckError):
    """Malformed removal specification."""

    def __init__(self, spec: str, token: str):
        self.spec = spec
        self.token = token
        super().__init__(
            f'invalid removal specification {spec!r}: {token!r} is not a '
            f'decimal or 0x/0X-prefixed hexadecimal integer')


class MetadataIOError(ExifCheckError):
    """A file could not be read, decoded, encoded or written."""

    def __init__(self, path: Optional[Union[str, Path]], reason: str):
        self.path = Path(path) if path is not None else None
        self.reason = reason
        if path is None:
            super().__init__(reason)
        else:
            super().__init__(f'{path}: {reason}')


class UnknownFieldError(MetadataIOError):
    """Unknown field met while loading with the 'stop' policy."""

    def __init__(self, path, section_name: str, tag_id: int):
        self.section_name = section_name
        self.tag_id = tag_id
        super().__init__(path, f'unknown field 0x{tag_id:04x} in {section_name} section')


class SectionRemovalError(ExifCheckError):
    """The store refused to remove a section."""

    def __init__(self, section: int, reason: str, message: Optional[str] = None):
        self.section = section
        self.reason = reason
        super().__init__(message or f'cannot remove section {section}: {reason}')


class FieldRemovalError(SectionRemovalError):
    """The store refused to remove a single field."""

    def __init__(self, section: int, field_id: int, reason: str):
        self.field_id = field_id
        super().__init__(
            section, reason,
            f'cannot remove field 0x{field_id:04x} from section {section}: {reason}')
