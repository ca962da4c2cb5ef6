"""Removal specification parsing and deletion plan compaction.

A removal specification is a comma-separated list of groups. Each group
starts with a section id, optionally followed by colon-separated field ids::

    0:0x131:0x132,1     delete Software and DateTime from the primary
                        section, and the whole thumbnail section

Ids are decimal or hexadecimal integers; hexadecimal ids start with 0x or 0X.
"""

import re
from typing import List, Optional

from exifcheck.errors import RemovalSpecError
from exifcheck.models import DeletionPlan, FieldDeletionGroup

GROUP_SEPARATOR = ','
FIELD_SEPARATOR = ':'

_INTEGER_RE = re.compile(r'(?:0[xX]([0-9a-fA-F]+)|([0-9]+))\Z')


def parse_integer(token: str) -> Optional[int]:
    """Parse a decimal or 0x/0X-prefixed hex literal. Returns None if malformed."""
    m = _INTEGER_RE.match(token)
    if m is None:
        return None
    hex_digits, dec_digits = m.groups()
    if hex_digits is not None:
        return int(hex_digits, 16)
    return int(dec_digits, 10)


def parse_removal_spec(spec: Optional[str]) -> DeletionPlan:
    """Parse a removal specification into a compacted DeletionPlan.

    An empty (or None) specification yields an empty plan. Parsing stops at
    the first malformed token and raises RemovalSpecError naming the whole
    specification and the token.
    """
    if not spec:
        return DeletionPlan()

    sections: List[int] = []
    groups: List[FieldDeletionGroup] = []

    for group in spec.split(GROUP_SEPARATOR):
        ids = []
        for token in group.split(FIELD_SEPARATOR):
            value = parse_integer(token)
            if value is None:
                raise RemovalSpecError(spec, token)
            ids.append(value)

        section, fields = ids[0], ids[1:]
        if fields:
            groups.append(FieldDeletionGroup(section=section, fields=tuple(fields)))
        elif section not in sections:
            sections.append(section)

    return compact_plan(DeletionPlan(sections=tuple(sections), groups=tuple(groups)))


def compact_plan(plan: DeletionPlan) -> DeletionPlan:
    """Drop field groups whose whole section is already being deleted.

    Surviving groups keep their original relative order.
    """
    wholly_deleted = set(plan.sections)
    kept = tuple(g for g in plan.groups if g.section not in wholly_deleted)
    return DeletionPlan(sections=plan.sections, groups=kept)


def describe_plan(plan: DeletionPlan, section_name=str) -> List[str]:
    """Human-readable lines describing a plan, one per deletion.

    ``section_name`` maps a section id to a display name.
    """
    lines = []
    for group in plan.groups:
        fields = ', '.join(f'0x{f:04x}' for f in group.fields)
        lines.append(f'remove field(s) {fields} from {section_name(group.section)}')
    for section in plan.sections:
        lines.append(f'remove section {section_name(section)}')
    return lines
