"""
Centralized patterns and lookups.

- SPEC_CODE_REGEX: MasterFormat section numbers like "09 51 00", "09.51.00", "095100".
- BLOCK_TYPE_NORMALIZER: backend block labels -> BlockType values.
- CONFIDENCE_LEVELS: the confidence strings the backend emits.
- DEFAULT_MASTERFORMAT_SCOPE: sections the classifier may choose from.

Kept together so the adapter and classifier read cleanly and a pattern changes in one place.
"""

import re

# Three 2-digit groups; separators may be a space, period, dash or nothing.
# NOTE: single backslashes, do not double-escape!
SPEC_CODE_REGEX = r"(\d{2})[\s.\-]?(\d{2})[\s.\-]?(\d{2})"
SPEC_CODE_PAT = re.compile(SPEC_CODE_REGEX)

NOT_AVAILABLE = "N/A"

# Backend block type strings -> BlockType values.
# Keys are lowercase with whitespace stripped; anything unknown becomes "Text".
BLOCK_TYPE_NORMALIZER = {
    "table": "Table",
    "text": "Text",
    "list": "List",
    "listitem": "ListItem",
    "image": "Image",
    "figure": "Image",
    "sectionheader": "SectionHeader",
    "header": "Header",
    "title": "Title",
}

CONFIDENCE_LEVELS = ("high", "medium", "low")

# Project scope for classification.
# Full divisions allow any section inside them; restricted ones list the only valid section.
DEFAULT_MASTERFORMAT_SCOPE = [
    "Division 09 - Finishes (all sections, e.g. 09 21 00, 09 30 00, 09 51 00, 09 64 00, 09 68 00, 09 91 00)",
    "Division 11 - Equipment: 11 22 00 - Commercial Equipment / Appliances only",
    "Division 12 - Furnishings (all sections, e.g. 12 21 00, 12 24 00, 12 35 00, 12 36 00, 12 48 00, 12 50 00, 12 93 00)",
    "Division 22 - Plumbing: 22 40 00 - Plumbing Fixtures only",
    "Division 26 - Electrical: 26 50 00 - Lighting Fixtures only",
]

# Upload filename sanitizing: runs of anything non-alphanumeric collapse to one hyphen
FILENAME_UNSAFE_PAT = re.compile(r"[^a-z0-9]+")
