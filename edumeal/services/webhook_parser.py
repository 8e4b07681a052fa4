"""
Best-effort identity parsing for payment webhooks.

Accounting systems send whatever the cashier typed into the customer field:
"John Doe STU001", "John STU001" or just "STU001". Nothing here is
authoritative; the result only seeds a new student row when the school id
is unknown, and admins are expected to correct it afterwards.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

PLACEHOLDER_FIRST_NAME = "Unknown"
PLACEHOLDER_LAST_NAME = "Student"
PLACEHOLDER_GRADE = "Unassigned"
PLACEHOLDER_CLASS = "Unassigned"

_GRADE_PATTERNS = (
    re.compile(r"\bGrade\s*(\d+[A-Z]*)", re.IGNORECASE),
    re.compile(r"\bG\s*(\d+[A-Z]*)", re.IGNORECASE),
)


@dataclass
class ParsedIdentity:
    school_id: str
    first_name: str = PLACEHOLDER_FIRST_NAME
    last_name: str = PLACEHOLDER_LAST_NAME
    grade: str = PLACEHOLDER_GRADE
    # which parts fell back to placeholders
    from_fallback: set[str] = field(default_factory=set)


def extract_grade(texts: Iterable[str | None]) -> str | None:
    for pattern in _GRADE_PATTERNS:
        for text in texts:
            if not text:
                continue
            m = pattern.search(str(text))
            if m:
                return m.group(1).upper()
    return None


def parse_student_identity(
    raw_id: str,
    *,
    grade: str | None = None,
    texts: Iterable[str | None] = (),
) -> ParsedIdentity:
    tokens = str(raw_id or "").split()
    if not tokens:
        raise ValueError("empty student identifier")

    out = ParsedIdentity(school_id=tokens[-1])

    if len(tokens) == 1:
        out.from_fallback.update({"first_name", "last_name"})
    elif len(tokens) == 2:
        out.first_name = tokens[0]
        out.from_fallback.add("last_name")
    else:
        out.first_name = tokens[0]
        out.last_name = " ".join(tokens[1:-1])

    explicit = (grade or "").strip()
    if explicit:
        out.grade = explicit
    else:
        found = extract_grade(list(texts))
        if found:
            out.grade = found
        else:
            out.from_fallback.add("grade")

    return out

