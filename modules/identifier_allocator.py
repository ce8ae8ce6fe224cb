"""Sequential identifier allocation for student admission.

Every new student gets three human-readable identifiers:

- Student ID: global across the whole school (STD001, STD002, ...)
- Roll number: unique only inside the student's class (0001, 0002, ...)
- Registration number: year prefix + school code + roll (e.g. 261023300007)

The functions here are pure. They take a snapshot of the existing students
(as `IdentifierRecord`s) and return the next free values. Nothing is written
anywhere: the caller persists the result and is responsible for handling a
concurrent writer that took the same ID in the meantime (see
`ui.utils.id_generator.register_student`).

Allocation rule
---------------
next = max(used numbers, default 0) + 1, zero-padded to a minimum width.
Padding grows instead of truncating, so 1000 with width 3 is "STD1000".
Malformed identifiers (no digits, wrong prefix, missing) are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence


DEFAULT_ID_PREFIX = "STD"
DEFAULT_ID_WIDTH = 3
DEFAULT_ROLL_WIDTH = 4

STUDENT_TYPES = ("new", "old")

# Only ASCII digits count; Bengali/other unicode digits are treated as noise.
_NON_DIGIT_RE = re.compile(r"[^0-9]")
_STD_ROLL_RE = re.compile(r"^STD(\d+)$", re.IGNORECASE)
# Longer digit runs are not identifiers (and would hit int() conversion limits).
MAX_SUFFIX_DIGITS = 18


# ----------------------------
# Data models
# ----------------------------


@dataclass(frozen=True)
class IdentifierRecord:
    """Projection of one existing student as seen by the allocator."""

    global_id: Optional[str] = None
    scoped_id: Optional[str] = None
    scope_key: Optional[str] = None


@dataclass(frozen=True)
class AllocationRequest:
    scope_key: Optional[str] = None
    preferred_global_id: Optional[str] = None
    # "old" students (transfers) carry their roll/registration over
    student_type: str = "new"
    existing_scoped_id: Optional[str] = None
    existing_registration_code: Optional[str] = None


@dataclass(frozen=True)
class AllocationResult:
    global_id: str
    scoped_id: str
    registration_code: str


@dataclass(frozen=True)
class AllocatedValue:
    numeric: int
    formatted: str


# ----------------------------
# Parsing / formatting
# ----------------------------


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_suffix(value: Any, expected_prefix: Optional[str] = None) -> Optional[int]:
    """Extract the numeric part of an identifier.

    "STD014" -> 14, "0007" -> 7. Returns None for anything unparseable
    (empty, wrong prefix, no digits, more than MAX_SUFFIX_DIGITS significant
    digits, non-string input); never raises.
    """

    if not isinstance(value, str) or not value.strip():
        return None

    rest = value.strip()
    if expected_prefix:
        if not rest.upper().startswith(expected_prefix.upper()):
            return None
        rest = rest[len(expected_prefix):]

    digits = _NON_DIGIT_RE.sub("", rest)
    if not digits:
        return None
    significant = digits.lstrip("0")
    if len(significant) > MAX_SUFFIX_DIGITS:
        return None
    try:
        return int(significant or "0", 10)
    except ValueError:
        return None


def _format(prefix: str, number: int, pad_width: int) -> str:
    return f"{prefix}{str(number).zfill(max(int(pad_width), 0))}"


def format_roll_number(roll: Any, width: int = DEFAULT_ROLL_WIDTH) -> str:
    """Normalize a stored roll number for display.

    Older records sometimes stored the student ID ("STD012") in the roll
    field; those show as the padded number.
    """

    if _blank(roll):
        return "N/A"

    text = str(roll).strip()
    m = _STD_ROLL_RE.match(text)
    if m:
        return m.group(1).zfill(width)

    digits = _NON_DIGIT_RE.sub("", text)
    if digits:
        return digits.zfill(width)
    return text


# ----------------------------
# Allocation
# ----------------------------


def allocate_next(used_values: Iterable[int], pad_width: int, prefix: str = "") -> AllocatedValue:
    """Smallest value above the current maximum that is not already used."""

    used = {int(v) for v in used_values}
    candidate = max(used, default=0) + 1
    if candidate < 1:
        candidate = 1

    formatted = _format(prefix, candidate, pad_width)
    # Guard: the formatted value must not parse back to something in use.
    while parse_suffix(formatted, prefix or None) in used:
        candidate += 1
        formatted = _format(prefix, candidate, pad_width)

    return AllocatedValue(numeric=candidate, formatted=formatted)


def _same_scope(a: Optional[str], b: Optional[str]) -> bool:
    if _blank(a) and _blank(b):
        return True
    return a == b


def _scope_records(records: Sequence[IdentifierRecord], scope_key: Optional[str]) -> List[IdentifierRecord]:
    return [r for r in records if _same_scope(r.scope_key, scope_key)]


def scoped_id_is_free(records: Sequence[IdentifierRecord], scope_key: Optional[str], scoped_id: Optional[str]) -> bool:
    """True if no record in the scope already uses this roll.

    Numeric rolls compare by value ("7" == "0007"); anything else by exact text.
    """

    if _blank(scoped_id):
        return False
    in_scope = _scope_records(records, scope_key)
    n = parse_suffix(scoped_id)
    if n is None:
        wanted = str(scoped_id).strip()
        return not any(isinstance(r.scoped_id, str) and r.scoped_id.strip() == wanted for r in in_scope)
    return all(parse_suffix(r.scoped_id) != n for r in in_scope)


def allocate_scoped_roll(records: Sequence[IdentifierRecord], scope_key: Optional[str], pad_width: int) -> str:
    """Next roll number inside one class (scope).

    A blank scope key selects records that also have no class.
    """

    used = set()
    for r in _scope_records(records, scope_key):
        n = parse_suffix(r.scoped_id)
        if n is not None:
            used.add(n)

    return allocate_next(used, pad_width, prefix="").formatted


def compose_registration_code(year_prefix: str, school_code: str, scoped_roll: str) -> str:
    """year prefix + school code + roll, e.g. ("26", "102330", "0007") -> "261023300007"."""

    for name, part in (("year_prefix", year_prefix), ("school_code", school_code), ("scoped_roll", scoped_roll)):
        if part is None:
            raise ValueError(f"{name} is required")
    return f"{year_prefix}{school_code}{scoped_roll}"


def resolve_global_id(
    records: Sequence[IdentifierRecord],
    preferred_global_id: Optional[str],
    pad_width: int,
    prefix: str,
    exists: Optional[Callable[[str], bool]] = None,
) -> str:
    """Honor a preferred student ID if it is free, else allocate the next one.

    A free preferred ID is returned exactly as given; trimming user input is
    the form's job. `exists` is an optional point lookup against the store;
    by default the snapshot in `records` is scanned.
    """

    if not _blank(preferred_global_id):
        if exists is not None:
            taken = bool(exists(preferred_global_id))
        else:
            taken = any(r.global_id == preferred_global_id for r in records)
        if not taken:
            return preferred_global_id

    used = set()
    for r in records:
        n = parse_suffix(r.global_id, prefix)
        if n is not None:
            used.add(n)
    return allocate_next(used, pad_width, prefix).formatted


def allocator_options(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Map a school_settings row to keyword arguments of `allocate_identifiers`."""

    return {
        "school_code": str(settings.get("school_code") or ""),
        "year_prefix": str(settings.get("registration_year_prefix") or ""),
        "id_prefix": str(settings.get("student_id_prefix") or DEFAULT_ID_PREFIX),
        "id_width": int(settings.get("student_id_width") or DEFAULT_ID_WIDTH),
        "roll_width": int(settings.get("roll_width") or DEFAULT_ROLL_WIDTH),
    }


def allocate_identifiers(
    records: Sequence[IdentifierRecord],
    request: AllocationRequest,
    *,
    school_code: str,
    year_prefix: str,
    id_prefix: str = DEFAULT_ID_PREFIX,
    id_width: int = DEFAULT_ID_WIDTH,
    roll_width: int = DEFAULT_ROLL_WIDTH,
    exists: Optional[Callable[[str], bool]] = None,
) -> AllocationResult:
    """Allocate student ID, roll number and registration number for one admission.

    An old student's previous roll is kept only while it is free in the class;
    a taken roll falls back to a newly allocated one, and the registration
    number is then composed from the new roll.
    """

    if request.student_type not in STUDENT_TYPES:
        raise ValueError(f"student_type must be one of: {', '.join(STUDENT_TYPES)}")

    global_id = resolve_global_id(records, request.preferred_global_id, id_width, id_prefix, exists=exists)

    old = request.student_type == "old"
    if old and scoped_id_is_free(records, request.scope_key, request.existing_scoped_id):
        roll = str(request.existing_scoped_id).strip()
        if not _blank(request.existing_registration_code):
            return AllocationResult(
                global_id=global_id,
                scoped_id=roll,
                registration_code=str(request.existing_registration_code).strip(),
            )
        padded = format_roll_number(roll, roll_width)
        return AllocationResult(
            global_id=global_id,
            scoped_id=roll,
            registration_code=compose_registration_code(year_prefix, school_code, padded),
        )

    roll = allocate_scoped_roll(records, request.scope_key, roll_width)
    registration = compose_registration_code(year_prefix, school_code, roll)
    # no previous roll given: the previous registration number still applies
    if old and _blank(request.existing_scoped_id) and not _blank(request.existing_registration_code):
        registration = str(request.existing_registration_code).strip()

    return AllocationResult(global_id=global_id, scoped_id=roll, registration_code=registration)
