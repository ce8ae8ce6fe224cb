"""ID generation helpers for the Streamlit UI.

Student identifiers are short and human-friendly:
- Student ID: STD001, STD002, ... (global)
- Roll number: 0001, 0002, ... (per class)
- Registration number: 26 + school code + roll

The numbering itself lives in `modules.identifier_allocator`; this module
feeds it a fresh snapshot from SQLite and owns the write-time retry.

"""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any, Dict, List, Optional

from modules.identifier_allocator import (
    AllocationRequest,
    AllocationResult,
    allocate_identifiers,
    allocator_options,
    resolve_global_id,
)
from ui.database import crud


logger = logging.getLogger(__name__)

_EMAIL_NAME_RE = re.compile(r"[^a-z0-9]")


def generate_student_id(conn: sqlite3.Connection) -> str:
    kw = allocator_options(crud.get_school_settings(conn))
    return resolve_global_id(crud.list_identifier_records(conn), None, kw["id_width"], kw["id_prefix"])


def generate_student_identifiers(
    conn: sqlite3.Connection,
    *,
    class_name: Optional[str],
    preferred_student_id: Optional[str] = None,
    student_type: str = "new",
    existing_roll: Optional[str] = None,
    existing_registration: Optional[str] = None,
) -> AllocationResult:
    """Allocate identifiers against the current DB contents.

    Re-run this whenever the selected class changes; nothing is cached.
    """

    settings = crud.get_school_settings(conn)
    records = crud.list_identifier_records(conn)
    request = AllocationRequest(
        scope_key=class_name,
        preferred_global_id=preferred_student_id,
        student_type=student_type,
        existing_scoped_id=existing_roll,
        existing_registration_code=existing_registration,
    )
    result = allocate_identifiers(
        records,
        request,
        exists=lambda sid: crud.student_id_exists(conn, sid),
        **allocator_options(settings),
    )
    logger.debug(
        "Allocated %s / roll %s / reg %s for class %r (%d existing students)",
        result.global_id,
        result.scoped_id,
        result.registration_code,
        class_name,
        len(records),
    )
    return result


def generate_student_email(name: str, student_id: str, school_slug: str = "school") -> str:
    """Placeholder login email for students admitted without one."""

    clean = _EMAIL_NAME_RE.sub("", str(name or "").lower()) or "student"
    return f"{clean}.{student_id.lower()}@{school_slug}.edu.bd"


def register_student(
    conn: sqlite3.Connection,
    *,
    name: str,
    class_name: Optional[str],
    preferred_student_id: Optional[str] = None,
    student_type: str = "new",
    existing_roll: Optional[str] = None,
    existing_registration: Optional[str] = None,
    gender: Optional[str] = None,
    guardian_name: Optional[str] = None,
    guardian_phone: Optional[str] = None,
    email: Optional[str] = None,
    approved: bool = False,
) -> Dict[str, Any]:
    """Allocate identifiers and insert the student.

    If another writer takes the student ID between allocation and insert, the
    identifiers are regenerated from a fresh snapshot and the insert is
    retried once. A second conflict propagates as DuplicateStudentIdError.
    """

    preferred = preferred_student_id
    for attempt in (1, 2):
        ids = generate_student_identifiers(
            conn,
            class_name=class_name,
            preferred_student_id=preferred,
            student_type=student_type,
            existing_roll=existing_roll,
            existing_registration=existing_registration,
        )
        student_email = email or generate_student_email(name, ids.global_id)
        try:
            crud.create_student(
                conn,
                student_id=ids.global_id,
                name=name,
                class_name=class_name,
                roll_number=ids.scoped_id,
                registration_number=ids.registration_code,
                gender=gender,
                guardian_name=guardian_name,
                guardian_phone=guardian_phone,
                email=student_email,
                student_type=student_type,
                is_active=approved,
                is_approved=approved,
            )
        except crud.DuplicateStudentIdError:
            if attempt == 2:
                raise
            logger.warning("Student ID %s taken at write time, regenerating", ids.global_id)
            # the preferred id is now known to be taken
            preferred = None
            continue

        logger.info("Registered student %s (roll %s, class %r)", ids.global_id, ids.scoped_id, class_name)
        return {
            "student_id": ids.global_id,
            "roll_number": ids.scoped_id,
            "registration_number": ids.registration_code,
            "email": student_email,
        }

    raise AssertionError("unreachable")


def import_planned_students(conn: sqlite3.Connection, plans: List[Dict[str, Any]], *, approved: bool = True) -> List[Dict[str, Any]]:
    """Write rows produced by `utils.roster_io.plan_roster_import`.

    Rows go through `register_student` in order, with the planned student ID
    as the preferred one. Without concurrent writers the saved values equal
    the plan; otherwise later rows shift instead of colliding. Failed rows are
    reported, not raised.
    """

    outcomes: List[Dict[str, Any]] = []
    for p in plans:
        if not p.get("ok"):
            outcomes.append({"row": p.get("row"), "ok": False, "error": p.get("error") or "Invalid row"})
            continue

        old = p.get("student_type") == "old"
        try:
            saved = register_student(
                conn,
                name=p["name"],
                class_name=p.get("class_name"),
                preferred_student_id=p.get("student_id"),
                student_type=p.get("student_type") or "new",
                existing_roll=p.get("roll_number") if old else None,
                existing_registration=p.get("registration_number") if old else None,
                gender=p.get("gender"),
                guardian_name=p.get("guardian_name"),
                guardian_phone=p.get("guardian_phone"),
                email=p.get("email"),
                approved=approved,
            )
        except crud.StoreError as exc:
            outcomes.append({"row": p.get("row"), "ok": False, "error": str(exc)})
            continue

        outcomes.append({"row": p.get("row"), "ok": True, "error": "", **saved})

    logger.info("Roster import: %d/%d rows saved", sum(1 for o in outcomes if o["ok"]), len(outcomes))
    return outcomes
