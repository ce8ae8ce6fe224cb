"""CRUD operations for the Streamlit UI.

All DB access is centralized here so pages remain clean.

We use simple `sqlite3` + parameterized queries.

The allocator in `modules.identifier_allocator` reads the store through two
functions only: `list_identifier_records` and `student_id_exists`.

"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from modules.identifier_allocator import IdentifierRecord


logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the record store rejects an operation."""


class DuplicateStudentIdError(StoreError):
    """A student with this student_id was written after our snapshot was read."""

    def __init__(self, student_id: str):
        super().__init__(f"Student ID {student_id} already exists")
        self.student_id = student_id


# -----------------
# Helper utilities
# -----------------


def _rows(conn: sqlite3.Connection, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
    cur = conn.execute(query, params)
    return [dict(r) for r in cur.fetchall()]


def _row(conn: sqlite3.Connection, query: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
    cur = conn.execute(query, params)
    r = cur.fetchone()
    return dict(r) if r is not None else None


def _student_out(r: Dict[str, Any]) -> Dict[str, Any]:
    r["is_active"] = bool(r.get("is_active"))
    r["is_approved"] = bool(r.get("is_approved"))
    return r


# ---------------
# School settings
# ---------------


def get_school_settings(conn: sqlite3.Connection) -> Dict[str, Any]:
    s = _row(conn, "SELECT * FROM school_settings WHERE id=1")
    assert s is not None
    s["student_id_width"] = int(s.get("student_id_width") or 3)
    s["roll_width"] = int(s.get("roll_width") or 4)
    return s


def update_school_settings(
    conn: sqlite3.Connection,
    *,
    school_name: str,
    school_code: str,
    registration_year_prefix: str,
    student_id_prefix: str = "STD",
    student_id_width: int = 3,
    roll_width: int = 4,
) -> None:
    conn.execute(
        """
        UPDATE school_settings
        SET school_name=?,
            school_code=?,
            registration_year_prefix=?,
            student_id_prefix=?,
            student_id_width=?,
            roll_width=?,
            updated_at=datetime('now')
        WHERE id=1
        """,
        (
            school_name,
            school_code,
            registration_year_prefix,
            student_id_prefix,
            int(student_id_width),
            int(roll_width),
        ),
    )


# -------
# Classes
# -------


def list_classes(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    return _rows(conn, "SELECT * FROM classes ORDER BY sort_order, class_name")


def upsert_class(conn: sqlite3.Connection, *, class_name: str, sort_order: int = 0, capacity: Optional[int] = None) -> None:
    conn.execute(
        """
        INSERT INTO classes (class_name, sort_order, capacity)
        VALUES (?, ?, ?)
        ON CONFLICT(class_name) DO UPDATE SET sort_order=excluded.sort_order, capacity=excluded.capacity
        """,
        (class_name, int(sort_order), capacity),
    )


def delete_class(conn: sqlite3.Connection, class_name: str) -> None:
    conn.execute("DELETE FROM classes WHERE class_name=?", (class_name,))


# --------
# Students
# --------


def list_students(
    conn: sqlite3.Connection,
    *,
    class_name: Optional[str] = None,
    only_active: bool = False,
) -> List[Dict[str, Any]]:
    clauses = []
    params: List[Any] = []
    if class_name:
        clauses.append("class_name=?")
        params.append(class_name)
    if only_active:
        clauses.append("is_active=1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = _rows(conn, f"SELECT * FROM students {where} ORDER BY class_name, roll_number, student_id", params)
    return [_student_out(r) for r in rows]


def get_student(conn: sqlite3.Connection, student_id: str) -> Optional[Dict[str, Any]]:
    r = _row(conn, "SELECT * FROM students WHERE student_id=?", (student_id,))
    return _student_out(r) if r is not None else None


def list_identifier_records(conn: sqlite3.Connection) -> List[IdentifierRecord]:
    """Full scan of students projected to what the allocator needs.

    Inactive/unapproved students are included: their IDs are still taken.
    """

    rows = _rows(conn, "SELECT student_id, roll_number, class_name FROM students")
    return [
        IdentifierRecord(global_id=r["student_id"], scoped_id=r["roll_number"], scope_key=r["class_name"])
        for r in rows
    ]


def student_id_exists(conn: sqlite3.Connection, student_id: str) -> bool:
    return _row(conn, "SELECT 1 AS hit FROM students WHERE student_id=? LIMIT 1", (student_id,)) is not None


def create_student(
    conn: sqlite3.Connection,
    *,
    student_id: str,
    name: str,
    class_name: Optional[str],
    roll_number: Optional[str],
    registration_number: Optional[str],
    gender: Optional[str] = None,
    guardian_name: Optional[str] = None,
    guardian_phone: Optional[str] = None,
    email: Optional[str] = None,
    student_type: str = "new",
    is_active: bool = False,
    is_approved: bool = False,
) -> int:
    """Insert a new student; never overwrites an existing student_id.

    Raises DuplicateStudentIdError when the ID is already taken.
    """

    try:
        cur = conn.execute(
            """
            INSERT INTO students (
                student_id, roll_number, registration_number, class_name, name,
                gender, guardian_name, guardian_phone, email,
                student_type, is_active, is_approved
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                student_id,
                roll_number,
                registration_number,
                class_name,
                name,
                gender,
                guardian_name,
                guardian_phone,
                email,
                student_type,
                int(bool(is_active)),
                int(bool(is_approved)),
            ),
        )
    except sqlite3.IntegrityError as exc:
        if "students.student_id" in str(exc):
            logger.warning("Insert rejected, student_id %s already exists", student_id)
            raise DuplicateStudentIdError(student_id) from exc
        raise
    return int(cur.lastrowid)


def update_student(
    conn: sqlite3.Connection,
    student_id: str,
    *,
    name: str,
    class_name: Optional[str],
    roll_number: Optional[str],
    registration_number: Optional[str],
    gender: Optional[str] = None,
    guardian_name: Optional[str] = None,
    guardian_phone: Optional[str] = None,
    email: Optional[str] = None,
) -> None:
    conn.execute(
        """
        UPDATE students
        SET name=?,
            class_name=?,
            roll_number=?,
            registration_number=?,
            gender=?,
            guardian_name=?,
            guardian_phone=?,
            email=?,
            updated_at=datetime('now')
        WHERE student_id=?
        """,
        (name, class_name, roll_number, registration_number, gender, guardian_name, guardian_phone, email, student_id),
    )


def approve_student(conn: sqlite3.Connection, student_id: str) -> None:
    conn.execute(
        "UPDATE students SET is_approved=1, is_active=1, updated_at=datetime('now') WHERE student_id=?",
        (student_id,),
    )


def delete_student(conn: sqlite3.Connection, student_id: str) -> None:
    conn.execute("DELETE FROM students WHERE student_id=?", (student_id,))
