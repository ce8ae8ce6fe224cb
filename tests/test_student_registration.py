from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure project root is on PYTHONPATH
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ui.database.db import db_session
from ui.database import crud
from ui.utils.id_generator import (
    generate_student_email,
    generate_student_id,
    generate_student_identifiers,
    register_student,
)


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))


def test_generate_identifiers_follow_class_changes(db):
    with db_session() as conn:
        crud.create_student(conn, student_id="STD001", name="A", class_name="Class-9", roll_number="0001", registration_number=None)
        crud.create_student(conn, student_id="STD002", name="B", class_name="Class-9", roll_number="0002", registration_number=None)

        ids9 = generate_student_identifiers(conn, class_name="Class-9")
        ids10 = generate_student_identifiers(conn, class_name="Class-10")

    assert ids9.global_id == ids10.global_id == "STD003"
    assert ids9.scoped_id == "0003"
    assert ids9.registration_code == "261023300003"
    assert ids10.scoped_id == "0001"
    assert ids10.registration_code == "261023300001"


def test_generate_identifiers_use_school_settings(db):
    with db_session() as conn:
        crud.update_school_settings(
            conn,
            school_name="X",
            school_code="777",
            registration_year_prefix="27",
            student_id_prefix="ID",
            student_id_width=5,
            roll_width=2,
        )
        ids = generate_student_identifiers(conn, class_name="Class-1")
        assert generate_student_id(conn) == "ID00001"

    assert ids.global_id == "ID00001"
    assert ids.scoped_id == "01"
    assert ids.registration_code == "2777701"


def test_register_student_honors_free_preferred_id(db):
    with db_session() as conn:
        saved = register_student(conn, name="Karim", class_name="Class-9", preferred_student_id="STD100")
        student = crud.get_student(conn, "STD100")

    assert saved["student_id"] == "STD100"
    assert saved["roll_number"] == "0001"
    assert student is not None
    assert student["registration_number"] == "261023300001"
    assert student["email"] == "karim.std100@school.edu.bd"


def test_register_student_replaces_taken_preferred_id(db):
    with db_session() as conn:
        register_student(conn, name="First", class_name="Class-9", preferred_student_id="STD005")
        saved = register_student(conn, name="Second", class_name="Class-9", preferred_student_id="STD005")

    assert saved["student_id"] == "STD006"
    assert saved["roll_number"] == "0002"


def test_register_student_retries_once_on_write_time_conflict(db, monkeypatch):
    real_create = crud.create_student
    raced = []

    def racing_create(conn, **kw):
        if not raced:
            # another admin saves the same ID between our read and our write
            raced.append(kw["student_id"])
            real_create(
                conn,
                student_id=kw["student_id"],
                name="Other admin's student",
                class_name="Class-9",
                roll_number="0001",
                registration_number=None,
            )
        return real_create(conn, **kw)

    monkeypatch.setattr(crud, "create_student", racing_create)

    with db_session() as conn:
        saved = register_student(conn, name="Mine", class_name="Class-9")
        students = crud.list_students(conn)

    assert raced == ["STD001"]
    assert saved["student_id"] == "STD002"
    assert saved["roll_number"] == "0002"
    assert len(students) == 2


def test_register_student_gives_up_after_second_conflict(db, monkeypatch):
    def always_taken(conn, **kw):
        raise crud.DuplicateStudentIdError(kw["student_id"])

    monkeypatch.setattr(crud, "create_student", always_taken)

    with db_session() as conn:
        with pytest.raises(crud.DuplicateStudentIdError):
            register_student(conn, name="Unlucky", class_name="Class-9")


def test_register_old_student_keeps_previous_roll(db):
    with db_session() as conn:
        register_student(conn, name="New", class_name="Class-9")
        saved = register_student(
            conn,
            name="Transfer",
            class_name="Class-9",
            student_type="old",
            existing_roll="0012",
            existing_registration="25102330012",
        )

    assert saved["student_id"] == "STD002"
    assert saved["roll_number"] == "0012"
    assert saved["registration_number"] == "25102330012"


def test_register_old_student_with_taken_roll_gets_next_roll(db):
    with db_session() as conn:
        register_student(conn, name="New", class_name="Class-9")
        saved = register_student(
            conn,
            name="Transfer",
            class_name="Class-9",
            student_type="old",
            existing_roll="0001",
            existing_registration="25102330001",
        )
        rolls = [s["roll_number"] for s in crud.list_students(conn) if s["class_name"] == "Class-9"]

    assert saved["roll_number"] == "0002"
    assert saved["registration_number"] != "25102330001"
    assert saved["registration_number"].endswith("0002")
    assert sorted(rolls) == ["0001", "0002"]


def test_generate_student_email_handles_non_latin_names():
    assert generate_student_email("Md. Abdullah", "STD007") == "mdabdullah.std007@school.edu.bd"
    assert generate_student_email("আব্দুল্লাহ", "STD008", "102330") == "student.std008@102330.edu.bd"
