import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from modules.identifier_allocator import IdentifierRecord
from ui.database.db import db_session
from ui.database import crud


def test_db_schema_and_basic_crud(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))

    with db_session() as conn:
        # Settings row always exists with defaults
        s = crud.get_school_settings(conn)
        assert s["id"] == 1
        assert s["school_code"] == "102330"
        assert s["registration_year_prefix"] == "26"
        assert s["student_id_width"] == 3
        assert s["roll_width"] == 4

        crud.upsert_class(conn, class_name="Class-9", sort_order=9)
        crud.upsert_class(conn, class_name="Class-9", sort_order=1, capacity=40)
        classes = crud.list_classes(conn)
        assert [c["class_name"] for c in classes] == ["Class-9"]
        assert classes[0]["capacity"] == 40

        crud.create_student(
            conn,
            student_id="STD001",
            name="Rahim",
            class_name="Class-9",
            roll_number="0001",
            registration_number="261023300001",
        )
        student = crud.get_student(conn, "STD001")
        assert student is not None
        assert student["is_approved"] is False
        assert student["student_type"] == "new"

        crud.approve_student(conn, "STD001")
        assert crud.get_student(conn, "STD001")["is_active"] is True
        assert len(crud.list_students(conn, only_active=True)) == 1

        crud.update_student(
            conn,
            "STD001",
            name="Rahim Uddin",
            class_name="Class-9",
            roll_number="0001",
            registration_number="261023300001",
        )
        assert crud.get_student(conn, "STD001")["name"] == "Rahim Uddin"

        # Cleanup
        crud.delete_student(conn, "STD001")
        crud.delete_class(conn, "Class-9")
        assert crud.list_students(conn) == []
        assert crud.list_classes(conn) == []


def test_record_query_interface(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))

    with db_session() as conn:
        crud.create_student(conn, student_id="STD001", name="A", class_name="Class-9", roll_number="0001", registration_number=None)
        crud.create_student(conn, student_id="STD002", name="B", class_name=None, roll_number=None, registration_number=None)

        records = crud.list_identifier_records(conn)
        assert IdentifierRecord(global_id="STD001", scoped_id="0001", scope_key="Class-9") in records
        assert IdentifierRecord(global_id="STD002", scoped_id=None, scope_key=None) in records

        assert crud.student_id_exists(conn, "STD002")
        assert not crud.student_id_exists(conn, "STD003")


def test_create_student_rejects_duplicate_student_id(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))

    with db_session() as conn:
        crud.create_student(conn, student_id="STD001", name="A", class_name="Class-9", roll_number="0001", registration_number=None)
        with pytest.raises(crud.DuplicateStudentIdError) as err:
            crud.create_student(conn, student_id="STD001", name="B", class_name="Class-9", roll_number="0002", registration_number=None)
        assert err.value.student_id == "STD001"
        assert isinstance(err.value, crud.StoreError)
        assert len(crud.list_students(conn)) == 1


def test_update_school_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))

    with db_session() as conn:
        crud.update_school_settings(
            conn,
            school_name="Ideal School",
            school_code="123456",
            registration_year_prefix="27",
            student_id_prefix="ID",
            student_id_width=4,
            roll_width=3,
        )

    with db_session() as conn:
        s = crud.get_school_settings(conn)
    assert s["school_name"] == "Ideal School"
    assert s["school_code"] == "123456"
    assert s["student_id_prefix"] == "ID"
    assert s["student_id_width"] == 4
    assert s["roll_width"] == 3
