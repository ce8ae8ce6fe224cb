from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from modules.identifier_allocator import IdentifierRecord
from ui.database.db import db_session
from ui.database import crud
from ui.utils.id_generator import import_planned_students
from utils.roster_io import (
    dataframe_to_csv_bytes,
    dataframe_to_excel_bytes,
    plan_roster_import,
    read_roster,
    students_to_dataframe,
)


SETTINGS = {"school_code": "102330", "registration_year_prefix": "26"}

ROSTER_CSV = (
    "name,class,studentId,rollNumber\n"
    "Abdullah,Class-9,,\n"
    "Badrul,Class-9,STD010,\n"
    "Chaity,Class-9,STD010,\n"
    ",Class-9,,\n"
    "Dipu,Class-10,,0020\n"
).encode("utf-8")


def test_read_roster_normalises_headers():
    df = read_roster(ROSTER_CSV, "roster.csv")
    assert {"name", "class_name", "student_id", "roll_number"} <= set(df.columns)
    assert len(df) == 5


def test_read_roster_rejects_unknown_extension():
    with pytest.raises(ValueError):
        read_roster(b"", "roster.pdf")


def test_plan_roster_import_never_collides_within_batch():
    df = read_roster(ROSTER_CSV, "roster.csv")
    records = [IdentifierRecord(global_id="STD001", scoped_id="0001", scope_key="Class-9")]

    plans = plan_roster_import(df, records, SETTINGS)

    assert [p["row"] for p in plans] == [1, 2, 3, 4, 5]
    ok = [p for p in plans if p["ok"]]
    assert len(ok) == 4
    assert plans[3]["ok"] is False
    assert plans[3]["error"] == "Name is missing"

    ids = [p["student_id"] for p in ok]
    assert ids == ["STD002", "STD010", "STD011", "STD012"]
    assert [p["roll_number"] for p in ok[:3]] == ["0002", "0003", "0004"]

    dipu = ok[3]
    assert dipu["student_type"] == "old"
    assert dipu["roll_number"] == "0020"
    assert dipu["registration_number"] == "261023300020"


def test_plan_roster_import_default_class():
    df = read_roster(b"name\nRina\nSumi\n", "roster.csv")
    plans = plan_roster_import(df, [], SETTINGS, default_class="Class-6")
    assert [p["class_name"] for p in plans] == ["Class-6", "Class-6"]
    assert [p["roll_number"] for p in plans] == ["0001", "0002"]


def test_export_then_reimport_excel_keeps_padded_rolls():
    students = [
        {"student_id": "STD001", "name": "Abdullah", "class_name": "Class-9", "roll_number": "7", "registration_number": "261023300007"},
    ]
    df = students_to_dataframe(students)
    assert df.loc[0, "roll_number"] == "0007"

    loaded = read_roster(dataframe_to_excel_bytes(df), "students.xlsx")
    assert loaded.loc[0, "student_id"] == "STD001"
    assert loaded.loc[0, "roll_number"] == "0007"
    assert loaded.loc[0, "email"] == ""


def test_csv_export_has_bom_for_excel():
    df = students_to_dataframe([{"student_id": "STD001", "name": "আব্দুল্লাহ"}])
    data = dataframe_to_csv_bytes(df)
    assert data.startswith(b"\xef\xbb\xbf")
    assert "আব্দুল্লাহ".encode("utf-8") in data


def test_import_planned_students_writes_rows(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHOOL_ADMIN_DB", str(tmp_path / "school.db"))
    df = read_roster(ROSTER_CSV, "roster.csv")

    with db_session() as conn:
        plans = plan_roster_import(df, crud.list_identifier_records(conn), crud.get_school_settings(conn))
        # a concurrent admission takes the first planned ID before the import runs
        crud.create_student(conn, student_id="STD001", name="Walk-in", class_name="Class-9", roll_number="0001", registration_number=None)

        outcomes = import_planned_students(conn, plans)
        students = {s["student_id"]: s for s in crud.list_students(conn)}

    assert sum(1 for o in outcomes if o["ok"]) == 4
    assert [o["ok"] for o in outcomes] == [True, True, True, False, True]
    # the conflicting row was reallocated instead of failing, later rows follow on
    assert outcomes[0]["student_id"] == "STD002"
    assert outcomes[0]["roll_number"] == "0002"
    assert [o.get("roll_number") for o in outcomes[1:3]] == ["0003", "0004"]
    assert outcomes[4]["roll_number"] == "0020"
    assert len(students) == 5
    assert all(s["is_approved"] for s in students.values())


def test_plan_roster_import_rejects_roll_already_used_in_class():
    csv = (
        "name,class,rollNumber\n"
        "Emon,Class-9,0005\n"
        "Farhana,Class-9,0005\n"
        "Gias,Class-9,1\n"
        "Hasan,Class-10,0005\n"
    ).encode("utf-8")
    df = read_roster(csv, "roster.csv")
    records = [IdentifierRecord(global_id="STD001", scoped_id="0001", scope_key="Class-9")]

    plans = plan_roster_import(df, records, SETTINGS)

    assert [p["ok"] for p in plans] == [True, False, False, True]
    assert plans[0]["roll_number"] == "0005"
    assert plans[1]["error"] == "Roll number 0005 is already used in Class-9"
    assert plans[2]["error"] == "Roll number 1 is already used in Class-9"
    # same roll in another class is fine
    assert plans[3]["roll_number"] == "0005"
    assert plans[3]["class_name"] == "Class-10"
