"""School Settings page (school code, registration prefix, ID formats)."""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on PYTHONPATH when Streamlit runs pages
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from modules.identifier_allocator import compose_registration_code
from ui.database.db import db_session
from ui.database import crud
from ui.utils.validators import require_non_empty, validate_digits, validate_id, validate_positive_int


def main() -> None:
    st.title("School Settings")

    with db_session() as conn:
        s = crud.get_school_settings(conn)

    with st.form("school_settings_form"):
        school_name = st.text_input("School name", value=str(s.get("school_name") or ""))

        c1, c2 = st.columns(2)
        school_code = c1.text_input(
            "School code",
            value=str(s.get("school_code") or ""),
            help="Board-issued institution code, embedded in every registration number.",
        )
        year_prefix = c2.text_input(
            "Registration year prefix",
            value=str(s.get("registration_year_prefix") or ""),
            help="Usually the last two digits of the session year, e.g. 26.",
        )

        c3, c4, c5 = st.columns(3)
        id_prefix = c3.text_input("Student ID prefix", value=str(s.get("student_id_prefix") or "STD"))
        id_width = c4.number_input("Student ID digits", min_value=1, max_value=10, value=int(s.get("student_id_width", 3)))
        roll_width = c5.number_input("Roll number digits", min_value=1, max_value=10, value=int(s.get("roll_width", 4)))

        st.caption("Tip")
        st.info("Numbers longer than the digit count are never cut: with 3 digits, student 1000 becomes STD1000.")

        submitted = st.form_submit_button("Save Settings")

    if not submitted:
        return

    ok, msg = require_non_empty(school_name, "School name")
    if not ok:
        st.error(msg)
        return
    ok, msg = validate_digits(school_code, "School code", 3, 10)
    if not ok:
        st.error(msg)
        return
    ok, msg = validate_digits(year_prefix, "Registration year prefix", 2, 4)
    if not ok:
        st.error(msg)
        return
    ok, msg = validate_id(id_prefix, "Student ID prefix")
    if not ok:
        st.error(msg)
        return
    for value, field in [(int(id_width), "Student ID digits"), (int(roll_width), "Roll number digits")]:
        ok, msg = validate_positive_int(value, field, 1, 10)
        if not ok:
            st.error(msg)
            return

    with db_session() as conn:
        crud.update_school_settings(
            conn,
            school_name=school_name.strip(),
            school_code=school_code.strip(),
            registration_year_prefix=year_prefix.strip(),
            student_id_prefix=id_prefix.strip(),
            student_id_width=int(id_width),
            roll_width=int(roll_width),
        )

    example = compose_registration_code(year_prefix.strip(), school_code.strip(), "1".zfill(int(roll_width)))
    st.success(f"School settings saved. Example registration number: {example}")


if __name__ == "__main__":
    main()
