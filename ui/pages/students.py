"""Student Admission page (add / approve / delete).

Student ID, roll number and registration number are proposed as soon as a
class is picked and recomputed whenever the class changes. The values shown
are only a draft: the final ones are allocated again at save time.
"""

from __future__ import annotations

import logging
import sqlite3
import sys
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from modules.identifier_allocator import format_roll_number
from ui.database.db import db_session
from ui.database import crud
from ui.utils.id_generator import generate_student_identifiers, register_student
from ui.utils.validators import require_non_empty, validate_choice, validate_id, validate_phone


logger = logging.getLogger(__name__)

NO_CLASS = "(No class)"
GENDERS = ["Male", "Female", "Other"]


def _refresh_draft() -> None:
    """Recompute draft identifiers for the currently selected class."""

    class_name = st.session_state.get("draft_class")
    class_name = None if class_name in (None, NO_CLASS) else class_name
    with db_session() as conn:
        ids = generate_student_identifiers(conn, class_name=class_name)
    st.session_state["draft_student_id"] = ids.global_id
    st.session_state["draft_roll"] = ids.scoped_id
    st.session_state["draft_registration"] = ids.registration_code


def _taken_id_message(requested: Optional[str], assigned: str) -> Optional[str]:
    """Warning text when a typed Student ID was replaced; None if nothing to say."""

    requested = (requested or "").strip()
    if not requested or requested == assigned:
        return None
    return f"Student ID {requested} was taken; assigned {assigned}."


def main() -> None:
    st.title("Student Admission")

    with db_session() as conn:
        classes = crud.list_classes(conn)
        settings = crud.get_school_settings(conn)

    class_options = [NO_CLASS] + [c["class_name"] for c in classes]
    roll_width = int(settings.get("roll_width") or 4)

    tab_add, tab_view = st.tabs(["Admit student", "View / Approve / Delete"])

    with tab_add:
        if not classes:
            st.info("No classes yet. Add classes on the Classes page first (students can still be admitted without one).")

        st.selectbox("Class", options=class_options, key="draft_class", on_change=_refresh_draft)
        student_type = st.radio(
            "Student type",
            options=["new", "old"],
            format_func=lambda t: "New admission" if t == "new" else "Old / transfer student",
            horizontal=True,
        )

        if "draft_student_id" not in st.session_state:
            _refresh_draft()

        c_top1, c_top2 = st.columns([1, 1])
        if c_top1.button("Regenerate IDs"):
            _refresh_draft()
        c_top2.caption("Student ID is editable; if it is taken at save time a new one is assigned.")

        with st.form("student_form"):
            c1, c2, c3 = st.columns([1, 1, 1])
            student_id = c1.text_input("Student ID", value=st.session_state.get("draft_student_id", ""))
            if student_type == "old":
                roll_number = c2.text_input("Roll number (previous)", value="")
                registration_number = c3.text_input("Registration number (previous, optional)", value="")
            else:
                roll_number = c2.text_input("Roll number", value=st.session_state.get("draft_roll", ""), disabled=True)
                registration_number = c3.text_input(
                    "Registration number",
                    value=st.session_state.get("draft_registration", ""),
                    disabled=True,
                )

            c4, c5 = st.columns([2, 1])
            name = c4.text_input("Student name")
            gender = c5.selectbox("Gender", options=GENDERS)

            c6, c7, c8 = st.columns([1, 1, 1])
            guardian_name = c6.text_input("Guardian name")
            guardian_phone = c7.text_input("Guardian phone", placeholder="01XXXXXXXXX")
            email = c8.text_input("Email (optional)")

            approve_now = st.checkbox("Approve immediately", value=True)
            submitted = st.form_submit_button("Save Student")

        if submitted:
            ok, msg = require_non_empty(name, "Student name")
            if not ok:
                st.error(msg)
                st.stop()
            if student_id.strip():
                ok, msg = validate_id(student_id, "Student ID")
                if not ok:
                    st.error(msg)
                    st.stop()
            ok, msg = validate_choice(gender, "Gender", GENDERS)
            if not ok:
                st.error(msg)
                st.stop()
            ok, msg = validate_phone(guardian_phone, "Guardian phone")
            if not ok:
                st.error(msg)
                st.stop()
            if student_type == "old":
                ok, msg = require_non_empty(roll_number, "Roll number")
                if not ok:
                    st.error(msg)
                    st.stop()

            selected_class = st.session_state.get("draft_class")
            try:
                with db_session() as conn:
                    saved = register_student(
                        conn,
                        name=name.strip(),
                        class_name=None if selected_class in (None, NO_CLASS) else selected_class,
                        preferred_student_id=student_id.strip() or None,
                        student_type=student_type,
                        existing_roll=(roll_number.strip() or None) if student_type == "old" else None,
                        existing_registration=(registration_number.strip() or None) if student_type == "old" else None,
                        gender=gender,
                        guardian_name=guardian_name.strip() or None,
                        guardian_phone=guardian_phone.strip() or None,
                        email=email.strip() or None,
                        approved=bool(approve_now),
                    )
            except (crud.StoreError, sqlite3.Error):
                logger.exception("Saving student %r failed", name)
                st.error("Save failed, please try again.")
                st.stop()

            _refresh_draft()
            taken_msg = _taken_id_message(student_id, saved["student_id"])
            if taken_msg:
                st.warning(taken_msg)
            st.success(
                f"Student saved: {saved['student_id']} · Roll {saved['roll_number']} · Reg {saved['registration_number']}"
            )

    with tab_view:
        filter_class = st.selectbox("Filter by class", options=["(All)"] + class_options[1:], key="view_class")
        with db_session() as conn:
            students = crud.list_students(conn, class_name=None if filter_class == "(All)" else filter_class)

        if not students:
            st.info("No students yet.")
            return

        df = pd.DataFrame(students)
        df["roll_number"] = [format_roll_number(r, roll_width) for r in df["roll_number"]]
        st.dataframe(df, use_container_width=True)

        st.divider()
        st.subheader("Approve / delete student")
        sid = st.selectbox("Select Student ID", options=[s["student_id"] for s in students])
        c_a, c_d = st.columns(2)
        if c_a.button("Approve"):
            with db_session() as conn:
                crud.approve_student(conn, sid)
            st.success(f"Approved {sid}")
            st.rerun()
        if c_d.button("Delete", type="primary"):
            with db_session() as conn:
                crud.delete_student(conn, sid)
            st.success(f"Deleted {sid}")
            st.rerun()


if __name__ == "__main__":
    main()
