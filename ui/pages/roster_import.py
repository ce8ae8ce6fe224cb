"""Roster Import / Export page.

Upload a CSV or Excel roster; identifiers are planned for every row (rows
with their own roll number keep it), previewed, then saved in one go.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

# Ensure project root is on PYTHONPATH when Streamlit runs pages
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ui.database.db import db_session
from ui.database import crud
from ui.utils.id_generator import import_planned_students
from ui.utils.validators import validate_unique
from utils.roster_io import (
    dataframe_to_csv_bytes,
    dataframe_to_excel_bytes,
    plan_roster_import,
    read_roster,
    students_to_dataframe,
)


def main() -> None:
    st.title("Roster Import / Export")

    with db_session() as conn:
        classes = crud.list_classes(conn)
        settings = crud.get_school_settings(conn)

    tab_import, tab_export = st.tabs(["Import", "Export"])

    with tab_import:
        st.caption("Columns: name, class, studentId (optional), rollNumber (optional), registrationNumber (optional), ...")
        uploaded = st.file_uploader("Roster file", type=["csv", "xlsx"])
        default_class = st.selectbox(
            "Class for rows without one",
            options=["(None)"] + [c["class_name"] for c in classes],
        )
        approve = st.checkbox("Mark imported students as approved", value=True)

        if uploaded is None:
            return

        try:
            df = read_roster(uploaded.getvalue(), uploaded.name)
        except ValueError as exc:
            st.error(str(exc))
            return

        if "student_id" in df.columns:
            ok, msg = validate_unique(df["student_id"].tolist(), "studentId column")
            if not ok:
                st.warning(f"{msg}; duplicates will get new IDs.")

        with db_session() as conn:
            plans = plan_roster_import(
                df,
                crud.list_identifier_records(conn),
                settings,
                default_class=None if default_class == "(None)" else default_class,
            )

        st.subheader("Preview")
        st.dataframe(pd.DataFrame(plans), use_container_width=True)

        bad = [p for p in plans if not p["ok"]]
        if bad:
            st.warning(f"{len(bad)} row(s) will be skipped.")

        if st.button("Import students", type="primary"):
            with db_session() as conn:
                outcomes = import_planned_students(conn, plans, approved=bool(approve))
            saved = sum(1 for o in outcomes if o["ok"])
            st.success(f"Imported {saved} of {len(outcomes)} rows.")
            failed = [o for o in outcomes if not o["ok"]]
            if failed:
                st.dataframe(pd.DataFrame(failed), use_container_width=True)

    with tab_export:
        with db_session() as conn:
            students = crud.list_students(conn)

        if not students:
            st.info("No students yet.")
            return

        df = students_to_dataframe(students, roll_width=int(settings.get("roll_width") or 4))
        st.dataframe(df, use_container_width=True)

        c1, c2 = st.columns(2)
        c1.download_button(
            "Download CSV",
            data=dataframe_to_csv_bytes(df),
            file_name="students.csv",
            mime="text/csv",
        )
        c2.download_button(
            "Download Excel",
            data=dataframe_to_excel_bytes(df),
            file_name="students.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


if __name__ == "__main__":
    main()
