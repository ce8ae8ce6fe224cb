"""Class Management page (CRUD).

Classes are the scope of roll numbers: each class numbers its students from 0001.
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
from ui.utils.validators import require_non_empty, validate_positive_int


def main() -> None:
    st.title("Class Management")

    with db_session() as conn:
        classes = crud.list_classes(conn)
        students = crud.list_students(conn)

    tab_add, tab_view = st.tabs(["Add / Update", "View / Delete"])

    with tab_add:
        st.subheader("Edit existing")
        options = ["(New class)"] + [c["class_name"] for c in classes]
        edit_class = st.selectbox("Select class", options=options)

        initial = None
        if edit_class != "(New class)":
            initial = next((c for c in classes if c.get("class_name") == edit_class), None)

        with st.form("class_form"):
            c1, c2, c3 = st.columns([2, 1, 1])
            class_name = c1.text_input(
                "Class name",
                value=(initial.get("class_name") if initial else ""),
                disabled=bool(initial),
                placeholder="৯ম শ্রেণি / Class-9",
                help="Class name can’t be changed once students use it as their roll-number scope.",
            )
            sort_order = c2.number_input(
                "Sort order",
                min_value=0,
                max_value=100,
                value=int((initial.get("sort_order", 0) if initial else len(classes) + 1)),
            )
            capacity = c3.number_input(
                "Capacity (0 = unlimited)",
                min_value=0,
                max_value=500,
                value=int((initial.get("capacity") or 0) if initial else 0),
            )

            submitted = st.form_submit_button("Save Class")

        if submitted:
            ok, msg = require_non_empty(class_name, "Class name")
            if not ok:
                st.error(msg)
                st.stop()
            if int(capacity) > 0:
                ok, msg = validate_positive_int(int(capacity), "Capacity", 1, 500)
                if not ok:
                    st.error(msg)
                    st.stop()

            with db_session() as conn:
                crud.upsert_class(
                    conn,
                    class_name=class_name.strip(),
                    sort_order=int(sort_order),
                    capacity=int(capacity) or None,
                )

            st.success("Class saved.")

    with tab_view:
        if not classes:
            st.info("No classes yet.")
            return

        counts = {}
        for s in students:
            counts[s.get("class_name")] = counts.get(s.get("class_name"), 0) + 1

        df = pd.DataFrame(classes)
        df["students"] = [counts.get(c["class_name"], 0) for c in classes]
        st.dataframe(df, use_container_width=True)

        st.divider()
        st.subheader("Delete class")
        cname = st.selectbox("Select class", options=[c["class_name"] for c in classes], key="delete_class")
        if counts.get(cname):
            st.caption(f"{counts[cname]} students keep their class and roll numbers after the class is deleted.")
        if st.button("Delete", type="primary"):
            with db_session() as conn:
                crud.delete_class(conn, cname)
            st.success(f"Deleted {cname}")
            st.rerun()


if __name__ == "__main__":
    main()
