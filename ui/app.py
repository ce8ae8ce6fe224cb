"""Main Streamlit app entrypoint.

Run:
    streamlit run ui/app.py

"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on PYTHONPATH when Streamlit runs this file
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ui.database.db import db_session


logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

st.set_page_config(
    page_title="School Admin",
    page_icon="🏫",
    layout="wide",
)


def _inject_css() -> None:
    st.markdown(
        """
        <style>
        .block-container { padding-top: 1.2rem; }
        div[data-testid="stMetric"] { background: #0b1220; border: 1px solid rgba(255,255,255,0.08); padding: 12px; border-radius: 12px; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def main() -> None:
    _inject_css()

    with db_session() as conn:
        from ui.database import crud

        settings = crud.get_school_settings(conn)
        classes = crud.list_classes(conn)
        students = crud.list_students(conn)

    st.sidebar.title(str(settings.get("school_name") or "School Admin"))
    st.sidebar.caption(f"School code {settings.get('school_code')}")

    st.title("Dashboard")
    st.write("Use the sidebar pages to manage classes, admit students, import rosters and edit school settings.")

    pending = [s for s in students if not s.get("is_approved")]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Students", len(students))
    c2.metric("Active", sum(1 for s in students if s.get("is_active")))
    c3.metric("Pending approval", len(pending))
    c4.metric("Classes", len(classes))

    st.divider()
    st.subheader("What’s next")
    if not classes:
        st.info("Set the school code in School Settings, add Classes, then admit Students.")
    elif pending:
        st.info(f"{len(pending)} admission(s) waiting for approval on the Students page.")
    else:
        st.info("All admissions are approved.")


if __name__ == "__main__":
    main()
