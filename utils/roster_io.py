"""Student roster import/export (CSV / Excel).

Import accepts the spreadsheet layout schools already keep (camelCase
headers like `studentId`, `rollNumber` as well as snake_case) and plans the
identifiers for every row before anything is written. Each planned row is fed
back into the snapshot so a batch can never collide with itself.
"""

from __future__ import annotations

import io
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from modules.identifier_allocator import (
    AllocationRequest,
    IdentifierRecord,
    allocate_identifiers,
    allocator_options,
    format_roll_number,
    scoped_id_is_free,
)


# header (lowercased, no spaces/underscores) -> canonical column
_COLUMN_ALIASES = {
    "name": "name",
    "studentname": "name",
    "studentid": "student_id",
    "id": "student_id",
    "class": "class_name",
    "classname": "class_name",
    "rollnumber": "roll_number",
    "roll": "roll_number",
    "rollno": "roll_number",
    "registrationnumber": "registration_number",
    "registrationno": "registration_number",
    "regno": "registration_number",
    "gender": "gender",
    "guardianname": "guardian_name",
    "fathername": "guardian_name",
    "guardianphone": "guardian_phone",
    "fatherphone": "guardian_phone",
    "phonenumber": "guardian_phone",
    "email": "email",
}

ROSTER_COLUMNS = [
    "student_id",
    "name",
    "class_name",
    "roll_number",
    "registration_number",
    "gender",
    "guardian_name",
    "guardian_phone",
    "email",
    "student_type",
    "is_approved",
]


def _canonical(header: Any) -> str:
    key = str(header or "").strip().lower().replace(" ", "").replace("_", "").replace("-", "")
    return _COLUMN_ALIASES.get(key, str(header).strip())


def _safe_sheet_name(name: str) -> str:
    """Excel sheet names: max 31 chars, cannot contain: `: \\ / ? * [ ]`."""

    bad = [":", "\\", "/", "?", "*", "[", "]"]
    out = str(name or "Sheet")
    for b in bad:
        out = out.replace(b, "-")
    out = out.strip() or "Sheet"
    return out[:31]


def _cell(row: Dict[str, Any], key: str) -> Optional[str]:
    v = row.get(key)
    if v is None:
        return None
    s = str(v).strip()
    if not s or s.lower() == "nan":
        return None
    return s


def read_roster(data: bytes, filename: str) -> pd.DataFrame:
    """Load an uploaded roster file into a string-typed DataFrame."""

    name = str(filename or "").lower()
    if name.endswith((".xlsx", ".xlsm")):
        df = pd.read_excel(io.BytesIO(data), dtype=str, engine="openpyxl")
    elif name.endswith(".csv"):
        df = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False, encoding="utf-8-sig")
    else:
        raise ValueError(f"Unsupported roster file: {filename} (use .csv or .xlsx)")

    df = df.rename(columns={c: _canonical(c) for c in df.columns})
    return df.fillna("")


def plan_roster_import(
    df: pd.DataFrame,
    records: Sequence[IdentifierRecord],
    settings: Dict[str, Any],
    *,
    default_class: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Allocate identifiers for every roster row without touching the DB.

    Rows that bring their own roll number are treated as old students and keep
    it (and their registration number, if given). Rows without a name, and rows
    whose roll is already used in their class (by an existing student or an
    earlier row), are returned with `ok=False` and an `error` message.
    """

    snapshot: List[IdentifierRecord] = list(records)
    kw = allocator_options(settings)

    plans: List[Dict[str, Any]] = []
    for idx, row in enumerate(df.to_dict(orient="records"), start=1):
        name = _cell(row, "name")
        if not name:
            plans.append({"row": idx, "ok": False, "error": "Name is missing"})
            continue

        class_name = _cell(row, "class_name") or default_class
        roll = _cell(row, "roll_number")
        student_type = "old" if roll else "new"
        if roll and not scoped_id_is_free(snapshot, class_name, roll):
            plans.append(
                {"row": idx, "ok": False, "error": f"Roll number {roll} is already used in {class_name or 'no class'}"}
            )
            continue
        request = AllocationRequest(
            scope_key=class_name,
            preferred_global_id=_cell(row, "student_id"),
            student_type=student_type,
            existing_scoped_id=roll,
            existing_registration_code=_cell(row, "registration_number"),
        )
        result = allocate_identifiers(snapshot, request, **kw)
        snapshot.append(IdentifierRecord(global_id=result.global_id, scoped_id=result.scoped_id, scope_key=class_name))

        plans.append(
            {
                "row": idx,
                "ok": True,
                "error": "",
                "student_id": result.global_id,
                "roll_number": result.scoped_id,
                "registration_number": result.registration_code,
                "name": name,
                "class_name": class_name,
                "student_type": student_type,
                "gender": _cell(row, "gender"),
                "guardian_name": _cell(row, "guardian_name"),
                "guardian_phone": _cell(row, "guardian_phone"),
                "email": _cell(row, "email"),
            }
        )
    return plans


def students_to_dataframe(students: Iterable[Dict[str, Any]], *, roll_width: int = 4) -> pd.DataFrame:
    rows = []
    for s in students:
        r = {c: s.get(c) for c in ROSTER_COLUMNS}
        r["roll_number"] = format_roll_number(s.get("roll_number"), roll_width)
        rows.append(r)
    return pd.DataFrame(rows, columns=ROSTER_COLUMNS)


def dataframe_to_csv_bytes(df: pd.DataFrame) -> bytes:
    # BOM so Excel opens Bengali names correctly
    return df.to_csv(index=False).encode("utf-8-sig")


def dataframe_to_excel_bytes(df: pd.DataFrame, sheet_name: str = "Students") -> bytes:
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=_safe_sheet_name(sheet_name), index=False)
    return out.getvalue()
