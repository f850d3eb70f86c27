"""
Canonical student_master columns and the CSV header alias table.

Headers are matched on a "loosened" key: lower-cased with whitespace and
the characters - _ : / . ( ) removed. Both machine-style headers
(``stu_enrollmentnumber``) and human labels (``Enrollment No``) resolve to
the same canonical column.
"""

from __future__ import annotations

import re
from types import MappingProxyType

ID_COLUMN = "stuid"

# Order matters: statements and parameter lists are built from this tuple.
COLUMNS = (
    "stuid",
    "stu_enrollmentnumber",
    "stu_rollnumber",
    "stu_regn_number",
    "stuname",
    "stumob1",
    "stucaste",
    "stugender",
    "studob",
    "stuadmissiondt",
    "stu_course_id",
    "stuparentname",
    "stuprentmob1",
    "stu_inst_id",
    "programdescription",
    "stu_mother_name",
    "admission_officer_name",
    "academic_year",
    "quta",
)

DATA_COLUMNS = tuple(col for col in COLUMNS if col != ID_COLUMN)
ACCEPT_COLUMNS = frozenset(COLUMNS)

_LOOSE_CHARS = re.compile(r"[\s_\-:/().]+")

# canonical column -> accepted header spellings (any case/punctuation)
_ALIASES = {
    "stuid": ("studentid", "id", "Student ID"),
    "stu_enrollmentnumber": (
        "enrollment",
        "enrolment",
        "enrollmentno",
        "enrollmentnumber",
        "enrolmentno",
        "enrolmentnumber",
        "Enrollment No",
        "enrolment no",
    ),
    "stu_rollnumber": ("roll", "rollno", "rollnumber", "Roll No"),
    "stu_regn_number": ("registrationno", "regno", "regnno", "Registration No"),
    "stuname": ("name", "studentname", "Student Name"),
    "stumob1": ("phone", "Phone Number", "mobileno", "mobile", "contact"),
    "stucaste": ("caste", "category", "Caste/Category"),
    "stugender": ("Gender",),
    "studob": ("dob", "dateofbirth", "Date of Birth"),
    "stuadmissiondt": ("admissiondate", "Admission Date", "dateofadmission"),
    "stu_course_id": ("course", "courseid", "Course ID"),
    "stuparentname": ("fathername", "parentname", "guardianname", "Father's Name"),
    "stu_mother_name": ("mothername", "Mother's Name"),
    "stuprentmob1": ("parentphone", "guardianphone", "parentmobile", "Parent Phone"),
    "stu_inst_id": ("instituteid", "Institute ID", "instid", "collegeid"),
    "admission_officer_name": ("admissionofficer", "Admission Officer", "officername"),
    "academic_year": ("academicyear", "Academic Year", "year"),
    "quta": ("quota", "Quota"),
    "programdescription": (
        "program",
        "programdesc",
        "program description",
        "Course Description",
    ),
}


def loosen_key(header) -> str:
    """Reduce a header to its alias lookup key."""
    if header is None:
        return ""
    return _LOOSE_CHARS.sub("", str(header).strip().lower())


def _build_alias_table() -> MappingProxyType:
    table = {}
    for column in COLUMNS:
        table[loosen_key(column)] = column
    for column, aliases in _ALIASES.items():
        for alias in aliases:
            table[loosen_key(alias)] = column
    return MappingProxyType(table)


HEADER_ALIASES = _build_alias_table()


def canonicalize_header(header: str) -> str:
    """Return the canonical column for a header, or the header unchanged."""
    return HEADER_ALIASES.get(loosen_key(header), header)


def missing_columns(headers) -> list[str]:
    """Canonical columns (in canonical order) absent from ``headers``."""
    present = set(headers)
    return [col for col in COLUMNS if col not in present]
