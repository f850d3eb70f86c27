"""
Tests for CSV parsing, column projection, and row normalization.
"""

import pytest

from students.columns import COLUMNS
from students.errors import CsvParseError
from students.institutes import PASSTHROUGH, Resolution
from students.normalize import RowNormalizer, clean_text, map_csv_rows, parse_csv, strip_quote_padding

pytestmark = pytest.mark.pipeline


class StubInstitutes:
    def __init__(self, mapping=None):
        self.mapping = mapping or {}
        self.calls = []

    def resolve(self, raw):
        self.calls.append(raw)
        return Resolution(self.mapping.get(raw, raw), PASSTHROUGH)


class StubCourses:
    def __init__(self, course_id=None):
        self.course_id = course_id
        self.calls = []

    def resolve(self, inst_id, description):
        self.calls.append((inst_id, description))
        return self.course_id


def test_clean_text():
    assert clean_text("  x ") == "x"
    assert clean_text("   ") is None
    assert clean_text(None) is None
    assert clean_text(12) == "12"


def test_parse_csv_canonicalizes_headers_and_trims():
    payload = b'Student Name , Roll No,Phone Number\n"Asha Rao","R-101","9999999999"\n'
    records = parse_csv(payload)
    assert records == [{"stuname": "Asha Rao", "stu_rollnumber": "R-101", "stumob1": "9999999999"}]


def test_parse_csv_skips_empty_lines_and_handles_crlf():
    payload = "name,roll\r\n\r\n  Ravi  , 7 \r\n\r\nMeena,8\r\n"
    records = parse_csv(payload)
    assert [r["stuname"] for r in records] == ["Ravi", "Meena"]
    assert records[0]["stu_rollnumber"] == "7"


def test_parse_csv_drops_utf8_bom():
    records = parse_csv("\ufeffStudent ID,name\n1,A\n".encode("utf-8"))
    assert records == [{"stuid": "1", "stuname": "A"}]


def test_parse_csv_quoted_field_after_comma_space():
    records = parse_csv('Student Name, Roll No\n"Asha Rao", "R-101"\n')
    assert records == [{"stuname": "Asha Rao", "stu_rollnumber": "R-101"}]


def test_parse_csv_blank_after_closing_quote():
    records = parse_csv('Student Name,Roll No\n"Asha Rao" ,R-101\n"Ravi, K"\t, "R-102"  \n')
    assert records == [
        {"stuname": "Asha Rao", "stu_rollnumber": "R-101"},
        {"stuname": "Ravi, K", "stu_rollnumber": "R-102"},
    ]


def test_parse_csv_skips_whitespace_only_lines():
    records = parse_csv("Student Name,Roll No\nAsha,R-1\n   \n\t\nRavi,R-2\n  ")
    assert [r["stuname"] for r in records] == ["Asha", "Ravi"]


def test_parse_csv_keeps_escaped_quotes_and_literal_quotes():
    records = parse_csv('name,note\n"Asha ""A"" Rao" ,5" screen\n')
    assert records == [{"stuname": 'Asha "A" Rao', "note": '5" screen'}]


def test_strip_quote_padding_leaves_quoted_content_alone():
    text = '"a "" , b" ,c\n'
    assert strip_quote_padding(text) == '"a "" , b",c\n'


def test_parse_csv_header_only_has_no_records():
    assert parse_csv(b"name,roll\n") == []


def test_parse_csv_rejects_ragged_rows():
    with pytest.raises(CsvParseError) as excinfo:
        parse_csv(b"name,roll\nA,1\nB\n")
    assert "expected 2 fields" in str(excinfo.value)


def test_parse_csv_rejects_invalid_utf8():
    with pytest.raises(CsvParseError):
        parse_csv(b"name\n\xff\xfe\n")


def test_parse_csv_rejects_broken_quoting():
    with pytest.raises(CsvParseError):
        parse_csv(b'name,roll\n"A"x,1\n')


def test_map_csv_rows_projects_and_warns():
    records = [{"stuname": "Asha Rao", "stu_rollnumber": "R-101", "stumob1": "9", "Hobby": "chess"}]
    rows, warnings = map_csv_rows(records)
    assert list(rows[0].keys()) == list(COLUMNS)
    assert "Hobby" not in rows[0]
    assert rows[0]["stuname"] == "Asha Rao"
    assert rows[0]["stuid"] is None
    (warning,) = warnings
    assert warning["type"] == "missing_columns"
    assert warning["note"]
    assert "stuname" not in warning["columns"]
    assert len(warning["columns"]) == 16


def test_map_csv_rows_without_missing_columns_has_no_warning():
    record = {col: "x" for col in COLUMNS}
    rows, warnings = map_csv_rows([record])
    assert warnings == []
    assert rows == [record]


def test_map_csv_rows_empty():
    assert map_csv_rows([]) == ([], [])


def test_normalizer_trims_and_nulls():
    row = {col: None for col in COLUMNS}
    row.update(stuname="  Asha  ", stumob1="", stu_inst_id="  ")
    out = RowNormalizer(StubInstitutes(), StubCourses()).normalize(row)
    assert out["stuname"] == "Asha"
    assert out["stumob1"] is None
    assert out["stu_inst_id"] is None


def test_normalizer_resolves_institute_and_fills_course():
    row = {col: None for col in COLUMNS}
    row.update(stu_inst_id="SVIST", programdescription=" B.Tech CSE ")
    institutes = StubInstitutes({"SVIST": "CID_001"})
    courses = StubCourses("C-100")
    out = RowNormalizer(institutes, courses).normalize(row)
    assert out["stu_inst_id"] == "CID_001"
    assert out["stu_course_id"] == "C-100"
    assert courses.calls == [("CID_001", "B.Tech CSE")]


def test_normalizer_keeps_explicit_course():
    row = {col: None for col in COLUMNS}
    row.update(stu_course_id="C-7", programdescription="MBA")
    courses = StubCourses("C-100")
    out = RowNormalizer(StubInstitutes(), courses).normalize(row)
    assert out["stu_course_id"] == "C-7"
    assert courses.calls == []


def test_normalizer_unresolved_course_stays_null():
    row = {col: None for col in COLUMNS}
    row.update(programdescription="Nothing Matches")
    out = RowNormalizer(StubInstitutes(), StubCourses(None)).normalize(row)
    assert out["stu_course_id"] is None


def test_normalizer_subset_of_columns():
    # Partial updates only carry the keys that were sent.
    out = RowNormalizer(StubInstitutes(), StubCourses()).normalize(
        {"stuname": " Ravi ", "ignored": "x"}, columns=["stuname"]
    )
    assert out == {"stuname": "Ravi"}
