import pytest

from edumeal.services.webhook_parser import extract_grade, parse_student_identity


def test_bare_school_id():
    p = parse_student_identity("STU009")
    assert p.school_id == "STU009"
    assert (p.first_name, p.last_name) == ("Unknown", "Student")
    assert {"first_name", "last_name", "grade"} <= p.from_fallback


def test_name_and_school_id():
    p = parse_student_identity("Amina C2001")
    assert p.school_id == "C2001"
    assert p.first_name == "Amina"
    assert p.last_name == "Student"
    assert "last_name" in p.from_fallback


def test_full_name_and_school_id():
    p = parse_student_identity("  Mary Jane Watson   C2002 ")
    assert p.school_id == "C2002"
    assert p.first_name == "Mary"
    assert p.last_name == "Jane Watson"
    assert "first_name" not in p.from_fallback


def test_explicit_grade_wins_over_text():
    p = parse_student_identity("C1", grade="7", texts=["Grade 3 lunch"])
    assert p.grade == "7"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Monthly lunch - Grade 5A", "5A"),
        ("grade12", "12"),
        ("Termly plan G 4b", "4B"),
        ("weekly meals", None),
    ],
)
def test_extract_grade(text, expected):
    assert extract_grade([text]) == expected


def test_grade_prefers_grade_keyword_across_texts():
    assert extract_grade(["G2 bundle", "Grade 6"]) == "6"


def test_grade_defaults_to_placeholder():
    p = parse_student_identity("C1", texts=[None, "daily"])
    assert p.grade == "Unassigned"
    assert "grade" in p.from_fallback


def test_empty_identifier_raises():
    with pytest.raises(ValueError):
        parse_student_identity("   ")
