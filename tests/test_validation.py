import pytest

from shared.errors import ValidationError
from shared.validation import Rule, check, is_email, matches, min_length, parse_id, required


RULES = [
    Rule("name", required, "Name is required"),
    Rule("email", is_email, "Please include a valid email"),
    Rule("password", min_length(6), "Too short"),
    Rule("password2", matches("password"), "Passwords do not match"),
]


def test_valid_data_passes():
    check({"name": "Ada", "email": "ada@example.com", "password": "123456"}, RULES)


def test_all_failures_are_reported_in_rule_order():
    with pytest.raises(ValidationError) as exc_info:
        check({"name": " ", "email": "ada@", "password": "12345", "password2": "x"}, RULES)
    assert [e["field"] for e in exc_info.value.errors] == ["name", "email", "password", "password2"]
    assert exc_info.value.to_body()["errors"][0] == {"field": "name", "message": "Name is required"}


@pytest.mark.parametrize("value,expected", [
    (None, False),
    ("", False),
    ("   ", False),
    ("x", True),
    (0, True),
])
def test_required(value, expected):
    assert required(value, {}) is expected


def test_is_email():
    assert is_email("someone@example.com", {})
    assert not is_email("someone", {})
    assert not is_email(None, {})


def test_matches_allows_missing_confirmation():
    predicate = matches("password")
    assert predicate(None, {"password": "abc"})
    assert predicate("abc", {"password": "abc"})
    assert not predicate("abd", {"password": "abc"})


def test_single_message_error():
    err = ValidationError("Post already liked")
    assert err.status_code == 400
    assert err.to_body() == {"errors": [{"field": None, "message": "Post already liked"}]}


@pytest.mark.parametrize("raw,expected", [
    ("42", 42),
    ("0", 0),
    ("2147483647", 2147483647),
    ("2147483648", None),
    ("99999999999999999999", None),
    ("+1", None),
    ("-1", None),
    ("1_0", None),
    (" 1", None),
    ("", None),
    ("abc", None),
])
def test_parse_id(raw, expected):
    assert parse_id(raw) == expected
