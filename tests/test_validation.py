from __future__ import annotations

import pytest

from appointme.models import UserPatch
from appointme.validation import is_valid_email, validate_user
from conftest import make_user


def test_valid_candidate_has_no_errors() -> None:
    result = validate_user(make_user())
    assert result.is_valid
    assert result.errors == []


def test_missing_fields_are_reported_in_fixed_order() -> None:
    result = validate_user({})
    assert not result.is_valid
    assert result.errors == [
        "firstName is required",
        "lastName is required",
        "email is required",
        "phone is required",
        "userType is required",
    ]


def test_whitespace_only_counts_as_blank() -> None:
    result = validate_user(make_user(firstName="   ", phone="\t"))
    assert result.errors == ["firstName is required", "phone is required"]


def test_blank_email_is_also_checked_for_format() -> None:
    result = validate_user(make_user(email="   "))
    assert result.errors == ["email is required", "Invalid email format"]


def test_errors_accumulate_without_short_circuit() -> None:
    result = validate_user(make_user(email="not-an-email", userType="guest", status="archived"))
    assert result.errors == ["Invalid email format", "Invalid user type", "Invalid status"]


def test_status_is_optional() -> None:
    assert validate_user(make_user(status="inactive")).is_valid
    assert validate_user(make_user(status="")).is_valid


def test_accepts_patch_objects_with_snake_case_fields() -> None:
    patch = UserPatch(first_name="Grace", last_name="Hopper", email="grace@navy.mil", phone="1", user_type="admin")
    assert validate_user(patch).is_valid
    assert validate_user(UserPatch.from_dict({"first_name": "Grace"})).errors[0] == "lastName is required"


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("a@b.com", True),
        ("first.last+tag@clinic.co.uk", True),
        ("a@b", False),
        ("a b@c.com", False),
        ("a@@b.com", False),
        ("@b.com", False),
    ],
)
def test_is_valid_email(email: str, expected: bool) -> None:
    assert is_valid_email(email) is expected


def test_non_text_values_are_reported_not_raised() -> None:
    result = validate_user(make_user(phone=["555", "0100"]))
    assert not result.is_valid
    assert result.errors == ["phone must be a text value"]
