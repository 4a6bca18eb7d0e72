"""
Tests for mapping between internal models and SCIM payloads
"""

from datetime import datetime, timezone

import pytest

from errors import MappingError
from models import Group, MembershipKey, User
from schema_mapper import (
    add_member_patch,
    assigned_id,
    group_from_scim,
    group_to_scim,
    memberships_from_scim,
    parse_timestamp,
    remove_member_patch,
    user_from_scim,
    user_to_scim,
)
from scim_models import (
    CUSTOM_GROUP_EXTENSION,
    ENTERPRISE_USER_EXTENSION,
    GROUP_SCHEMA,
    PATCH_OP_SCHEMA,
    SAP_USER_EXTENSION,
    USER_SCHEMA,
)


def set_fields(record):
    return {name: value for name, value in record.get_attrs().items() if value is not None}


def contains_empty_value(payload):
    if isinstance(payload, dict):
        return any(v is None or v == "" or contains_empty_value(v) for v in payload.values())
    if isinstance(payload, list):
        return any(contains_empty_value(v) for v in payload)
    return False


BASIC_USER = dict(
    id="u-1",
    login_name="jdoe",
    first_name="Jane",
    last_name="Doe",
    email="jane.doe@example.com",
    status="Active",
    user_type="employee",
)


def test_user_round_trip_without_extensions():
    user = User(**BASIC_USER)

    payload = user_to_scim(user)
    restored = user_from_scim(payload)

    assert payload["schemas"] == [USER_SCHEMA]
    assert restored.id == "u-1"
    assert set_fields(restored) == set_fields(user)


def test_user_round_trip_with_all_extensions():
    user = User(
        **BASIC_USER,
        valid_from=datetime(2024, 1, 1, tzinfo=timezone.utc),
        valid_to=datetime(2030, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
        company="ACME Corp",
        country="DE",
        city="Berlin",
    )

    payload = user_to_scim(user)
    restored = user_from_scim(payload)

    assert payload["schemas"] == [USER_SCHEMA, SAP_USER_EXTENSION, ENTERPRISE_USER_EXTENSION]
    assert payload[SAP_USER_EXTENSION] == {
        "userId": "jdoe",
        "validFrom": "2024-01-01T00:00:00Z",
        "validTo": "2030-12-31T23:59:59Z",
    }
    assert payload["addresses"][0]["locality"] == "Berlin"
    assert set_fields(restored) == set_fields(user)


def test_user_round_trip_inactive_with_partial_extensions():
    user = User(id="u-2", login_name="temp", status="Inactive", user_type="partner",
                valid_to=datetime(2025, 6, 30, 12, 0), city="Lyon")

    restored = user_from_scim(user_to_scim(user))

    assert set_fields(restored) == set_fields(user)
    assert restored.country is None


def test_enterprise_extension_only_with_company():
    payload = user_to_scim(User(login_name="jdoe", company=""))

    assert ENTERPRISE_USER_EXTENSION not in payload["schemas"]
    assert ENTERPRISE_USER_EXTENSION not in payload
    assert SAP_USER_EXTENSION not in payload
    assert "addresses" not in payload


def test_user_payload_omits_empty_fields():
    payload = user_to_scim(User(email="solo@example.com"))

    assert not contains_empty_value(payload), f"Empty values in {payload}"
    assert payload["userName"] == "solo@example.com"
    assert "name" not in payload
    assert "id" not in payload
    assert payload["active"] is False
    assert payload["userType"] == "public"


def test_minimal_remote_user_gets_defaults():
    user = user_from_scim({"id": "u-1"})

    assert user.status == "Inactive"
    assert user.user_type == "public"
    assert user.login_name is None
    assert user.valid_from is None
    assert user.company is None


def test_malformed_optional_fields_are_skipped():
    user = user_from_scim({
        "id": "u-1",
        "userName": "jdoe",
        "name": "Jane Doe",
        "emails": "jane@example.com",
        "active": "yes",
        "addresses": ["Main Street", {"country": "FR"}],
        SAP_USER_EXTENSION: {"validFrom": "not a date", "validTo": None},
        ENTERPRISE_USER_EXTENSION: ["ACME"],
    })

    assert user.login_name == "jdoe"
    assert user.first_name is None
    assert user.email is None
    assert user.status == "Inactive"
    assert user.country == "FR"
    assert user.valid_from is None
    assert user.company is None


@pytest.mark.parametrize("resource", [{"userName": "no-id"}, {"id": ""}, {"id": None}, "u-1", None])
def test_user_without_id_is_a_mapping_error(resource):
    with pytest.raises(MappingError):
        user_from_scim(resource)


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00+00:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00") == datetime(2024, 5, 1, 10)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None
    assert parse_timestamp("2024-05-01T10:00:00.12+00:00") == datetime(2024, 5, 1, 10, 0, 0, 120000, tzinfo=timezone.utc)


def test_validity_extension_carries_user_id_falling_back_to_email():
    payload = user_to_scim(User(email="solo@example.com", valid_from=datetime(2024, 1, 1, tzinfo=timezone.utc)))

    assert payload["schemas"] == [USER_SCHEMA, SAP_USER_EXTENSION]
    assert payload[SAP_USER_EXTENSION] == {"userId": "solo@example.com", "validFrom": "2024-01-01T00:00:00Z"}


def test_validity_window_with_fractional_seconds():
    user = user_from_scim({
        "id": "u-1",
        SAP_USER_EXTENSION: {"validFrom": "2024-01-01T08:30:00.12Z", "validTo": "2031-01-01T00:00:00.5+02:00"},
    })

    assert user.valid_from == datetime(2024, 1, 1, 8, 30, 0, 120000, tzinfo=timezone.utc)
    assert user.valid_to == datetime(2030, 12, 31, 22, 0, 0, 500000, tzinfo=timezone.utc)


def test_group_round_trip_with_custom_extension():
    group = Group(id="g-1", display_name="Developers", name="devs", description="All developers")

    payload = group_to_scim(group)
    restored = group_from_scim(payload)

    assert payload["schemas"] == [GROUP_SCHEMA, CUSTOM_GROUP_EXTENSION]
    assert payload[CUSTOM_GROUP_EXTENSION] == {"name": "devs", "description": "All developers"}
    assert restored.get_attrs() == group.get_attrs()


def test_group_without_extension_fields():
    payload = group_to_scim(Group(display_name="Readers"))

    assert payload == {"schemas": [GROUP_SCHEMA], "displayName": "Readers"}


def test_memberships_from_group_members():
    memberships = memberships_from_scim({
        "id": "g-1",
        "displayName": "Developers",
        "members": [{"value": "u-1"}, {"display": "no value"}, "u-2", {"value": "u-3", "display": "Carol"}],
    })

    assert [m.get_key() for m in memberships] == [MembershipKey("g-1", "u-1"), MembershipKey("g-1", "u-3")]


def test_group_without_members():
    assert memberships_from_scim({"id": "g-1"}) == []
    assert memberships_from_scim({"id": "g-1", "members": None}) == []


def test_add_member_patch():
    assert add_member_patch("u-5") == {
        "schemas": [PATCH_OP_SCHEMA],
        "Operations": [{"op": "add", "path": "members", "value": [{"value": "u-5"}]}],
    }


def test_remove_member_patch():
    assert remove_member_patch("u-5") == {
        "schemas": [PATCH_OP_SCHEMA],
        "Operations": [{"op": "remove", "path": 'members[value eq "u-5"]'}],
    }
    assert remove_member_patch('odd"id')["Operations"][0]["path"] == 'members[value eq "odd\\"id"]'


def test_assigned_id():
    assert assigned_id({"id": "g-42", "displayName": "x"}) == "g-42"
    with pytest.raises(MappingError):
        assigned_id({"displayName": "x"})
    with pytest.raises(MappingError):
        assigned_id(None)
