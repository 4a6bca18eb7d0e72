"""
Translation between the internal models and SCIM wire payloads
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from errors import MappingError
from models import Group, Membership, STATUS_ACTIVE, STATUS_INACTIVE, User
from scim_models import (
    CUSTOM_GROUP_EXTENSION,
    ENTERPRISE_USER_EXTENSION,
    GROUP_SCHEMA,
    PATCH_OP_SCHEMA,
    SAP_USER_EXTENSION,
    USER_SCHEMA,
    CustomGroupExtension,
    EnterpriseUserExtension,
    SapUserExtension,
    ScimAddress,
    ScimEmail,
    ScimGroup,
    ScimName,
    ScimUser,
)


logger = logging.getLogger(__name__)

DEFAULT_USER_TYPE = "public"

_timestamp = TypeAdapter(datetime)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the directory, or return None if it can't be read."""
    if not value:
        return None
    try:
        return _timestamp.validate_python(value)
    except ValidationError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None


# ---------- remote -> internal ----------

def user_from_scim(resource: Any) -> User:
    """Map a SCIM user resource to a User. Raises MappingError if the id is missing."""
    scim_user = ScimUser.from_dict(resource)
    name = scim_user.name or ScimName()
    sap = scim_user.sap or SapUserExtension()
    enterprise = scim_user.enterprise or EnterpriseUserExtension()
    address = scim_user.address
    return User(
        id=scim_user.id,
        login_name=scim_user.user_name,
        first_name=name.given_name,
        last_name=name.family_name,
        email=scim_user.email,
        status=STATUS_ACTIVE if scim_user.active else STATUS_INACTIVE,
        user_type=scim_user.user_type or DEFAULT_USER_TYPE,
        valid_from=sap.valid_from,
        valid_to=sap.valid_to,
        company=enterprise.organization,
        country=address.country,
        city=address.locality,
    )


def group_from_scim(resource: Any) -> Group:
    """Map a SCIM group resource to a Group. Raises MappingError if the id is missing."""
    scim_group = ScimGroup.from_dict(resource)
    custom = scim_group.custom or CustomGroupExtension()
    return Group(
        id=scim_group.id,
        display_name=scim_group.display_name,
        name=custom.name,
        description=custom.description,
    )


def memberships_from_scim(resource: Any) -> List[Membership]:
    """Expand the member list of a SCIM group resource into Membership records."""
    scim_group = ScimGroup.from_dict(resource)
    return [Membership(group_id=scim_group.id, user_id=member.value) for member in scim_group.members or []]


# ---------- internal -> remote ----------

def user_to_scim(user: User) -> Dict[str, Any]:
    schemas = [USER_SCHEMA]
    user_name = user.login_name or user.email or None

    sap = None
    if user.valid_from or user.valid_to:
        schemas.append(SAP_USER_EXTENSION)
        sap = SapUserExtension(user_id=user_name, valid_from=user.valid_from, valid_to=user.valid_to)

    enterprise = None
    if user.company:
        schemas.append(ENTERPRISE_USER_EXTENSION)
        enterprise = EnterpriseUserExtension(organization=user.company)

    name = None
    if user.first_name or user.last_name:
        name = ScimName(given_name=user.first_name, family_name=user.last_name)

    scim_user = ScimUser(
        schemas=schemas,
        id=user.id,
        user_name=user_name,
        name=name,
        emails=[ScimEmail(value=user.email)] if user.email else None,
        active=user.status == STATUS_ACTIVE,
        user_type=user.user_type or DEFAULT_USER_TYPE,
        addresses=[ScimAddress(country=user.country, locality=user.city)] if user.country or user.city else None,
        sap=sap,
        enterprise=enterprise,
    )
    return scim_user.to_dict()


def group_to_scim(group: Group) -> Dict[str, Any]:
    schemas = [GROUP_SCHEMA]
    custom = None
    if group.name or group.description:
        schemas.append(CUSTOM_GROUP_EXTENSION)
        custom = CustomGroupExtension(name=group.name, description=group.description)

    scim_group = ScimGroup(
        schemas=schemas,
        id=group.id,
        display_name=group.display_name,
        custom=custom,
    )
    return scim_group.to_dict()


def _patch(operation: Dict[str, Any]) -> Dict[str, Any]:
    return {"schemas": [PATCH_OP_SCHEMA], "Operations": [operation]}


def add_member_patch(user_id: str) -> Dict[str, Any]:
    """Build a PatchOp that adds a single member to a group."""
    return _patch({"op": "add", "path": "members", "value": [{"value": user_id}]})


def remove_member_patch(user_id: str) -> Dict[str, Any]:
    """Build a PatchOp that removes a single member, selected by id, from a group."""
    escaped = user_id.replace("\\", "\\\\").replace('"', '\\"')
    return _patch({"op": "remove", "path": f'members[value eq "{escaped}"]'})


def assigned_id(response: Any) -> str:
    """Read the identifier the directory assigned to a newly created resource."""
    resource_id = response.get("id") if isinstance(response, dict) else None
    if resource_id is None or resource_id == "":
        raise MappingError(f"Create response carries no id: {response!r}")
    return str(resource_id)
