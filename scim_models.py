"""
Typed wire records for SCIM 2.0 Users and Groups.

Records are decoded field by field: an absent or malformed optional field
becomes None, and only a missing resource id is fatal for the record being
decoded.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import MappingError


logger = logging.getLogger(__name__)

SCIM_MEDIA_TYPE = "application/scim+json"

USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"
SAP_USER_EXTENSION = "urn:ietf:params:scim:schemas:extension:sap:2.0:User"
ENTERPRISE_USER_EXTENSION = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"
CUSTOM_GROUP_EXTENSION = "urn:sap:cloud:scim:schemas:extension:custom:2.0:Group"
PATCH_OP_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"


def _text(value: Any) -> Optional[str]:
    """Return value as a string, or None for empty, null or structured values."""
    if value is None or value == "" or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _object_or_none(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


def _objects_or_none(value: Any) -> Optional[List[Any]]:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, (dict, BaseModel))]


class ScimModel(BaseModel):
    """Base for wire records: unknown keys are ignored, fields accept alias or name."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON payload with SCIM attribute names and empty values left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScimName(ScimModel):
    given_name: Optional[str] = Field(default=None, alias="givenName")
    family_name: Optional[str] = Field(default=None, alias="familyName")

    @field_validator("given_name", "family_name", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)


class ScimEmail(ScimModel):
    value: Optional[str] = None
    primary: bool = True

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("primary", mode="before")
    @classmethod
    def _coerce_flag(cls, value):
        return value is True


class ScimAddress(ScimModel):
    type: str = "home"
    primary: bool = False
    country: Optional[str] = None
    locality: Optional[str] = None

    @field_validator("country", "locality", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        return _text(value) or "home"

    @field_validator("primary", mode="before")
    @classmethod
    def _coerce_flag(cls, value):
        return value is True


class SapUserExtension(ScimModel):
    """Validity window of a user account."""
    user_id: Optional[str] = Field(default=None, alias="userId")
    valid_from: Optional[datetime] = Field(default=None, alias="validFrom")
    valid_to: Optional[datetime] = Field(default=None, alias="validTo")

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("valid_from", "valid_to", mode="wrap")
    @classmethod
    def _drop_unreadable_timestamp(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            logger.debug(f"Ignoring unreadable timestamp: {value!r}")
            return None


class EnterpriseUserExtension(ScimModel):
    organization: Optional[str] = None

    @field_validator("organization", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)


class CustomGroupExtension(ScimModel):
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)


class ScimResource(ScimModel):
    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return _text(value)

    @classmethod
    def from_dict(cls, payload: Any):
        """Decode a resource; raises MappingError only when the payload or its id is unusable."""
        kind = cls.__name__.replace("Scim", "")
        if not isinstance(payload, dict):
            raise MappingError(f"{kind} resource is not an object: {payload!r}")
        try:
            resource = cls.model_validate(payload)
        except ValidationError as e:
            raise MappingError(f"{kind} resource could not be decoded: {e}") from e
        if not resource.id:
            raise MappingError(f"{kind} resource has no id: {payload!r}")
        return resource


class ScimUser(ScimResource):
    schemas: List[str] = Field(default_factory=lambda: [USER_SCHEMA])
    user_name: Optional[str] = Field(default=None, alias="userName")
    name: Optional[ScimName] = None
    emails: Optional[List[ScimEmail]] = None
    active: bool = False
    user_type: Optional[str] = Field(default=None, alias="userType")
    addresses: Optional[List[ScimAddress]] = None
    sap: Optional[SapUserExtension] = Field(default=None, alias=SAP_USER_EXTENSION)
    enterprise: Optional[EnterpriseUserExtension] = Field(default=None, alias=ENTERPRISE_USER_EXTENSION)

    @field_validator("user_name", "user_type", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("name", "sap", "enterprise", mode="before")
    @classmethod
    def _coerce_object(cls, value):
        return _object_or_none(value)

    @field_validator("emails", "addresses", mode="before")
    @classmethod
    def _coerce_objects(cls, value):
        return _objects_or_none(value)

    @field_validator("active", mode="before")
    @classmethod
    def _coerce_active(cls, value):
        return value is True

    @field_validator("schemas", mode="before")
    @classmethod
    def _coerce_schemas(cls, value):
        if not isinstance(value, list):
            return [USER_SCHEMA]
        return [uri for uri in value if isinstance(uri, str)]

    @property
    def email(self) -> Optional[str]:
        return self.emails[0].value if self.emails else None

    @property
    def address(self) -> ScimAddress:
        return self.addresses[0] if self.addresses else ScimAddress()


class ScimMember(ScimModel):
    value: str
    display: Optional[str] = None

    @field_validator("display", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)


class ScimGroup(ScimResource):
    schemas: List[str] = Field(default_factory=lambda: [GROUP_SCHEMA])
    display_name: Optional[str] = Field(default=None, alias="displayName")
    custom: Optional[CustomGroupExtension] = Field(default=None, alias=CUSTOM_GROUP_EXTENSION)
    members: Optional[List[ScimMember]] = None

    @field_validator("display_name", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("custom", mode="before")
    @classmethod
    def _coerce_object(cls, value):
        return _object_or_none(value)

    @field_validator("members", mode="before")
    @classmethod
    def _keep_members_with_value(cls, value):
        """Members without a usable value are dropped."""
        if not isinstance(value, list):
            return None
        return [
            dict(member, value=_text(member.get("value")))
            for member in value
            if isinstance(member, dict) and _text(member.get("value"))
        ]

    @field_validator("schemas", mode="before")
    @classmethod
    def _coerce_schemas(cls, value):
        if not isinstance(value, list):
            return [GROUP_SCHEMA]
        return [uri for uri in value if isinstance(uri, str)]
