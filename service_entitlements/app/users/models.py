"""
User data models for Entitlements Service.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator


class RawDirectoryEntry(BaseModel):
    """A user record exactly as listed by the Keycloak admin API."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    username: str = ""
    enabled: bool = False
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: str = ""
    attributes: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("username", "enabled", "first_name", "last_name", "email", "attributes", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        """Read JSON null the same as an absent field."""
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


DirectoryListing = TypeAdapter(List[RawDirectoryEntry])


class NormalizedUser(BaseModel):
    """Application-ready user record built from a directory entry."""

    model_config = ConfigDict(frozen=True)

    username: str
    id: int = Field(..., description="Numeric account id")
    email: str
    first_name: str
    last_name: str
    account_number: str
    address_string: str = "unknown"
    is_active: bool
    is_org_admin: bool
    is_internal: bool
    locale: str = "en_US"
    org_id: int
    display_name: str
    type: str = "User"
    entitlements: str
