"""
Identity header data models for Entitlements Service.
"""

from pydantic import BaseModel, ConfigDict, Field


class IdentityUser(BaseModel):
    """User block of an identity record."""

    model_config = ConfigDict(extra="ignore")

    username: str


class Identity(BaseModel):
    """Identity block carried by the x-rh-identity header."""

    model_config = ConfigDict(extra="ignore")

    type: str
    user: IdentityUser


class XRHIdentity(BaseModel):
    """Top-level decoded x-rh-identity document."""

    model_config = ConfigDict(extra="ignore")

    identity: Identity


class IdentityAssertion(BaseModel):
    """Validated subject extracted from an identity header."""

    model_config = ConfigDict(frozen=True)

    subject_type: str = Field(..., description="Identity type, always 'User' once validated")
    username: str = Field(..., description="Directory username of the caller")
