"""
Pydantic schemas for permission administration.

Request and response models for the Core permission controllers.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ActionPermissionEntry(BaseModel):
    """One rule of the act_permission table, with names resolved."""
    actpermissionid: int
    service: str
    module: str
    action: str
    permission: str

    model_config = ConfigDict(from_attributes=True)


class PermissionTypeEntry(BaseModel):
    """A permission type shaped for a select field."""
    value: int
    text: str

    model_config = ConfigDict(from_attributes=True)


class ServiceEntry(BaseModel):
    """A managed service shaped for a select field."""
    value: int
    text: str
    enabled: bool

    model_config = ConfigDict(from_attributes=True)


class ServiceVersionEntry(BaseModel):
    version: str
    path: Optional[str] = None
    is_default: bool = False

    model_config = ConfigDict(from_attributes=True)


class ActionPermissionCreate(BaseModel):
    """
    Schema for assigning a permission rule.

    Omit `action` for a module-wide rule and `type_id` for global access.
    """
    module: str = Field(..., min_length=1, max_length=100, description="Module name")
    action: Optional[str] = Field(None, min_length=1, max_length=100, description="Action name (null for all actions)")
    type_id: Optional[int] = Field(None, description="Permission type (null for no permission required)")

    @field_validator("module", "action")
    @classmethod
    def no_path_separators(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and ("/" in v or "\\" in v):
            raise ValueError("Module and action names must not contain path separators")
        return v

    @model_validator(mode="after")
    def not_degenerate(self) -> "ActionPermissionCreate":
        if self.action is None and self.type_id is None:
            raise ValueError("A module-wide rule must require a permission type")
        return self
