from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from resource_registry.db.models.resource import DEFAULT_APP_NAME


def _field_or_column(name: str) -> AliasChoices:
    """Accept both the snake_case field name and the persisted CamelCase column name."""
    return AliasChoices(name, to_pascal(name))


class ResourceFields(BaseModel):
    """
    Mutable resource attributes shared by create, update and read models.

    No length or range limits here: rows written by other clients (or legacy
    rows on SQLite, which ignores VARCHAR lengths) must still read back.
    """
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(validation_alias=_field_or_column),
    )

    alias: Optional[str] = Field(None, description="Short name, unique within an application")
    route: Optional[str] = Field(None, description="Route path")
    title: Optional[str] = Field(None, description="Display title")
    description: Optional[str] = None
    sysop_user_id: Optional[str] = Field(None, description="Owner (sysop) user reference")
    is_public: Optional[bool] = Field(True, description="Public (True) or members-only (False)")
    group_name: Optional[str] = Field(None, description="Optional clustering label")
    group_order: Optional[int] = Field(0, description="Rank within the group")
    display_order: Optional[int] = Field(0, description="Rank within the application's full list")
    mail_enable: Optional[bool] = Field(False, description="Legacy flag, not used")
    show_list: Optional[bool] = Field(True, description="Visible in the resource list")
    main_show_list: Optional[bool] = Field(True, description="Visible on the main page")
    header_html: Optional[str] = Field(None, description="HTML fragment rendered above the resource")
    footer_html: Optional[str] = Field(None, description="HTML fragment rendered below the resource")
    app_name: Optional[str] = Field(DEFAULT_APP_NAME, description="Owning application")
    step: Optional[int] = Field(0, description="Hierarchy depth (0 = root)")


class ResourceInput(ResourceFields):
    """Resource attributes as accepted from callers, limited to the column sizes."""
    alias: Optional[str] = Field(None, max_length=50, description="Short name, unique within an application")
    route: Optional[str] = Field(None, max_length=255, description="Route path")
    title: Optional[str] = Field(None, max_length=50, description="Display title")
    description: Optional[str] = Field(None, max_length=200)
    sysop_user_id: Optional[str] = Field(None, max_length=50, description="Owner (sysop) user reference")
    group_name: Optional[str] = Field(None, max_length=50, description="Optional clustering label")
    app_name: Optional[str] = Field(DEFAULT_APP_NAME, max_length=100, description="Owning application")
    step: Optional[int] = Field(0, ge=0, description="Hierarchy depth (0 = root)")


class ResourceCreate(ResourceInput):
    """Create resource payload."""
    created_by: Optional[str] = Field(None, max_length=255)
    created: Optional[datetime] = Field(None, description="Defaults to now (UTC)")


class ResourceUpdate(ResourceInput):
    """Full replacement of every mutable field of a resource."""
    modified_by: Optional[str] = Field(None, max_length=255)
    modified: Optional[datetime] = Field(None, description="Defaults to now (UTC)")


class ResourceRead(ResourceFields):
    """Resource read model."""
    id: int = Field(..., description="Resource ID")
    created_by: Optional[str] = Field(None)
    created: Optional[datetime] = Field(None)
    modified_by: Optional[str] = Field(None)
    modified: Optional[datetime] = Field(None)


class ResourcePage(BaseModel):
    """One page of a filtered resource listing plus the total filtered count."""
    items: List[ResourceRead] = Field(default_factory=list)
    total_count: int = Field(0, ge=0, description="Number of matching rows before paging")


class MoveResult(BaseModel):
    """Outcome of a move-up/move-down request."""
    id: int = Field(..., description="Resource ID")
    moved: bool = Field(..., description="False when already at the boundary or not movable")


class SeedEntry(BaseModel):
    """A required catalog row, identified by (alias, app_name)."""
    model_config = ConfigDict(frozen=True)

    alias: str
    title: str
    route: str
    description: str
    group_order: int
    step: int = 0
    app_name: str
