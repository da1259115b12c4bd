"""
Site Schemas

Request/response models for sites, versions and edit history.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

SUBDOMAIN_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"


class SiteBase(BaseModel):
    """Base site schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class SiteCreate(SiteBase):
    """Schema for creating a site, optionally from a template."""
    template_id: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    structure: Optional[Dict[str, Any]] = None
    subdomain: Optional[str] = Field(None, pattern=SUBDOMAIN_PATTERN)
    seo_settings: Dict[str, Any] = Field(default_factory=dict)


class SiteUpdate(BaseModel):
    """Schema for updating a site. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    structure: Optional[Dict[str, Any]] = None
    subdomain: Optional[str] = Field(None, pattern=SUBDOMAIN_PATTERN)
    seo_settings: Optional[Dict[str, Any]] = None
    analytics_config: Optional[Dict[str, Any]] = None


class SiteResponse(SiteBase):
    """Site response schema."""
    id: str
    owner_id: str
    template_id: Optional[str]
    settings: Dict[str, Any]
    structure: Dict[str, Any]
    version: int
    is_published: bool
    published_at: Optional[datetime]
    last_published_version: Optional[str]
    subdomain: Optional[str]
    custom_domain: Optional[str]
    seo_settings: Optional[Dict[str, Any]]
    analytics_config: Optional[Dict[str, Any]]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SiteListResponse(BaseModel):
    """Paginated list of sites."""
    sites: list[SiteResponse]
    total: int
    page: int
    page_size: int


class SiteCloneRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class SiteVersionResponse(BaseModel):
    id: str
    site_id: str
    version_number: int
    description: Optional[str]
    created_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SiteVersionDetail(SiteVersionResponse):
    structure: Dict[str, Any]
    settings: Dict[str, Any]


class HistoryPushRequest(BaseModel):
    state: Dict[str, Any]
    description: str = Field("Edit", max_length=255)


class HistoryResponse(BaseModel):
    """One edit history entry plus the navigation state after the move."""
    state: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    can_undo: bool
    can_redo: bool
    entries: List[str] = Field(default_factory=list)
