"""
Page Schemas

Request/response models for pages nested under a site.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

PAGE_PATH_PATTERN = r"^/[A-Za-z0-9_\-/.]*$"


class PageBase(BaseModel):
    """Base page schema."""
    title: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., max_length=255, pattern=PAGE_PATH_PATTERN)


class PageCreate(PageBase):
    content: Dict[str, Any] = Field(default_factory=dict)
    seo_title: Optional[str] = Field(None, max_length=255)
    seo_description: Optional[str] = None
    seo_keywords: List[str] = Field(default_factory=list)
    layout: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[str] = None
    order: int = 0


class PageUpdate(BaseModel):
    """Schema for updating a page. All fields optional."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    path: Optional[str] = Field(None, max_length=255, pattern=PAGE_PATH_PATTERN)
    content: Optional[Dict[str, Any]] = None
    seo_title: Optional[str] = Field(None, max_length=255)
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None
    layout: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[str] = None
    order: Optional[int] = None
    status: Optional[str] = Field(None, pattern="^(draft|published|archived)$")


class PageSchedule(BaseModel):
    publish_at: datetime


class PageResponse(PageBase):
    id: str
    site_id: str
    content: Dict[str, Any]
    seo_title: Optional[str]
    seo_description: Optional[str]
    seo_keywords: Optional[List[str]]
    layout: Optional[str]
    parent_id: Optional[str]
    order: int
    status: str
    published_at: Optional[datetime]
    scheduled_publish_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PageListResponse(BaseModel):
    """Paginated list of pages."""
    pages: list[PageResponse]
    total: int
    page: int
    page_size: int


class RenderedPage(BaseModel):
    html: str
    head_tags: str
    initial_state_script: str
    error_code: Optional[int] = None
