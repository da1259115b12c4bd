"""
Template Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class TemplateBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    preview_image_url: Optional[str] = Field(None, max_length=512)
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class TemplateCreate(TemplateBase):
    content_structure: Dict[str, Any] = Field(default_factory=dict)
    default_components: List[str] = Field(default_factory=list)
    compatibility_info: Optional[str] = Field(None, max_length=255)
    visibility: str = Field("private", pattern="^(public|private|organization)$")


class TemplateUpdate(BaseModel):
    """Schema for updating a template. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    preview_image_url: Optional[str] = Field(None, max_length=512)
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    content_structure: Optional[Dict[str, Any]] = None
    default_components: Optional[List[str]] = None
    compatibility_info: Optional[str] = Field(None, max_length=255)
    visibility: Optional[str] = Field(None, pattern="^(public|private|organization)$")


class TemplateRating(BaseModel):
    rating: int = Field(..., ge=1, le=5)


class TemplateResponse(TemplateBase):
    id: str
    content_structure: Dict[str, Any]
    default_components: List[str]
    compatibility_info: Optional[str]
    creator_id: Optional[str]
    visibility: str
    usage_count: int
    average_rating: float
    rating_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateListResponse(BaseModel):
    templates: list[TemplateResponse]
    total: int
    page: int
    page_size: int
