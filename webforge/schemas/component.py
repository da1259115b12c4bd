"""
Component Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class RenderInfo(BaseModel):
    library: Optional[str] = None
    import_path: Optional[str] = None
    tag_name: str = "div"


class ComponentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field("atomic", pattern="^(atomic|molecule|organism|custom)$")
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    tags: List[str] = Field(default_factory=list)


class ComponentCreate(ComponentBase):
    properties_schema: Dict[str, Any] = Field(default_factory=dict)
    default_properties: Dict[str, Any] = Field(default_factory=dict)
    render_info: RenderInfo = Field(default_factory=RenderInfo)
    version: str = Field("1.0.0", max_length=20)
    # Only admins may create built-in (non-custom) components
    is_custom: bool = True


class ComponentUpdate(BaseModel):
    """Schema for updating a component. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = Field(None, pattern="^(atomic|molecule|organism|custom)$")
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = None
    properties_schema: Optional[Dict[str, Any]] = None
    default_properties: Optional[Dict[str, Any]] = None
    render_info: Optional[RenderInfo] = None
    version: Optional[str] = Field(None, max_length=20)


class ComponentResponse(ComponentBase):
    id: str
    properties_schema: Dict[str, Any]
    default_properties: Dict[str, Any]
    render_info: Dict[str, Any]
    usage_count: int
    is_custom: bool
    version: str
    creator_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ComponentListResponse(BaseModel):
    components: list[ComponentResponse]
    total: int
    page: int
    page_size: int


class PropertyValidationRequest(BaseModel):
    properties: Dict[str, Any] = Field(default_factory=dict)


class PropertyValidationResponse(BaseModel):
    valid: bool
    errors: List[str]
    properties: Dict[str, Any]
