"""
Deployment Schemas

Request/response models for deployments, custom domains and deploy
settings.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class DeploymentCreate(BaseModel):
    environment: str = Field("production", pattern="^(production|staging|preview)$")
    version_tag: Optional[str] = Field(None, max_length=100)
    build_config: Dict[str, Any] = Field(default_factory=dict)


class DeploymentResponse(BaseModel):
    id: str
    site_id: str
    initiator_id: Optional[str]
    status: str
    environment: str
    version_tag: Optional[str]
    deployed_url: Optional[str]
    rollback_target_id: Optional[str]
    duration_seconds: Optional[int]
    started_at: datetime
    finished_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class DeploymentDetail(DeploymentResponse):
    build_config: Optional[Dict[str, Any]]
    logs: str


class DeploymentListResponse(BaseModel):
    deployments: list[DeploymentResponse]
    total: int
    page: int
    page_size: int


class DomainConnectRequest(BaseModel):
    domain: str = Field(..., min_length=3, max_length=253)


class DnsRecord(BaseModel):
    name: str
    type: str
    value: str
    ttl: int = 3600


class DomainStatusResponse(BaseModel):
    domain: Optional[str]
    verified: bool
    status: str
    records: List[DnsRecord] = Field(default_factory=list)


class DeploySettings(BaseModel):
    """Stored under site.settings["deploy"]."""
    auto_deploy: bool = False
    default_environment: str = Field("production", pattern="^(production|staging|preview)$")
    optimize_assets: bool = True
    build_command: Optional[str] = Field(None, max_length=255)
