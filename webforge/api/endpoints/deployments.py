"""
Deployment Endpoints

Deploy a site, inspect and roll back deployments, connect a custom
domain and manage deploy settings. Nested under the site:
/sites/{site_id}/deploy.

RBAC: Same as sites; triggering a deployment needs editor role.
"""
import copy

from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from webforge.config import get_settings
from webforge.database import get_db
from webforge.models.user import User
from webforge.models.deployment import Deployment
from webforge.models.site import Site
from webforge.schemas.deployment import (
    DeploymentCreate,
    DeploymentDetail,
    DeploymentListResponse,
    DeploySettings,
    DomainConnectRequest,
    DomainStatusResponse,
)
from webforge.api.deps import get_current_user, get_site_for_user, require_editor
from webforge.core.exceptions import BadRequestError, DeploymentNotFoundError
from webforge.services.deploy.deployer import rollback_deployment, trigger_deployment
from webforge.services.deploy.domain import get_domain_service, normalize_domain, validate_domain
from webforge.services.sites import ensure_domain_available
from webforge.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/sites/{site_id}/deploy", tags=["deployments"])


def _get_deployment(db: Session, site: Site, deployment_id: str) -> Deployment:
    deployment = db.query(Deployment).filter(
        Deployment.id == deployment_id,
        Deployment.site_id == site.id
    ).first()
    if not deployment:
        raise DeploymentNotFoundError(deployment_id)
    return deployment


def _platform_host(site: Site) -> str:
    return f"{site.subdomain}.{settings.PLATFORM_DOMAIN}"


@router.post("", response_model=DeploymentDetail, status_code=status.HTTP_201_CREATED)
async def deploy_site(
    site_id: str,
    body: DeploymentCreate,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """
    Build and deploy the site.

    Runs synchronously. A failed build still returns 201 with the
    deployment in status "failed" and its log.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    return trigger_deployment(
        db,
        site,
        current_user,
        environment=body.environment,
        version_tag=body.version_tag,
        build_config=body.build_config,
    )


@router.get("/history", response_model=DeploymentListResponse)
async def deployment_history(
    site_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    environment: str = Query(None, pattern="^(production|staging|preview)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)

    query = db.query(Deployment).filter(Deployment.site_id == site.id)
    if environment:
        query = query.filter(Deployment.environment == environment)

    total = query.count()

    offset = (page - 1) * page_size
    deployments = query.order_by(
        Deployment.created_at.desc()
    ).offset(offset).limit(page_size).all()

    return DeploymentListResponse(
        deployments=deployments,
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/status", response_model=DeploymentDetail)
async def deployment_status(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The site's most recent deployment."""
    site = get_site_for_user(db, site_id, current_user)
    deployment = db.query(Deployment).filter(
        Deployment.site_id == site.id
    ).order_by(Deployment.created_at.desc()).first()

    if not deployment:
        raise DeploymentNotFoundError()
    return deployment


@router.post("/rollback/{deployment_id}", response_model=DeploymentDetail, status_code=status.HTTP_201_CREATED)
async def rollback(
    site_id: str,
    deployment_id: str,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """Re-activate an earlier successful deployment (409 if it didn't succeed)."""
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    target = _get_deployment(db, site, deployment_id)
    return rollback_deployment(db, site, target, current_user)


# Custom domain

def _domain_status(site: Site) -> DomainStatusResponse:
    if not site.custom_domain:
        return DomainStatusResponse(domain=None, verified=False, status="not_configured")
    return DomainStatusResponse(
        **get_domain_service().check_domain_status(site.custom_domain, _platform_host(site))
    )


@router.post("/domain", response_model=DomainStatusResponse)
async def connect_domain(
    site_id: str,
    body: DomainConnectRequest,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """
    Connect a custom domain.

    The domain is reserved for this site (409 if another site has it) and
    a CNAME to the site's platform host is created.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)

    if not validate_domain(body.domain):
        raise BadRequestError(f"Invalid domain name: {body.domain}")
    if not site.subdomain:
        raise BadRequestError("Set a subdomain before connecting a custom domain")

    domain = normalize_domain(body.domain)
    ensure_domain_available(db, domain, exclude_site_id=site.id)

    dns = get_domain_service()
    if site.custom_domain and site.custom_domain != domain:
        dns.delete_dns_record(site.custom_domain, "CNAME")

    dns.upsert_dns_record(domain, "CNAME", _platform_host(site))
    site.custom_domain = domain
    db.commit()
    db.refresh(site)

    logger.info(f"Domain {domain} connected by {current_user.id}", extra={"site_id": site.id})
    return _domain_status(site)


@router.delete("/domain", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect_domain(
    site_id: str,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    if site.custom_domain:
        get_domain_service().delete_dns_record(site.custom_domain)
        logger.info(f"Domain {site.custom_domain} disconnected by {current_user.id}", extra={"site_id": site.id})
        site.custom_domain = None
        db.commit()
    return None


@router.get("/domain/status", response_model=DomainStatusResponse)
async def domain_status(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return _domain_status(site)


# Settings

@router.get("/settings", response_model=DeploySettings)
async def get_deploy_settings(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return DeploySettings(**(site.settings or {}).get("deploy", {}))


@router.put("/settings", response_model=DeploySettings)
async def update_deploy_settings(
    site_id: str,
    body: DeploySettings,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)

    # Reassign so the JSON column sees the change
    site_settings = copy.deepcopy(site.settings or {})
    site_settings["deploy"] = body.model_dump()
    site.settings = site_settings
    db.commit()

    logger.info(f"Deploy settings updated by {current_user.id}", extra={"site_id": site.id})
    return body


@router.get("/{deployment_id}", response_model=DeploymentDetail)
async def get_deployment(
    site_id: str,
    deployment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return _get_deployment(db, site, deployment_id)


@router.get("/{deployment_id}/logs", response_class=PlainTextResponse)
async def get_deployment_logs(
    site_id: str,
    deployment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return PlainTextResponse(_get_deployment(db, site, deployment_id).logs or "")
