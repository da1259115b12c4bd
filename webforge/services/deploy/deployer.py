"""
Deployer

Runs a deployment end to end inside the request:

    pending -> building -> deploying -> success
                       \-> failed

Each transition is written to the deployment log and committed, so a
failed deployment still shows how far it got.
"""
import copy
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from webforge.config import get_settings
from webforge.core.exceptions import BadRequestError, ConflictError
from webforge.models.deployment import DEPLOYMENT_ENVIRONMENTS, Deployment
from webforge.models.page import Page
from webforge.models.site import Site
from webforge.models.user import User
from webforge.services.deploy.build import build_site
from webforge.services.deploy.cdn import get_cdn
from webforge.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def site_url(site: Site) -> Optional[str]:
    """Public URL of a site's production deployment, if it has a host."""
    if site.custom_domain:
        return f"https://{site.custom_domain}"
    if site.subdomain:
        return f"https://{site.subdomain}.{settings.PLATFORM_DOMAIN}"
    return None


def remote_prefix(site: Site, deployment: Deployment) -> str:
    return f"sites/{site.id}/{deployment.id}"


def _set_status(db: Session, deployment: Deployment, status: str, message: str) -> None:
    deployment.update_status(status, message)
    db.commit()


def _mark_published(site: Site, version_tag: str) -> None:
    site.publish()
    site.last_published_version = version_tag


def trigger_deployment(
    db: Session,
    site: Site,
    user: User,
    environment: str = "production",
    version_tag: Optional[str] = None,
    build_config: Optional[Dict[str, Any]] = None,
) -> Deployment:
    """Build, upload and publish a site. Failures end in status "failed"."""
    if environment not in DEPLOYMENT_ENVIRONMENTS:
        raise BadRequestError(f"Unknown environment: {environment}")

    build_config = build_config or {}
    deploy_settings = (site.settings or {}).get("deploy", {})
    optimize = build_config.get("optimize_assets", deploy_settings.get("optimize_assets", True))

    deployment = Deployment(
        site_id=site.id,
        initiator_id=user.id,
        status="pending",
        environment=environment,
        version_tag=version_tag or f"v{site.version}",
        build_config=build_config,
        logs="",
    )
    deployment.append_log(f"Deployment queued by {user.username} for {environment}")
    db.add(deployment)
    db.commit()
    db.refresh(deployment)

    log_extra = {"site_id": site.id, "deployment_id": deployment.id, "user_id": user.id}
    logger.info(f"Deployment started: {deployment.id}", extra=log_extra)

    _set_status(db, deployment, "building", "Build started")

    try:
        pages = db.query(Page).filter(Page.site_id == site.id).order_by(Page.order).all()
        result = build_site(site, pages, deployment.id, optimize=optimize)
    except Exception as e:
        logger.exception(f"Deployment build crashed: {deployment.id}", extra=log_extra)
        _set_status(db, deployment, "failed", f"Build failed: {e}")
        db.refresh(deployment)
        return deployment

    for line in result.log.splitlines():
        deployment.append_log(line)

    if not result.success:
        _set_status(db, deployment, "failed", f"Build failed: {result.error}")
        logger.warning(f"Deployment failed: {deployment.id}", extra=log_extra)
        db.refresh(deployment)
        return deployment

    _set_status(db, deployment, "deploying", f"Uploading {len(result.files)} files")

    cdn = get_cdn()
    prefix = remote_prefix(site, deployment)
    try:
        cdn.upload(result.output_path, prefix)
    except OSError as e:
        _set_status(db, deployment, "failed", f"Upload failed: {e}")
        logger.warning(f"Deployment upload failed: {deployment.id}: {e}", extra=log_extra)
        db.refresh(deployment)
        return deployment

    if environment == "production" and site_url(site):
        deployment.deployed_url = site_url(site)
        cdn.invalidate_cache(["/*"])
    else:
        deployment.deployed_url = cdn.get_cdn_url(f"{prefix}/index.html")

    if environment == "production":
        _mark_published(site, deployment.version_tag)

    _set_status(db, deployment, "success", f"Deployed to {deployment.deployed_url}")
    db.refresh(deployment)
    logger.info(
        f"Deployment succeeded: {deployment.id} in {deployment.duration_seconds}s",
        extra=log_extra
    )
    return deployment


def rollback_deployment(db: Session, site: Site, target: Deployment, user: User) -> Deployment:
    """
    Re-activate an earlier successful deployment.

    Creates a new deployment that points at the target and reuses its
    uploaded output; nothing is rebuilt.
    """
    if target.site_id != site.id:
        raise BadRequestError("Deployment belongs to a different site")
    if target.status != "success":
        raise ConflictError("Only successful deployments can be rolled back to")

    deployment = Deployment(
        site_id=site.id,
        initiator_id=user.id,
        status="pending",
        environment=target.environment,
        version_tag=target.version_tag,
        build_config=copy.deepcopy(target.build_config or {}),
        rollback_target_id=target.id,
        logs="",
    )
    deployment.append_log(f"Rollback to deployment {target.id} requested by {user.username}")
    db.add(deployment)
    db.commit()
    db.refresh(deployment)

    deployment.deployed_url = target.deployed_url
    if target.environment == "production":
        get_cdn().invalidate_cache(["/*"])
        _mark_published(site, target.version_tag)

    _set_status(db, deployment, "success", f"Rolled back to {target.version_tag}")
    db.refresh(deployment)
    logger.info(
        f"Rollback succeeded: {deployment.id} -> {target.id}",
        extra={"site_id": site.id, "deployment_id": deployment.id, "user_id": user.id}
    )
    return deployment
