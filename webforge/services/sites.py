"""
Site Service

Site operations that touch more than one row: creation from a template,
versioned structure updates, cloning and version restore. Endpoints own
the simple reads and field updates.

Every structure change follows the same rule: snapshot the current
state as a SiteVersion, then apply the change and bump site.version.
"""
import copy
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from webforge.core.exceptions import ConflictError
from webforge.models.page import Page
from webforge.models.site import Site, SiteVersion
from webforge.models.template import Template
from webforge.models.user import User
from webforge.utils.logging import get_logger

logger = get_logger(__name__)


def ensure_subdomain_available(db: Session, subdomain: Optional[str], exclude_site_id: str = None) -> None:
    if not subdomain:
        return
    query = db.query(Site).filter(Site.subdomain == subdomain)
    if exclude_site_id:
        query = query.filter(Site.id != exclude_site_id)
    if query.first():
        raise ConflictError(f"Subdomain is already taken: {subdomain}")


def ensure_domain_available(db: Session, domain: Optional[str], exclude_site_id: str = None) -> None:
    if not domain:
        return
    query = db.query(Site).filter(Site.custom_domain == domain)
    if exclude_site_id:
        query = query.filter(Site.id != exclude_site_id)
    if query.first():
        raise ConflictError(f"Domain is already connected to another site: {domain}")


def create_site(db: Session, owner: User, data, template: Optional[Template] = None) -> Site:
    """
    Create a site, optionally seeded from a template.

    An explicit structure in the request wins over the template's.
    """
    ensure_subdomain_available(db, data.subdomain)

    structure = data.structure
    if structure is None:
        structure = copy.deepcopy(template.content_structure) if template else {}

    site = Site(
        owner_id=owner.id,
        name=data.name,
        description=data.description,
        settings=copy.deepcopy(data.settings),
        structure=structure,
        subdomain=data.subdomain,
        seo_settings=copy.deepcopy(data.seo_settings),
        template_id=template.id if template else None,
    )
    if template:
        template.usage_count += 1

    db.add(site)
    db.commit()
    db.refresh(site)

    logger.info(f"Site created: {site.id} by {owner.id}", extra={"site_id": site.id, "user_id": owner.id})
    return site


def record_version(db: Session, site: Site, user: Optional[User], description: str) -> SiteVersion:
    version = site.snapshot(created_by=user.id if user else None, description=description)
    db.add(version)
    return version


def update_structure(
    db: Session,
    site: Site,
    structure: Dict[str, Any],
    user: User,
    description: str = "Structure updated",
) -> Site:
    """Snapshot the current structure, replace it and bump the version. Does not commit."""
    record_version(db, site, user, description)
    site.structure = copy.deepcopy(structure)
    site.version += 1
    return site


def restore_version(db: Session, site: Site, version: SiteVersion, user: User) -> Site:
    update_structure(
        db, site, version.structure, user,
        description=f"Before restoring version {version.version_number}",
    )
    site.settings = copy.deepcopy(version.settings)
    db.commit()
    db.refresh(site)

    logger.info(
        f"Site {site.id} restored to version {version.version_number} by {user.id}",
        extra={"site_id": site.id, "user_id": user.id}
    )
    return site


def clone_site(db: Session, site: Site, user: User, name: Optional[str] = None) -> Site:
    """Copy of a site owned by the caller: unpublished, no domains, version 1."""
    clone = Site(
        owner_id=user.id,
        name=name or f"{site.name} (copy)",
        description=site.description,
        settings=copy.deepcopy(site.settings or {}),
        structure=copy.deepcopy(site.structure or {}),
        seo_settings=copy.deepcopy(site.seo_settings or {}),
        analytics_config=copy.deepcopy(site.analytics_config or {}),
        template_id=site.template_id,
    )
    db.add(clone)
    db.flush()

    # Pages come along too; their ids and publish state don't
    for page in site.pages:
        db.add(Page(
            site_id=clone.id,
            title=page.title,
            path=page.path,
            content=copy.deepcopy(page.content or {}),
            seo_title=page.seo_title,
            seo_description=page.seo_description,
            seo_keywords=list(page.seo_keywords or []),
            layout=page.layout,
            order=page.order,
        ))

    db.commit()
    db.refresh(clone)

    logger.info(f"Site {site.id} cloned to {clone.id} by {user.id}", extra={"site_id": clone.id, "user_id": user.id})
    return clone


def apply_template(db: Session, site: Site, template: Template, user: User) -> Site:
    update_structure(
        db, site, template.content_structure or {}, user,
        description=f"Before applying template {template.name}",
    )
    site.template_id = template.id
    template.usage_count += 1
    db.commit()
    db.refresh(site)

    logger.info(
        f"Template {template.id} applied to site {site.id} by {user.id}",
        extra={"site_id": site.id, "user_id": user.id}
    )
    return site
