"""
Site Management Endpoints

CRUD for sites plus publishing, cloning, versions, edit history,
preview and export.

RBAC:
- List/view sites: Owner or admin
- Create/update/publish/clone: Editor role or higher, on own sites
- Soft delete / restore: Owner or admin
- Permanent delete: Admin only

Sites the caller can't access are reported as 404, not 403.
"""
from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import HTMLResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional

from webforge.database import get_db
from webforge.models.user import User, UserRole
from webforge.models.site import Site, SiteVersion
from webforge.models.template import Template
from webforge.schemas.site import (
    HistoryPushRequest,
    HistoryResponse,
    SiteCloneRequest,
    SiteCreate,
    SiteListResponse,
    SiteResponse,
    SiteUpdate,
    SiteVersionDetail,
    SiteVersionResponse,
)
from webforge.schemas.codegen import BundleResponse
from webforge.api.deps import get_current_user, get_site_for_user, require_editor
from webforge.core.permissions import can_view_template, require_role
from webforge.core.exceptions import ConflictError, TemplateNotFoundError, VersionNotFoundError
from webforge.services import sites as site_service
from webforge.services.analytics import delete_site_data
from webforge.services.codegen.export import export_bundle
from webforge.services.components import component_tag_map
from webforge.services.renderer.preview import render_preview
from webforge.utils.history import drop_history, get_history
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/sites", tags=["sites"])


@router.get("", response_model=SiteListResponse)
async def list_sites(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    published: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    trash: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the caller's sites (admins see every site).

    trash=true lists soft-deleted sites instead.
    """
    query = db.query(Site).filter(Site.is_deleted == trash)

    if current_user.role != UserRole.ADMIN:
        query = query.filter(Site.owner_id == current_user.id)

    if published is not None:
        query = query.filter(Site.is_published == published)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Site.name.ilike(pattern), Site.description.ilike(pattern)))

    total = query.count()

    offset = (page - 1) * page_size
    sites = query.order_by(
        Site.updated_at.desc()
    ).offset(offset).limit(page_size).all()

    logger.debug(f"Listed {len(sites)} sites for user {current_user.id}")

    return SiteListResponse(
        sites=sites,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=SiteResponse, status_code=status.HTTP_201_CREATED)
async def create_site(
    site_data: SiteCreate,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """
    Create a new site owned by the caller.

    With template_id the site starts from the template's structure and
    the template's usage count goes up.
    """
    template = None
    if site_data.template_id:
        template = db.query(Template).filter(Template.id == site_data.template_id).first()
        if not template or not can_view_template(current_user, template.visibility, template.creator_id):
            raise TemplateNotFoundError(site_data.template_id)

    return site_service.create_site(db, current_user, site_data, template)


@router.get("/{site_id}", response_model=SiteResponse)
async def get_site(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return get_site_for_user(db, site_id, current_user)


@router.patch("/{site_id}", response_model=SiteResponse)
async def update_site(
    site_id: str,
    site_data: SiteUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update site fields.

    A structure change snapshots the previous structure as a version and
    bumps site.version.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)

    update_data = site_data.model_dump(exclude_unset=True)

    if "subdomain" in update_data:
        site_service.ensure_subdomain_available(db, update_data["subdomain"], exclude_site_id=site.id)

    structure = update_data.pop("structure", None)
    if structure is not None and structure != site.structure:
        site_service.update_structure(db, site, structure, current_user)

    for field, value in update_data.items():
        setattr(site, field, value)

    db.commit()
    db.refresh(site)

    logger.info(f"Site updated: {site.id} by {current_user.id}", extra={"site_id": site.id})

    return site


@router.delete("/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_site(
    site_id: str,
    permanent: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Move a site to the trash, or with permanent=true (admin only) delete
    it together with its pages, deployments and analytics data.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True, include_deleted=True)

    if permanent:
        require_role(current_user, UserRole.ADMIN)
        delete_site_data(db, site.id)
        db.delete(site)
        db.commit()
        drop_history(site_id)
        logger.warning(f"Site permanently deleted: {site_id} by {current_user.id}", extra={"site_id": site_id})
        return None

    site.soft_delete()
    db.commit()

    logger.info(f"Site moved to trash: {site.id} by {current_user.id}", extra={"site_id": site.id})

    return None


@router.post("/{site_id}/restore", response_model=SiteResponse)
async def restore_site(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Bring a site back from the trash. It stays unpublished."""
    site = get_site_for_user(db, site_id, current_user, for_update=True, include_deleted=True)

    if not site.is_deleted:
        raise ConflictError("Site is not deleted")

    site.restore()
    db.commit()
    db.refresh(site)

    logger.info(f"Site restored: {site.id} by {current_user.id}", extra={"site_id": site.id})
    return site


@router.post("/{site_id}/publish", response_model=SiteResponse)
async def publish_site(
    site_id: str,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    site.publish()
    db.commit()
    db.refresh(site)

    logger.info(f"Site published: {site.id} by {current_user.id}", extra={"site_id": site.id})
    return site


@router.post("/{site_id}/unpublish", response_model=SiteResponse)
async def unpublish_site(
    site_id: str,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    site.unpublish()
    db.commit()
    db.refresh(site)

    logger.info(f"Site unpublished: {site.id} by {current_user.id}", extra={"site_id": site.id})
    return site


@router.post("/{site_id}/clone", response_model=SiteResponse, status_code=status.HTTP_201_CREATED)
async def clone_site(
    site_id: str,
    body: Optional[SiteCloneRequest] = None,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """Copy a site (and its pages) into a new, unpublished site owned by the caller."""
    site = get_site_for_user(db, site_id, current_user)
    return site_service.clone_site(db, site, current_user, name=body.name if body else None)


# Versions

@router.get("/{site_id}/versions", response_model=list[SiteVersionResponse])
async def list_versions(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Snapshots of the site, newest first."""
    site = get_site_for_user(db, site_id, current_user)
    return db.query(SiteVersion).filter(
        SiteVersion.site_id == site.id
    ).order_by(SiteVersion.version_number.desc(), SiteVersion.created_at.desc()).all()


def _get_version(db: Session, site: Site, version_id: str) -> SiteVersion:
    version = db.query(SiteVersion).filter(
        SiteVersion.id == version_id,
        SiteVersion.site_id == site.id
    ).first()
    if not version:
        raise VersionNotFoundError(version_id)
    return version


@router.get("/{site_id}/versions/{version_id}", response_model=SiteVersionDetail)
async def get_version(
    site_id: str,
    version_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return _get_version(db, site, version_id)


@router.post("/{site_id}/versions/{version_id}/restore", response_model=SiteResponse)
async def restore_version(
    site_id: str,
    version_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Restore a snapshot.

    The current state is snapshotted first, so a restore can itself be
    undone by restoring that snapshot.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    version = _get_version(db, site, version_id)
    return site_service.restore_version(db, site, version, current_user)


# Edit history (undo/redo)

def _history_response(history, entry=None) -> HistoryResponse:
    return HistoryResponse(
        state=entry.state if entry else None,
        description=entry.description if entry else None,
        can_undo=history.can_undo(),
        can_redo=history.can_redo(),
        entries=history.descriptions(),
    )


@router.get("/{site_id}/history", response_model=HistoryResponse)
async def get_edit_history(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current history entry. The history starts from the saved structure."""
    site = get_site_for_user(db, site_id, current_user)
    history = get_history(site.id, initial_state=site.structure or {})
    return _history_response(history, history.current())


@router.post("/{site_id}/history", response_model=HistoryResponse, status_code=status.HTTP_201_CREATED)
async def push_edit_history(
    site_id: str,
    body: HistoryPushRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an editor state. Anything that could be redone is discarded."""
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    history = get_history(site.id, initial_state=site.structure or {})
    history.push(body.state, body.description)
    return _history_response(history, history.current())


@router.post("/{site_id}/history/undo", response_model=HistoryResponse)
async def undo_edit(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Step back one entry and return its state.

    The site itself isn't changed; the editor saves the state it wants.
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    history = get_history(site.id, initial_state=site.structure or {})
    entry = history.undo()
    if entry is None:
        raise ConflictError("Nothing to undo")
    return _history_response(history, entry)


@router.post("/{site_id}/history/redo", response_model=HistoryResponse)
async def redo_edit(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    history = get_history(site.id, initial_state=site.structure or {})
    entry = history.redo()
    if entry is None:
        raise ConflictError("Nothing to redo")
    return _history_response(history, entry)


@router.delete("/{site_id}/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_edit_history(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    drop_history(site.id)
    return None


# Preview and export

@router.get("/{site_id}/preview", response_class=HTMLResponse)
async def preview_site(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Full preview document for the site's saved structure."""
    site = get_site_for_user(db, site_id, current_user)
    result = render_preview(
        site.structure or {},
        site.id,
        title=site.name,
        data={"site_id": site.id, "version": site.version},
        tag_map=component_tag_map(db),
    )
    return HTMLResponse(result["html"])


@router.get("/{site_id}/export", response_model=BundleResponse)
async def export_site(
    site_id: str,
    optimize: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The site's structure as a standalone HTML/CSS/JS bundle."""
    site = get_site_for_user(db, site_id, current_user)
    return export_bundle(
        site.structure or {},
        scope=f"site-{site.id}",
        optimize=optimize,
        tag_map=component_tag_map(db),
        standalone=True,
    )
