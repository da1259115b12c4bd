"""
Page Management Endpoints

CRUD for pages nested under a site (site -> page), plus publishing,
scheduling and server-side rendering.

RBAC: Same as sites (owner or admin; viewers read-only)
"""
from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timezone

from webforge.database import get_db
from webforge.models.user import User
from webforge.models.page import Page
from webforge.models.site import Site
from webforge.schemas.page import (
    PageCreate,
    PageListResponse,
    PageResponse,
    PageSchedule,
    PageUpdate,
    RenderedPage,
)
from webforge.api.deps import get_current_user, get_site_for_user
from webforge.core.exceptions import BadRequestError, ConflictError, PageNotFoundError
from webforge.services.renderer.ssr import render_page
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/sites/{site_id}/pages", tags=["pages"])


def _get_page(db: Session, site: Site, page_id: str) -> Page:
    page = db.query(Page).filter(
        Page.id == page_id,
        Page.site_id == site.id  # Page must belong to this site
    ).first()
    if not page:
        raise PageNotFoundError(page_id)
    return page


def _ensure_path_available(db: Session, site: Site, path: str, exclude_page_id: str = None) -> None:
    query = db.query(Page).filter(Page.site_id == site.id, Page.path == path)
    if exclude_page_id:
        query = query.filter(Page.id != exclude_page_id)
    if query.first():
        raise ConflictError(f"A page with path {path} already exists on this site")


def _check_parent(db: Session, site: Site, parent_id: Optional[str], page_id: str = None) -> None:
    if not parent_id:
        return
    if parent_id == page_id:
        raise BadRequestError("A page can't be its own parent")
    ancestor = _get_page(db, site, parent_id)

    # Walk up from the new parent; reaching page_id would close a loop
    seen = set()
    while page_id and ancestor.parent_id and ancestor.id not in seen:
        if ancestor.parent_id == page_id:
            raise BadRequestError("A page can't be moved under one of its own children")
        seen.add(ancestor.id)
        ancestor = db.query(Page).filter(Page.id == ancestor.parent_id).first()
        if ancestor is None:
            break


@router.get("", response_model=PageListResponse)
async def list_pages(
    site_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    status: Optional[str] = Query(None, pattern="^(draft|published|archived)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List a site's pages in navigation order."""
    site = get_site_for_user(db, site_id, current_user)

    query = db.query(Page).filter(Page.site_id == site.id)
    if status:
        query = query.filter(Page.status == status)

    total = query.count()

    offset = (page - 1) * page_size
    pages = query.order_by(Page.order, Page.path).offset(offset).limit(page_size).all()

    return PageListResponse(
        pages=pages,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=PageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    site_id: str,
    page_data: PageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a page. Paths are unique within a site (409 otherwise)."""
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    _ensure_path_available(db, site, page_data.path)
    _check_parent(db, site, page_data.parent_id)

    new_page = Page(site_id=site.id, **page_data.model_dump())

    db.add(new_page)
    db.commit()
    db.refresh(new_page)

    logger.info(f"Page created: {new_page.id} in site {site.id} by {current_user.id}", extra={"site_id": site.id})

    return new_page


@router.get("/{page_id}", response_model=PageResponse)
async def get_page(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    return _get_page(db, site, page_id)


@router.patch("/{page_id}", response_model=PageResponse)
async def update_page(
    site_id: str,
    page_id: str,
    page_data: PageUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    page = _get_page(db, site, page_id)

    update_data = page_data.model_dump(exclude_unset=True)

    if "path" in update_data and update_data["path"] != page.path:
        _ensure_path_available(db, site, update_data["path"], exclude_page_id=page.id)
    if "parent_id" in update_data:
        _check_parent(db, site, update_data["parent_id"], page_id=page.id)

    # Status goes through the publish helpers so timestamps stay consistent
    new_status = update_data.pop("status", None)
    if new_status == "published" and page.status != "published":
        page.publish()
    elif new_status == "draft" and page.status != "draft":
        page.unpublish()
    elif new_status == "archived":
        page.status = "archived"
        page.scheduled_publish_at = None

    for field, value in update_data.items():
        setattr(page, field, value)

    db.commit()
    db.refresh(page)

    logger.info(f"Page updated: {page.id} by {current_user.id}", extra={"site_id": site.id})

    return page


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a page. Child pages are kept and lose their parent."""
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    page = _get_page(db, site, page_id)

    db.query(Page).filter(Page.parent_id == page.id).update(
        {Page.parent_id: None}, synchronize_session=False
    )
    db.delete(page)
    db.commit()

    logger.info(f"Page deleted: {page_id} by {current_user.id}", extra={"site_id": site.id})

    return None


@router.post("/{page_id}/publish", response_model=PageResponse)
async def publish_page(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    page = _get_page(db, site, page_id)
    page.publish()
    db.commit()
    db.refresh(page)
    return page


@router.post("/{page_id}/unpublish", response_model=PageResponse)
async def unpublish_page(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    page = _get_page(db, site, page_id)
    page.unpublish()
    db.commit()
    db.refresh(page)
    return page


@router.post("/{page_id}/schedule", response_model=PageResponse)
async def schedule_page(
    site_id: str,
    page_id: str,
    body: PageSchedule,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Schedule a draft for publishing.

    NOTE: There is no background scheduler. Due pages are published by
    POST /publish-due (e.g. from a cron job).
    """
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    page = _get_page(db, site, page_id)

    publish_at = body.publish_at
    if publish_at.tzinfo:
        publish_at = publish_at.astimezone(timezone.utc).replace(tzinfo=None)
    if publish_at <= datetime.utcnow():
        raise BadRequestError("Scheduled publish time must be in the future")
    if page.status != "draft":
        raise ConflictError("Only draft pages can be scheduled")

    page.schedule_publish(publish_at)
    db.commit()
    db.refresh(page)
    return page


@router.post("/publish-due", response_model=list[PageResponse])
async def publish_due_pages(
    site_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Publish every draft whose scheduled time has passed."""
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    now = datetime.utcnow()
    due = [p for p in db.query(Page).filter(Page.site_id == site.id).all() if p.is_due(now)]
    for page in due:
        page.publish()
    db.commit()

    if due:
        logger.info(f"Published {len(due)} scheduled pages", extra={"site_id": site.id})
    return due


@router.get("/{page_id}/render", response_model=RenderedPage)
async def render_page_json(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Server-side render a page; a failed render returns an error document."""
    site = get_site_for_user(db, site_id, current_user)
    page = _get_page(db, site, page_id)
    return render_page(page, site)


@router.get("/{page_id}/render.html", response_class=HTMLResponse)
async def render_page_html(
    site_id: str,
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    site = get_site_for_user(db, site_id, current_user)
    page = _get_page(db, site, page_id)
    result = render_page(page, site)
    return HTMLResponse(result["html"], status_code=result.get("error_code") or 200)
