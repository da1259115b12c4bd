"""
Template Endpoints

Browse, manage, rate and apply site templates.

Visibility:
- public: everyone, including anonymous callers
- organization: any signed-in user
- private: creator and admins

RBAC: Editors and admins create templates; creators and admins change them.
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional

from webforge.database import get_db
from webforge.models.user import User, UserRole
from webforge.models.template import Template
from webforge.schemas.template import (
    TemplateCreate,
    TemplateListResponse,
    TemplateRating,
    TemplateResponse,
    TemplateUpdate,
)
from webforge.schemas.site import SiteResponse
from webforge.api.deps import get_current_user, get_current_user_optional, get_site_for_user, require_editor
from webforge.core.cache import get_cache
from webforge.core.permissions import PermissionDenied, can_modify_template, can_view_template
from webforge.core.exceptions import TemplateNotFoundError
from webforge.services.sites import apply_template as apply_template_to_site
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/templates", tags=["templates"])

CATEGORIES_CACHE_KEY = "templates:categories"
SORT_ORDERS = {
    "popular": (Template.usage_count.desc(), Template.created_at.desc()),
    "rating": (Template.average_rating.desc(), Template.rating_count.desc()),
    "newest": (Template.created_at.desc(),),
}


def _visible_to(query, user: Optional[User]):
    if user is None:
        return query.filter(Template.visibility == "public")
    if user.role == UserRole.ADMIN:
        return query
    return query.filter(or_(
        Template.visibility.in_(["public", "organization"]),
        Template.creator_id == user.id,
    ))


def _get_template(db: Session, template_id: str, user: Optional[User]) -> Template:
    template = db.query(Template).filter(Template.id == template_id).first()
    if not template or not can_view_template(user, template.visibility, template.creator_id):
        raise TemplateNotFoundError(template_id)
    return template


def _invalidate_categories() -> None:
    get_cache().delete(CATEGORIES_CACHE_KEY)


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort: str = Query("popular", pattern="^(popular|rating|newest)$"),
    mine: bool = False,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    """
    List templates visible to the caller.

    PERFORMANCE NOTE: category/tag filters run in Python because they
    live in JSON columns. Fine for a template catalogue; not for millions
    of rows.
    """
    query = _visible_to(db.query(Template), current_user)

    if mine and current_user is not None:
        query = query.filter(Template.creator_id == current_user.id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Template.name.ilike(pattern), Template.description.ilike(pattern)))

    templates = query.order_by(*SORT_ORDERS[sort]).all()

    if category:
        templates = [t for t in templates if category in (t.categories or [])]
    if tag:
        templates = [t for t in templates if tag in (t.tags or [])]

    offset = (page - 1) * page_size
    return TemplateListResponse(
        templates=templates[offset:offset + page_size],
        total=len(templates),
        page=page,
        page_size=page_size
    )


@router.get("/categories", response_model=List[str])
async def list_categories(db: Session = Depends(get_db)):
    """Distinct categories of public templates, sorted. Cached."""
    def fetch():
        rows = db.query(Template.categories).filter(Template.visibility == "public").all()
        return sorted({c for (categories,) in rows for c in (categories or [])})

    return get_cache().get_or_set(CATEGORIES_CACHE_KEY, fetch)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    return _get_template(db, template_id, current_user)


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    template = Template(creator_id=current_user.id, **template_data.model_dump())

    db.add(template)
    db.commit()
    db.refresh(template)
    _invalidate_categories()

    logger.info(f"Template created: {template.id} by {current_user.id}")

    return template


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    template_data: TemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    template = _get_template(db, template_id, current_user)

    if not can_modify_template(current_user, template.creator_id):
        raise PermissionDenied("Only the creator or an admin can modify this template")

    update_data = template_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(template, field, value)

    db.commit()
    db.refresh(template)
    _invalidate_categories()

    logger.info(f"Template updated: {template.id} by {current_user.id}")

    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a template. Sites created from it keep their structure."""
    template = _get_template(db, template_id, current_user)

    if not can_modify_template(current_user, template.creator_id):
        raise PermissionDenied("Only the creator or an admin can delete this template")

    db.delete(template)
    db.commit()
    _invalidate_categories()

    logger.info(f"Template deleted: {template_id} by {current_user.id}")

    return None


@router.post("/{template_id}/rate", response_model=TemplateResponse)
async def rate_template(
    template_id: str,
    body: TemplateRating,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Add a 1-5 rating to the running average.

    NOTE: Ratings aren't tracked per user, so repeated ratings all count.
    """
    template = _get_template(db, template_id, current_user)
    template.add_rating(body.rating)
    db.commit()
    db.refresh(template)
    return template


@router.post("/apply/{template_id}/to/{site_id}", response_model=SiteResponse)
async def apply_template(
    template_id: str,
    site_id: str,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """
    Replace a site's structure with the template's.

    The previous structure is kept as a site version.
    """
    template = _get_template(db, template_id, current_user)
    site = get_site_for_user(db, site_id, current_user, for_update=True)
    return apply_template_to_site(db, site, template, current_user)
