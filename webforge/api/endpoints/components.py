"""
Component Library Endpoints

RBAC:
- List/view: Any authenticated user
- Create custom component: Editor role or higher
- Create built-in component (is_custom=false): Admin only
- Update/delete: Creator or admin; built-in components admin only
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional

from webforge.database import get_db
from webforge.models.user import User, UserRole
from webforge.models.component import Component
from webforge.schemas.component import (
    ComponentCreate,
    ComponentListResponse,
    ComponentResponse,
    ComponentUpdate,
    PropertyValidationRequest,
    PropertyValidationResponse,
)
from webforge.api.deps import get_current_user, require_editor
from webforge.core.permissions import PermissionDenied, can_modify_component
from webforge.core.exceptions import ComponentNotFoundError, ConflictError
from webforge.services.components import validate_properties
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/components", tags=["components"])


def _get_component(db: Session, component_id: str) -> Component:
    component = db.query(Component).filter(Component.id == component_id).first()
    if not component:
        raise ComponentNotFoundError(component_id)
    return component


def _ensure_name_available(db: Session, name: str, exclude_id: str = None) -> None:
    query = db.query(Component).filter(Component.name == name)
    if exclude_id:
        query = query.filter(Component.id != exclude_id)
    if query.first():
        raise ConflictError(f"Component name already exists: {name}")


@router.get("", response_model=ComponentListResponse)
async def list_components(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    type: Optional[str] = Query(None, pattern="^(atomic|molecule|organism|custom)$"),
    category: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Component)

    if type:
        query = query.filter(Component.type == type)
    if category:
        query = query.filter(Component.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Component.name.ilike(pattern), Component.description.ilike(pattern)))

    total = query.count()

    offset = (page - 1) * page_size
    components = query.order_by(
        Component.usage_count.desc(), Component.name
    ).offset(offset).limit(page_size).all()

    return ComponentListResponse(
        components=components,
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/categories", response_model=List[str])
async def list_categories(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    rows = db.query(Component.category).filter(Component.category.isnot(None)).distinct().all()
    return sorted(category for (category,) in rows)


@router.get("/{component_id}", response_model=ComponentResponse)
async def get_component(
    component_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _get_component(db, component_id)


@router.post("", response_model=ComponentResponse, status_code=status.HTTP_201_CREATED)
async def create_component(
    component_data: ComponentCreate,
    current_user: User = Depends(require_editor),
    db: Session = Depends(get_db)
):
    """Create a component. Names are unique across the library."""
    if not component_data.is_custom and current_user.role != UserRole.ADMIN:
        raise PermissionDenied("Only admins can create built-in components")

    _ensure_name_available(db, component_data.name)

    data = component_data.model_dump()
    component = Component(creator_id=current_user.id, **data)

    db.add(component)
    db.commit()
    db.refresh(component)

    logger.info(f"Component created: {component.name} ({component.id}) by {current_user.id}")

    return component


@router.patch("/{component_id}", response_model=ComponentResponse)
async def update_component(
    component_id: str,
    component_data: ComponentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    component = _get_component(db, component_id)

    if not can_modify_component(current_user, component.creator_id, component.is_custom):
        raise PermissionDenied("Not authorized to modify this component")

    update_data = component_data.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] != component.name:
        _ensure_name_available(db, update_data["name"], exclude_id=component.id)

    for field, value in update_data.items():
        setattr(component, field, value)

    db.commit()
    db.refresh(component)

    logger.info(f"Component updated: {component.id} by {current_user.id}")

    return component


@router.delete("/{component_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_component(
    component_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    component = _get_component(db, component_id)

    if not can_modify_component(current_user, component.creator_id, component.is_custom):
        raise PermissionDenied("Not authorized to delete this component")

    db.delete(component)
    db.commit()

    logger.info(f"Component deleted: {component_id} by {current_user.id}")

    return None


@router.post("/{component_id}/validate", response_model=PropertyValidationResponse)
async def validate_component_properties(
    component_id: str,
    body: PropertyValidationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Validate instance properties against the component's schema.

    Returns the properties merged over the defaults, plus any errors.
    """
    component = _get_component(db, component_id)
    merged, errors = validate_properties(
        component.properties_schema,
        component.default_properties,
        body.properties
    )
    return PropertyValidationResponse(valid=not errors, errors=errors, properties=merged)
