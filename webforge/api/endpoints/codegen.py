"""
Code Generation Endpoints

Stateless conversions between component trees and code. Nothing is
stored; any authenticated user may call them.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from webforge.database import get_db
from webforge.models.user import User
from webforge.schemas.codegen import (
    BundleResponse,
    CodeResponse,
    CssRequest,
    HtmlRequest,
    JsRequest,
    OptimizeRequest,
    ParseRequest,
    ParseResponse,
)
from webforge.api.deps import get_current_user
from webforge.services.codegen.css import generate_css
from webforge.services.codegen.export import export_bundle
from webforge.services.codegen.html import generate_html
from webforge.services.codegen.js import generate_js
from webforge.services.codegen.parser import parse_html
from webforge.services.components import component_tag_map
from webforge.services.renderer.optimizer import optimize_asset

router = APIRouter(prefix="/codegen", tags=["codegen"])


@router.post("/html", response_model=CodeResponse)
async def html(
    body: HtmlRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    code = generate_html(
        body.tree,
        optimize=body.optimize,
        validate=body.validate_output,
        document=body.document,
        title=body.title,
        tag_map=component_tag_map(db),
    )
    return CodeResponse(code=code)


@router.post("/css", response_model=CodeResponse)
async def css(body: CssRequest, current_user: User = Depends(get_current_user)):
    code = generate_css(
        body.styles,
        scope=body.scope,
        optimize=body.optimize,
        preprocessor=body.preprocessor,
    )
    return CodeResponse(code=code)


@router.post("/js", response_model=CodeResponse)
async def js(body: JsRequest, current_user: User = Depends(get_current_user)):
    code = generate_js(
        body.functionality,
        module_format=body.module_format,
        optimize=body.optimize,
        include_dependencies=body.include_dependencies,
        dependencies=body.dependencies,
    )
    return CodeResponse(code=code)


@router.post("/parse", response_model=ParseResponse)
async def parse(body: ParseRequest, current_user: User = Depends(get_current_user)):
    """Parse HTML into a component tree. Structural problems come back as errors."""
    return parse_html(body.html)


@router.post("/export", response_model=BundleResponse)
async def export(
    body: HtmlRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return export_bundle(body.tree, optimize=body.optimize, tag_map=component_tag_map(db), standalone=True)


@router.post("/optimize", response_model=CodeResponse)
async def optimize(body: OptimizeRequest, current_user: User = Depends(get_current_user)):
    return CodeResponse(code=optimize_asset(body.content, body.kind))
