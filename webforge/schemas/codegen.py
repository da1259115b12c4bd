"""
Codegen Schemas

Request/response models for the stateless code generation endpoints.
Component trees are passed through as plain JSON.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Union


class HtmlRequest(BaseModel):
    tree: Union[Dict[str, Any], List[Any]]
    optimize: bool = False
    validate_output: bool = Field(False, alias="validate")
    document: bool = False
    title: Optional[str] = None

    class Config:
        populate_by_name = True


class CssRequest(BaseModel):
    styles: Dict[str, Any]
    scope: Optional[str] = None
    optimize: bool = False
    preprocessor: str = Field("none", pattern="^(none|scss|less)$")


class JsRequest(BaseModel):
    functionality: Dict[str, Any]
    module_format: str = Field("none", pattern="^(esm|cjs|iife|none)$")
    include_dependencies: bool = False
    dependencies: List[str] = Field(default_factory=list)
    optimize: bool = False


class ParseRequest(BaseModel):
    html: str


class CodeResponse(BaseModel):
    code: str


class ParseResponse(BaseModel):
    ast: Dict[str, Any]
    errors: List[str]


class BundleResponse(BaseModel):
    html: str
    css: str
    js: str


class OptimizeRequest(BaseModel):
    content: str
    kind: str = Field(..., max_length=20)
