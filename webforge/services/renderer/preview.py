"""
Preview Rendering

Builds the standalone HTML document the editor shows in its preview
frame. CSS is scoped to preview-{id} so several previews can share a
page without their styles leaking into each other.
"""
from typing import Any, Dict, Optional

from webforge.services.codegen.export import export_bundle
from webforge.utils.logging import get_logger
from webforge.utils.templating import render_template

logger = get_logger(__name__)


def preview_scope(preview_id: str) -> str:
    return f"preview-{preview_id}"


def render_preview(
    tree: Any,
    preview_id: str,
    title: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    tag_map: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """
    Render a component tree for preview.

    Returns {"html", "css", "js"}; "html" is the full document with the
    CSS, the preview data and the JS (wrapped in an IIFE) embedded.
    """
    scope = preview_scope(preview_id)
    bundle = export_bundle(tree, scope=scope, tag_map=tag_map)

    document = render_template(
        "preview.html.j2",
        title=title or "Preview",
        scope=scope,
        body=bundle["html"],
        css=bundle["css"],
        js=bundle["js"],
        data={"id": preview_id, **(data or {})},
    )
    logger.debug(f"Rendered preview {preview_id} ({len(document)} bytes)")
    return {"html": document, "css": bundle["css"], "js": bundle["js"]}
