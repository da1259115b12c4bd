"""
HTML Generation

Renders component trees to HTML. A node is

    {"type": "section", "id": "n1", "props": {...}, "children": [...]}

where children are nodes or text. Text is always escaped. "root" and
"fragment" nodes render only their children, so parser output can be
rendered back.
"""
import json
import re
from typing import Any, Dict, Optional

from markupsafe import escape

from webforge.core.exceptions import CodegenError
from webforge.services.codegen.css import style_to_inline
from webforge.services.codegen.parser import VOID_ELEMENTS, parse_html
from webforge.utils.minify import minify_html
from webforge.utils.templating import render_template

CONTAINER_TYPES = {"root", "fragment"}

# Editor prop names that differ from their HTML attribute
ATTRIBUTE_ALIASES = {
    "className": "class",
    "htmlFor": "for",
    "tabIndex": "tabindex",
    "readOnly": "readonly",
    "maxLength": "maxlength",
}

_TAG_NAME = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*$")
_ATTRIBUTE_NAME = re.compile(r"^[a-zA-Z_:][-a-zA-Z0-9_:.]*$")
_EVENT_PROP = re.compile(r"^on[A-Z]")


def styled_class(node_id: str) -> str:
    """Class given to nodes that carry their own styles."""
    return f"wf-{node_id}"


def render_attributes(props: Dict[str, Any]) -> str:
    parts = []
    for key, value in props.items():
        if key == "children" or value is None or value is False:
            continue
        # Handlers are wired up by the generated JS, not inline
        if _EVENT_PROP.match(key):
            continue

        name = ATTRIBUTE_ALIASES.get(key, key)
        if not _ATTRIBUTE_NAME.match(name):
            raise CodegenError(f"Invalid attribute name: {key}")

        if value is True:
            parts.append(f" {name}")
            continue

        if name == "style" and isinstance(value, dict):
            value = style_to_inline(value)
            if not value:
                continue
        elif name == "class" and isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value if v)
        elif isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"))

        parts.append(f' {name}="{escape(str(value))}"')
    return "".join(parts)


def render_node(node: Any, tag_map: Optional[Dict[str, str]] = None) -> str:
    if node is None or isinstance(node, bool):
        return ""
    if isinstance(node, (str, int, float)):
        return str(escape(str(node)))
    if isinstance(node, (list, tuple)):
        return "".join(render_node(child, tag_map) for child in node)
    if not isinstance(node, dict):
        raise CodegenError(f"Invalid component node: {type(node).__name__}")

    node_type = node.get("type")
    if not node_type or not isinstance(node_type, str):
        raise CodegenError("Component node is missing a type")

    children = node.get("children") or []
    if node_type in CONTAINER_TYPES:
        return render_node(children, tag_map)
    if node_type == "text":
        return str(escape(str(node.get("content", ""))))

    tag = (tag_map or {}).get(node_type, node_type)
    if not _TAG_NAME.match(tag):
        raise CodegenError(f"Invalid tag name: {tag}")
    tag = tag.lower()

    props = dict(node.get("props") or {})
    node_id = node.get("id")
    if node_id is not None and node.get("styles"):
        existing = props.pop("className", None) or props.pop("class", None)
        classes = existing if isinstance(existing, list) else ([existing] if existing else [])
        props["class"] = [*classes, styled_class(node_id)]

    attributes = render_attributes(props)
    if node_id is not None:
        attributes += f' data-wf-id="{escape(str(node_id))}"'

    if tag in VOID_ELEMENTS:
        return f"<{tag}{attributes}>"
    return f"<{tag}{attributes}>{render_node(children, tag_map)}</{tag}>"


def validate_html(html: str) -> None:
    """Re-parse generated markup and raise on structural errors."""
    errors = parse_html(html)["errors"]
    if errors:
        raise CodegenError("HTML validation failed: " + "; ".join(errors))


def generate_html(
    tree: Any,
    optimize: bool = False,
    validate: bool = False,
    document: bool = False,
    title: Optional[str] = None,
    tag_map: Optional[Dict[str, str]] = None,
) -> str:
    """
    Render a component tree.

    tag_map translates component types to tags (the component library's
    render_info.tag_name).
    """
    html = render_node(tree, tag_map)

    if validate:
        validate_html(html)

    if document:
        html = render_template("document.html.j2", title=title or "Untitled", body=html)

    if optimize:
        html = minify_html(html)
    return html
