"""
Bundle Export

Walks a whole component tree and produces the three artifacts a page
needs: markup, one stylesheet with a rule set per styled node and one
script with an isolated block per interactive node.
"""
from typing import Any, Dict, Iterator, List, Optional

from markupsafe import escape

from webforge.services.codegen.css import DEFAULT_SELECTOR, generate_css
from webforge.services.codegen.html import generate_html, styled_class
from webforge.services.codegen.js import generate_js
from webforge.utils.logging import get_logger

logger = get_logger(__name__)


def iter_nodes(tree: Any) -> Iterator[Dict[str, Any]]:
    """Depth-first walk over every element node of a tree."""
    if isinstance(tree, list):
        for child in tree:
            yield from iter_nodes(child)
    elif isinstance(tree, dict):
        yield tree
        yield from iter_nodes(tree.get("children") or [])


def collect_styles(tree: Any, scope: Optional[str] = None, optimize: bool = False) -> str:
    """
    CSS for every node with a "styles" object.

    The top-level node's styles apply to the bundle scope; descendants
    are selected by their wf-{id} class and need an id.
    """
    blocks: List[str] = []
    for index, node in enumerate(iter_nodes(tree)):
        styles = node.get("styles")
        if not styles:
            continue
        if index == 0 and isinstance(tree, dict):
            blocks.append(generate_css(styles, scope=scope, optimize=optimize))
        elif node.get("id") is not None:
            blocks.append(generate_css(styles, scope=styled_class(node["id"]), optimize=optimize))
        else:
            logger.debug(f"Skipping styles on node without id: {node.get('type')}")
    return ("" if optimize else "\n").join(b for b in blocks if b)


def collect_functionality(tree: Any, optimize: bool = False) -> str:
    """One IIFE per interactive node, bound to that node's element."""
    blocks: List[str] = []
    for node in iter_nodes(tree):
        functionality = node.get("functionality")
        if not functionality:
            continue
        selector = f'[data-wf-id="{node["id"]}"]' if node.get("id") is not None else None
        blocks.append(
            generate_js(
                functionality,
                module_format="iife",
                optimize=optimize,
                target_selector=selector,
            )
        )
    return "\n".join(b for b in blocks if b)


def export_bundle(
    tree: Any,
    scope: Optional[str] = None,
    optimize: bool = False,
    tag_map: Optional[Dict[str, str]] = None,
    standalone: bool = False,
) -> Dict[str, str]:
    """
    Whole tree -> {"html", "css", "js"}.

    Standalone bundles wrap the markup in the element the top-level
    styles select. Preview and SSR documents provide that element
    themselves.
    """
    html = generate_html(tree or [], optimize=optimize, tag_map=tag_map)
    if standalone and html:
        scope_class = scope or DEFAULT_SELECTOR.lstrip(".")
        html = f'<div class="{escape(scope_class)}">{html}</div>'
    return {
        "html": html,
        "css": collect_styles(tree, scope=scope, optimize=optimize),
        "js": collect_functionality(tree, optimize=optimize),
    }
