"""
HTML Parser

Parses HTML text back into a component tree rooted at {"type": "root"}.
Structural problems (stray closing tags, unclosed tags) are collected as
error strings instead of raised, so the editor can show them next to the
partially parsed tree.
"""
import re
from html.parser import HTMLParser
from typing import Any, Dict, List, Optional, Tuple

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}

_KEBAB_BOUNDARY = re.compile(r"-([a-z])")


def _camel_case(prop: str) -> str:
    prop = prop.strip().lower()
    if prop.startswith("--"):
        return prop
    if prop.startswith("-"):
        prop = prop[1:]
        prop = prop[:1].upper() + prop[1:] if not prop.startswith("ms-") else prop
    return _KEBAB_BOUNDARY.sub(lambda m: m.group(1).upper(), prop)


def parse_style(style: str) -> Dict[str, str]:
    """'font-size: 12px; color: red' -> {"fontSize": "12px", "color": "red"}"""
    result = {}
    for declaration in style.split(";"):
        if ":" not in declaration:
            continue
        prop, value = declaration.split(":", 1)
        if prop.strip() and value.strip():
            result[_camel_case(prop)] = value.strip()
    return result


class ComponentTreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root: Dict[str, Any] = {"type": "root", "props": {}, "children": []}
        self.stack: List[Tuple[Dict[str, Any], Tuple[int, int]]] = []
        self.errors: List[str] = []

    @property
    def current(self) -> Dict[str, Any]:
        return self.stack[-1][0] if self.stack else self.root

    def _node(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> Dict[str, Any]:
        node: Dict[str, Any] = {"type": tag, "props": {}, "children": []}
        for name, value in attrs:
            if name == "data-wf-id":
                node["id"] = value
            elif name == "style" and value:
                node["props"]["style"] = parse_style(value)
            elif name == "class":
                node["props"]["className"] = value or ""
            else:
                node["props"][name] = True if value is None else value
        return node

    def handle_starttag(self, tag, attrs):
        node = self._node(tag, attrs)
        self.current["children"].append(node)
        if tag not in VOID_ELEMENTS:
            self.stack.append((node, self.getpos()))

    def handle_startendtag(self, tag, attrs):
        self.current["children"].append(self._node(tag, attrs))

    def handle_endtag(self, tag):
        if tag in VOID_ELEMENTS:
            return
        line, col = self.getpos()
        open_tags = [node["type"] for node, _ in self.stack]
        if tag not in open_tags:
            self.errors.append(f"Unexpected closing tag </{tag}> at line {line}, column {col}")
            return
        while self.stack:
            node, (open_line, open_col) = self.stack.pop()
            if node["type"] == tag:
                break
            self.errors.append(
                f"Unclosed tag <{node['type']}> opened at line {open_line}, column {open_col}"
            )

    def handle_data(self, data):
        if data.strip():
            self.current["children"].append(data)

    def finish(self) -> None:
        self.close()
        for node, (line, col) in reversed(self.stack):
            self.errors.append(f"Unclosed tag <{node['type']}> opened at line {line}, column {col}")
        self.stack = []


def parse_html(html: str) -> Dict[str, Any]:
    """Parse HTML into {"ast": tree, "errors": [...]}."""
    builder = ComponentTreeBuilder()
    builder.feed(html)
    builder.finish()
    return {"ast": builder.root, "errors": builder.errors}
