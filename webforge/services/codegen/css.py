"""
CSS Generation

Turns a component's style object into CSS rules.

    {"color": "red", "fontSize": 14, ":hover": {"color": "blue"},
     "@media (max-width: 600px)": {"width": "100%"}}

becomes one rule for the scope selector, one pseudo-class rule and one
media block. Property names are camelCase in the editor and kebab-case
in the output.
"""
import re
from typing import Any, Dict, List, Optional

from webforge.core.exceptions import CodegenError
from webforge.utils.minify import minify_css

DEFAULT_SELECTOR = ".generated-styles"
PREPROCESSORS = ("none", "scss", "less")

# Numeric values for these get "px"
LENGTH_PROPERTIES = {
    "width", "height", "min-width", "max-width", "min-height", "max-height",
    "margin", "margin-top", "margin-right", "margin-bottom", "margin-left",
    "padding", "padding-top", "padding-right", "padding-bottom", "padding-left",
    "top", "right", "bottom", "left", "font-size", "letter-spacing",
    "border-width", "border-radius", "outline-width", "gap", "row-gap",
    "column-gap", "flex-basis", "text-indent",
}

VENDOR_PREFIXES = ("webkit", "moz", "ms", "o")

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_PROPERTY_NAME = re.compile(r"^-?[a-z][a-z0-9-]*$")
_SCOPE_NAME = re.compile(r"^-?[_a-zA-Z][_a-zA-Z0-9-]*$")
_FORBIDDEN_VALUE_CHARS = set("{}<>")


def to_kebab_case(name: str) -> str:
    """fontSize -> font-size, WebkitTransition -> -webkit-transition."""
    if name.startswith("--"):
        return name
    kebab = _CAMEL_BOUNDARY.sub(r"\1-\2", name).lower()
    prefix = kebab.split("-", 1)[0]
    if prefix in VENDOR_PREFIXES and (name[:1].isupper() or prefix == "ms"):
        kebab = "-" + kebab
    return kebab


def format_value(prop: str, value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if prop in LENGTH_PROPERTIES and value != 0:
            return f"{value}px"
        return str(value)
    if not isinstance(value, str):
        raise CodegenError(f"Invalid value for CSS property '{prop}'")
    if _FORBIDDEN_VALUE_CHARS.intersection(value):
        raise CodegenError(f"Invalid characters in value for CSS property '{prop}'")
    return value.strip()


def declarations(styles: Dict[str, Any]) -> List[str]:
    """'prop: value' strings for the flat entries of a style object."""
    result = []
    for key, value in styles.items():
        if isinstance(value, dict):
            continue
        prop = to_kebab_case(key)
        if not prop.startswith("--") and not _PROPERTY_NAME.match(prop):
            raise CodegenError(f"Invalid CSS property name: {key}")
        formatted = format_value(prop, value)
        if formatted is not None and formatted != "":
            result.append(f"{prop}: {formatted}")
    return result


def style_to_inline(styles: Dict[str, Any]) -> str:
    """Flat style object as a style attribute value. Nested rules are ignored."""
    return "; ".join(declarations(styles))


def _rule(selector: str, decls: List[str], indent: str = "") -> str:
    body = "".join(f"{indent}  {d};\n" for d in decls)
    return f"{indent}{selector} {{\n{body}{indent}}}"


def _rules(selector: str, styles: Dict[str, Any], indent: str = "") -> List[str]:
    blocks = []
    own = declarations(styles)
    if own:
        blocks.append(_rule(selector, own, indent))

    for key, value in styles.items():
        if not isinstance(value, dict):
            continue
        if key.startswith(":"):
            blocks.extend(_rules(f"{selector}{key}", value, indent))
        elif key.startswith("@media"):
            inner = _rules(selector, value, indent + "  ")
            if inner:
                blocks.append(f"{indent}{key} {{\n" + "\n".join(inner) + f"\n{indent}}}")
        else:
            raise CodegenError(f"Unsupported nested style key: {key}")
    return blocks


def generate_css(
    styles: Dict[str, Any],
    scope: Optional[str] = None,
    optimize: bool = False,
    preprocessor: str = "none",
) -> str:
    """
    Generate CSS for a style object.

    The rule selector is ".{scope}" or ".generated-styles". The output is
    plain CSS, which is also valid SCSS and Less, so the preprocessor
    option only has to be one of the known names.
    """
    if preprocessor not in PREPROCESSORS:
        raise CodegenError(f"Unsupported CSS preprocessor: {preprocessor}")
    if not isinstance(styles, dict):
        raise CodegenError("Styles must be an object")

    if scope:
        if not _SCOPE_NAME.match(scope):
            raise CodegenError(f"Invalid CSS scope: {scope}")
        selector = f".{scope}"
    else:
        selector = DEFAULT_SELECTOR

    css = "\n".join(_rules(selector, styles))
    if optimize:
        return minify_css(css)
    return css + "\n" if css else ""
