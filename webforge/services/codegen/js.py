"""
JavaScript Generation

Turns a component's functionality definition

    {"state": {...},
     "methods": {"toggle": "state.open = !state.open;"},
     "eventHandlers": {"onClick": "toggle"}}

into a script: a state object, one function per method and a bindEvents
function that wires handlers onto the component's root element.
"""
import json
import re
import textwrap
from typing import Any, Dict, List, Optional

from webforge.core.exceptions import CodegenError
from webforge.utils.minify import minify_js

MODULE_FORMATS = ("esm", "cjs", "iife", "none")
RESERVED_NAMES = {"state", "bindEvents"}

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_DEPENDENCY = re.compile(r"^(@[a-z0-9][\w.-]*/)?[a-z0-9][\w.-]*$", re.IGNORECASE)
_NAME_SEPARATOR = re.compile(r"[^A-Za-z0-9]+")


def to_identifier(dependency: str) -> str:
    """'my-library' -> 'myLibrary', '@scope/ui-kit' -> 'scopeUiKit'."""
    words = [w for w in _NAME_SEPARATOR.split(dependency) if w]
    if not words:
        raise CodegenError(f"Invalid dependency name: {dependency}")
    name = words[0] + "".join(w[:1].upper() + w[1:] for w in words[1:])
    return f"_{name}" if name[0].isdigit() else name


def event_name(handler_key: str) -> str:
    """onClick -> click, onMouseEnter -> mouseenter, click -> click."""
    if handler_key.startswith("on") and handler_key[2:3].isupper():
        handler_key = handler_key[2:]
    name = handler_key.lower()
    if not name.isalnum():
        raise CodegenError(f"Invalid event name: {handler_key}")
    return name


def _check_identifier(name: str, what: str) -> None:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise CodegenError(f"Invalid {what} name: {name}")


def _indent(code: str) -> str:
    return textwrap.indent(textwrap.dedent(code).strip("\n"), "  ")


def method_source(name: str, definition: Any) -> str:
    if isinstance(definition, dict):
        params = definition.get("params") or []
        for param in params:
            _check_identifier(param, "parameter")
        body = definition.get("body") or ""
        return f"function {name}({', '.join(params)}) {{\n{_indent(body)}\n}}"
    if isinstance(definition, str):
        source = definition.strip()
        # "(event) { ... }" carries its own signature
        if source.startswith("("):
            return f"function {name}{source}"
        return f"function {name}() {{\n{_indent(source)}\n}}"
    raise CodegenError(f"Invalid definition for method: {name}")


def dependency_imports(dependencies: List[str], module_format: str) -> str:
    lines = []
    for dep in dependencies:
        if not _DEPENDENCY.match(dep):
            raise CodegenError(f"Invalid dependency name: {dep}")
        if module_format == "esm":
            lines.append(f"import * as {to_identifier(dep)} from '{dep}';")
        elif module_format == "cjs":
            lines.append(f"const {to_identifier(dep)} = require('{dep}');")
    return "\n".join(lines)


def generate_js(
    functionality: Dict[str, Any],
    module_format: str = "none",
    optimize: bool = False,
    include_dependencies: bool = False,
    dependencies: Optional[List[str]] = None,
    target_selector: Optional[str] = None,
) -> str:
    """
    Generate a script for one component.

    With target_selector the script also calls bindEvents on the first
    matching element. Dependencies become imports (esm) or requires (cjs);
    for iife and none they are expected as globals.
    """
    if module_format not in MODULE_FORMATS:
        raise CodegenError(f"Unsupported module format: {module_format}")
    if not isinstance(functionality, dict):
        raise CodegenError("Functionality must be an object")

    sections = []
    exported = []

    state = functionality.get("state")
    if state is not None:
        state_json = json.dumps(state, indent=2).replace("</", "<\\/")
        sections.append(f"let state = {state_json};")
        exported.append("state")

    methods = functionality.get("methods") or {}
    for name, definition in methods.items():
        _check_identifier(name, "method")
        if name in RESERVED_NAMES:
            raise CodegenError(f"Method name is reserved: {name}")
        sections.append(method_source(name, definition))
        exported.append(name)

    handlers = functionality.get("eventHandlers") or functionality.get("event_handlers") or {}
    if handlers:
        bindings = []
        for key, method in handlers.items():
            if method not in methods:
                raise CodegenError(f"Event handler '{key}' refers to unknown method: {method}")
            bindings.append(f'  root.addEventListener("{event_name(key)}", {method});')
        sections.append(
            "function bindEvents(root) {\n  if (!root) {\n    return;\n  }\n"
            + "\n".join(bindings)
            + "\n}"
        )
        exported.append("bindEvents")
        if target_selector:
            sections.append(f"bindEvents(document.querySelector({json.dumps(target_selector)}));")

    code = "\n\n".join(sections)

    if code and exported:
        if module_format == "esm":
            code += f"\n\nexport {{ {', '.join(exported)} }};"
        elif module_format == "cjs":
            code += f"\n\nmodule.exports = {{ {', '.join(exported)} }};"
    if code and module_format == "iife":
        code = f"(function () {{\n{_indent(code)}\n}})();"

    if include_dependencies and dependencies:
        imports = dependency_imports(dependencies, module_format)
        if imports:
            code = f"{imports}\n\n{code}" if code else imports

    if optimize:
        return minify_js(code)
    return code + "\n" if code else ""
