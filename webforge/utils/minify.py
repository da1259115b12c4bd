"""
Minifiers

Small regex-based minifiers for generated CSS, JS, HTML and SVG. They
only remove comments and redundant whitespace; nothing is renamed or
restructured. HTML whitespace runs shrink to a single space, never to
nothing, since a space between inline elements is rendered.

NOTE: The JS tokenizer recognizes strings and comments but not regex
literals. A regex literal containing "//" or "/*" will be mangled.
"""
import re

_QUOTED = re.compile(r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')""", re.DOTALL)

_CSS_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_CSS_SPACE_AROUND = re.compile(r"\s*([{};,>])\s*")
_CSS_SPACE_AFTER_COLON = re.compile(r":\s+")

_JS_TOKEN = re.compile(
    r"""("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)"""
    r"""|(/\*.*?\*/)"""
    r"""|(//[^\n]*)""",
    re.DOTALL,
)

_HTML_PRESERVE = re.compile(
    r"(<(pre|textarea|script|style)\b.*?</\2\s*>)", re.DOTALL | re.IGNORECASE
)
_HTML_COMMENT = re.compile(r"<!--(?!\[if).*?-->", re.DOTALL)
_SVG_BETWEEN_TAGS = re.compile(r">\s+<")
_WHITESPACE = re.compile(r"\s+")

_SVG_PROLOG = re.compile(r"<\?xml.*?\?>|<!DOCTYPE[^>]*>", re.DOTALL | re.IGNORECASE)
_SVG_METADATA = re.compile(r"<metadata\b.*?</metadata\s*>", re.DOTALL | re.IGNORECASE)


def minify_css(css: str) -> str:
    """Strip comments and collapse whitespace outside string literals."""
    parts = _QUOTED.split(_CSS_COMMENT.sub("", css))
    for i in range(0, len(parts), 2):
        chunk = _WHITESPACE.sub(" ", parts[i])
        chunk = _CSS_SPACE_AROUND.sub(r"\1", chunk)
        parts[i] = _CSS_SPACE_AFTER_COLON.sub(":", chunk)
    return "".join(parts).replace(";}", "}").strip()


def strip_js_comments(js: str) -> str:
    def replace(match):
        if match.group(1):
            return match.group(1)
        if match.group(2):
            return "\n" if "\n" in match.group(2) else " "
        return ""

    return _JS_TOKEN.sub(replace, js)


def minify_js(js: str) -> str:
    """
    Strip comments, trim lines and drop blank ones.

    Line breaks are kept so automatic semicolon insertion still applies.
    """
    lines = (line.strip() for line in strip_js_comments(js).splitlines())
    return "\n".join(line for line in lines if line)


def minify_html(html: str) -> str:
    """Collapse whitespace and drop comments, leaving pre/textarea/script/style alone."""
    out = []
    last = 0
    for match in _HTML_PRESERVE.finditer(html):
        out.append(_collapse_html(html[last:match.start()]))
        out.append(match.group(1))
        last = match.end()
    out.append(_collapse_html(html[last:]))
    return "".join(out).strip()


def _collapse_html(chunk: str) -> str:
    chunk = _HTML_COMMENT.sub("", chunk)
    return _WHITESPACE.sub(" ", chunk)


def optimize_svg(svg: str) -> str:
    svg = _SVG_PROLOG.sub("", svg)
    svg = _SVG_METADATA.sub("", svg)
    svg = _HTML_COMMENT.sub("", svg)
    svg = _SVG_BETWEEN_TAGS.sub("><", svg)
    return _WHITESPACE.sub(" ", svg).strip()
