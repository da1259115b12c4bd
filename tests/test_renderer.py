from __future__ import annotations

from webforge.models.page import Page
from webforge.services.renderer.optimizer import optimize_asset
from webforge.services.renderer.preview import render_preview
from webforge.services.renderer.ssr import build_head_tags, initial_state_script, render_page
from webforge.utils.minify import minify_css, minify_html, minify_js, optimize_svg


def test_render_page_produces_full_document(site, home_page) -> None:
    result = render_page(home_page, site)

    assert result["error_code"] is None
    html = result["html"]
    assert html.startswith("<!DOCTYPE html>")
    assert '<body class="wf-site">' in html
    assert f'<div id="app" class="page-{home_page.id}">' in html
    assert "Hello &lt;world&gt;" in html
    assert "window.__INITIAL_STATE__" in html
    assert result["head_tags"] in html


def test_head_tags_use_page_and_site_seo(site, home_page) -> None:
    tags = build_head_tags(home_page, site)
    assert "<title>Home | Portfolio</title>" in tags
    assert '<meta name="description" content="My work">' in tags
    assert '<meta property="og:title" content="Home | Portfolio">' in tags
    assert '<link rel="canonical" href="https://portfolio.webforge.site/">' in tags


def test_head_tags_escape_user_content() -> None:
    page = Page(title='<script>alert("x")</script>', path="/", seo_keywords=["a", "b"])
    tags = build_head_tags(page)
    assert "<script>" not in tags
    assert "&lt;script&gt;" in tags
    assert '<meta name="keywords" content="a, b">' in tags
    assert "canonical" not in tags


def test_initial_state_script_is_html_safe() -> None:
    script = initial_state_script({"title": "</script><script>alert(1)"})
    assert script.count("</script>") == 1
    assert script.endswith(";</script>")


def test_render_page_failure_returns_error_document() -> None:
    page = Page(id="broken", site_id="s1", title="Broken", path="/broken", content={"type": "bad tag"})
    result = render_page(page)
    assert result["error_code"] == 500
    assert "Error 500" in result["html"]
    assert result["head_tags"] == ""


def test_render_preview_scopes_styles(hero_tree) -> None:
    result = render_preview(hero_tree, "abc", title="Draft", data={"version": 3})

    assert result["css"].startswith(".preview-abc {")
    html = result["html"]
    assert '<div id="preview-root" class="preview-abc">' in html
    assert "<title>Draft</title>" in html
    assert "window.__PREVIEW_DATA__ = " in html
    assert '"id": "abc"' in html
    assert '"version": 3' in html
    assert result["js"] in html


def test_optimize_asset_by_kind() -> None:
    assert optimize_asset("a {\n  color: red;\n}", "css") == "a{color:red}"
    assert optimize_asset("let a = 1; // one\n\nlet b = 2;", "js") == "let a = 1;\nlet b = 2;"
    assert optimize_asset("raw-bytes", "image") == "raw-bytes"
    assert optimize_asset("%PDF", "pdf") == "%PDF"


def test_minify_css_keeps_strings() -> None:
    assert minify_css('a::after { content: "a  ;  b"; } /* note */') == 'a::after{content:"a  ;  b"}'


def test_minify_js_keeps_comment_markers_in_strings() -> None:
    assert minify_js('var url = "http://x"; /* block */\n') == 'var url = "http://x";'


def test_minify_html_preserves_pre_blocks() -> None:
    html = "<div>\n  <pre>  keep\n  this </pre>\n  <!-- note -->\n  <p> a </p>\n</div>"
    result = minify_html(html)
    assert "<pre>  keep\n  this </pre>" in result
    assert "<!--" not in result
    assert result.endswith("<p> a </p> </div>")


def test_minify_html_keeps_space_between_inline_elements() -> None:
    assert minify_html("<p><b>a</b>\n   <i>b</i></p>") == "<p><b>a</b> <i>b</i></p>"


def test_optimize_svg() -> None:
    svg = '<?xml version="1.0"?>\n<svg>  <!-- c -->  <metadata>m</metadata> <g/> </svg>'
    assert optimize_svg(svg) == "<svg><g/></svg>"
