"""
Server-Side Rendering

Renders a page's component tree into a complete HTML document, with head
tags built from the page's SEO fields and the site's SEO settings.

NOTE: render_page never raises. A page that fails to render produces an
error document with error_code 500 so a single broken page can't take
down a build or a request.
"""
from typing import Any, Dict, List, Optional

from markupsafe import Markup
from jinja2.utils import htmlsafe_json_dumps

from webforge.config import get_settings
from webforge.core.exceptions import CodegenError
from webforge.services.codegen.export import export_bundle
from webforge.utils.logging import get_logger
from webforge.utils.templating import render_template

logger = get_logger(__name__)

SITE_BODY_CLASS = "wf-site"


def build_head_tags(page, site=None) -> str:
    seo = (getattr(site, "seo_settings", None) or {}) if site is not None else {}

    title = page.seo_title or page.title
    if seo.get("title_suffix"):
        title = f"{title} {seo['title_suffix']}"
    elif site is not None:
        title = f"{title} | {site.name}"

    description = page.seo_description or seo.get("description")
    keywords = page.seo_keywords or seo.get("keywords") or []

    tags = [Markup("<title>{}</title>").format(title)]
    if description:
        tags.append(Markup('<meta name="description" content="{}">').format(description))
    if keywords:
        tags.append(Markup('<meta name="keywords" content="{}">').format(", ".join(keywords)))
    tags.append(Markup('<meta property="og:title" content="{}">').format(title))
    if description:
        tags.append(Markup('<meta property="og:description" content="{}">').format(description))
    if seo.get("og_image"):
        tags.append(Markup('<meta property="og:image" content="{}">').format(seo["og_image"]))

    canonical = canonical_url(page, site)
    if canonical:
        tags.append(Markup('<link rel="canonical" href="{}">').format(canonical))
    return "\n".join(tags)


def canonical_url(page, site=None) -> Optional[str]:
    if site is None:
        return None
    if site.custom_domain:
        host = site.custom_domain
    elif site.subdomain:
        host = f"{site.subdomain}.{get_settings().PLATFORM_DOMAIN}"
    else:
        return None
    return f"https://{host}{page.path}"


def initial_state_script(state: Dict[str, Any]) -> str:
    return f"<script>window.__INITIAL_STATE__ = {htmlsafe_json_dumps(state)};</script>"


def render_error_document(error_code: int = 500, message: str = "This page could not be rendered.") -> Dict[str, Any]:
    return {
        "html": render_template("error.html.j2", error_code=error_code, message=message),
        "head_tags": "",
        "initial_state_script": "",
        "error_code": error_code,
    }


def render_page(
    page,
    site=None,
    stylesheets: Optional[List[str]] = None,
    scripts: Optional[List[str]] = None,
    optimize: bool = False,
) -> Dict[str, Any]:
    """
    Render a page to {"html", "head_tags", "initial_state_script"}.

    stylesheets and scripts are extra asset URLs linked from the document
    (the site-wide bundle during a build).
    """
    try:
        scope = f"page-{page.id}"
        bundle = export_bundle(page.content or {}, scope=scope, optimize=optimize)
        head_tags = build_head_tags(page, site)
        state = {
            "page": {"id": page.id, "title": page.title, "path": page.path},
            "site": {"id": site.id, "name": site.name} if site is not None else None,
        }
        state_script = initial_state_script(state)

        lang = "en"
        if site is not None:
            lang = (site.settings or {}).get("language", "en")

        html = render_template(
            "ssr.html.j2",
            lang=lang,
            head_tags=head_tags,
            stylesheets=stylesheets or [],
            scripts=scripts or [],
            css=bundle["css"],
            js=bundle["js"],
            body=bundle["html"],
            body_class=SITE_BODY_CLASS,
            scope=scope,
            initial_state_script=state_script,
        )
    except CodegenError as e:
        logger.warning(f"SSR failed for page {page.id}: {e.detail}", extra={"site_id": page.site_id})
        return render_error_document(500)
    except Exception:
        logger.exception(f"Unexpected SSR failure for page {page.id}", extra={"site_id": page.site_id})
        return render_error_document(500)

    return {
        "html": html,
        "head_tags": head_tags,
        "initial_state_script": state_script,
        "error_code": None,
    }
