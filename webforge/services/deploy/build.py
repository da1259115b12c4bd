"""
Static Build

Renders every non-archived page of a site through SSR and writes the
result as a static tree:

    {BUILD_OUTPUT_DIR}/{site_id}/{deployment_id}/
        index.html
        about/index.html
        assets/site.css
        assets/site.js

Failures are reported in the BuildResult, never raised, so the deployer
can record them on the deployment.
"""
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from webforge.config import get_settings
from webforge.core.exceptions import CodegenError
from webforge.services.codegen.export import export_bundle
from webforge.services.renderer.optimizer import optimize_asset
from webforge.services.renderer.ssr import SITE_BODY_CLASS, render_page
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

SITE_STYLESHEET = "assets/site.css"
SITE_SCRIPT = "assets/site.js"


class BuildFailed(Exception):
    pass


@dataclass
class BuildResult:
    success: bool
    log: str
    output_path: Optional[str] = None
    files: List[str] = field(default_factory=list)
    error: Optional[str] = None


def page_output_path(root: Path, page_path: str) -> Path:
    """/ -> index.html, /about -> about/index.html. Paths may not leave root."""
    relative = page_path.strip("/")
    target = (root / relative / "index.html") if relative else (root / "index.html")
    resolved = target.resolve()
    if root.resolve() not in resolved.parents:
        raise BuildFailed(f"Page path escapes the build directory: {page_path}")
    return resolved


def _failed(log: List[str], files: List[str], error: str, started: float) -> BuildResult:
    log.append("--- BUILD FAILED ---")
    log.append(error)
    log.append(f"Build failed after {time.monotonic() - started:.2f}s.")
    return BuildResult(success=False, log="\n".join(log), files=files, error=error)


def build_site(
    site,
    pages,
    deployment_id: str,
    output_root: Optional[str] = None,
    optimize: bool = True,
) -> BuildResult:
    log: List[str] = []
    files: List[str] = []
    started = time.monotonic()

    root = Path(output_root or get_settings().BUILD_OUTPUT_DIR) / site.id / deployment_id
    log.append(f"Building site {site.id} into {root}")

    try:
        if root.exists():
            shutil.rmtree(root)
        (root / "assets").mkdir(parents=True)
        log.append("Cleaned and prepared output directory.")

        bundle = export_bundle(site.structure or {}, scope=SITE_BODY_CLASS)
        css, js = bundle["css"], bundle["js"]
        if optimize:
            css, js = optimize_asset(css, "css"), optimize_asset(js, "js")
        (root / SITE_STYLESHEET).write_text(css, encoding="utf-8")
        (root / SITE_SCRIPT).write_text(js, encoding="utf-8")
        files.extend([SITE_STYLESHEET, SITE_SCRIPT])
        log.append("Wrote site assets.")

        rendered = 0
        for page in pages:
            if page.status == "archived":
                continue
            result = render_page(
                page,
                site,
                stylesheets=[f"/{SITE_STYLESHEET}"],
                scripts=[f"/{SITE_SCRIPT}"],
                optimize=optimize,
            )
            if result.get("error_code"):
                raise BuildFailed(f"Page {page.path} failed to render")

            html = optimize_asset(result["html"], "html") if optimize else result["html"]
            target = page_output_path(root, page.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
            files.append(target.relative_to(root.resolve()).as_posix())
            rendered += 1
            log.append(f"Rendered {page.path}")

        if rendered == 0:
            raise BuildFailed("Site has no pages to build")

    except (BuildFailed, OSError) as e:
        logger.warning(f"Build failed for site {site.id}: {e}", extra={"site_id": site.id})
        return _failed(log, files, str(e), started)
    except CodegenError as e:
        logger.warning(f"Build failed for site {site.id}: {e.detail}", extra={"site_id": site.id})
        return _failed(log, files, e.detail, started)
    except Exception as e:
        logger.exception(f"Unexpected build error for site {site.id}", extra={"site_id": site.id})
        return _failed(log, files, f"Unexpected error: {e}", started)

    duration = time.monotonic() - started
    log.append(f"Build completed successfully in {duration:.2f}s ({len(files)} files).")
    logger.info(f"Build finished for site {site.id}: {len(files)} files", extra={"site_id": site.id})
    return BuildResult(success=True, log="\n".join(log), output_path=str(root), files=files)
