"""
Asset Optimizer

Minifies text assets by kind. Images and unknown kinds pass through
untouched, and an optimizer failure returns the original content.
"""
from webforge.utils.logging import get_logger
from webforge.utils.minify import minify_css, minify_html, minify_js, optimize_svg

logger = get_logger(__name__)

OPTIMIZERS = {
    "js": minify_js,
    "css": minify_css,
    "svg": optimize_svg,
    "html": minify_html,
}


def optimize_asset(content: str, kind: str) -> str:
    optimizer = OPTIMIZERS.get(kind)
    if optimizer is None:
        if kind != "image":
            logger.warning(f"Unsupported asset type for optimization: {kind}")
        return content

    try:
        return optimizer(content)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning(f"Failed to optimize {kind} asset: {e}")
        return content
