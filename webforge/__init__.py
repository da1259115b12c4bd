"""
WebForge

Backend for a visual website builder: sites, pages, templates and
components, code generation from component trees, rendering, deployment
and analytics.
"""

__version__ = "1.0.0"
