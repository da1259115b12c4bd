"""
Database Models

Every site-scoped model (pages, versions, deployments, analytics events)
carries site_id; ownership is checked through the parent site.
"""
from webforge.models.user import User, UserRole
from webforge.models.template import Template
from webforge.models.component import Component
from webforge.models.site import Site, SiteVersion
from webforge.models.page import Page
from webforge.models.deployment import Deployment
from webforge.models.analytics import AnalyticsEvent

__all__ = [
    "User",
    "UserRole",
    "Template",
    "Component",
    "Site",
    "SiteVersion",
    "Page",
    "Deployment",
    "AnalyticsEvent",
]
