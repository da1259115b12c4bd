from __future__ import annotations

import os
import tempfile

# Settings are read once on first import, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BUILD_OUTPUT_DIR"] = tempfile.mkdtemp(prefix="webforge-build-")

import pytest
from fastapi.testclient import TestClient

import webforge.models  # noqa: F401
from webforge.core.cache import get_cache
from webforge.database import Base, SessionLocal, engine
from webforge.main import app
from webforge.models.page import Page
from webforge.models.site import Site
from webforge.models.user import UserRole
from webforge.services.auth import create_user, issue_tokens

PASSWORD = "Sup3rSecret"


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    get_cache().clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def factory(username: str, role: UserRole = UserRole.EDITOR):
        return create_user(
            db,
            username=username,
            email=f"{username}@example.com",
            password=PASSWORD,
            role=role,
        )

    return factory


@pytest.fixture
def editor(make_user):
    return make_user("editor")


@pytest.fixture
def other_editor(make_user):
    return make_user("other")


@pytest.fixture
def admin(make_user):
    return make_user("admin", UserRole.ADMIN)


@pytest.fixture
def viewer(make_user):
    return make_user("viewer", UserRole.VIEWER)


def headers_for(user) -> dict:
    return {"Authorization": f"Bearer {issue_tokens(user)['access_token']}"}


@pytest.fixture
def editor_headers(editor) -> dict:
    return headers_for(editor)


@pytest.fixture
def admin_headers(admin) -> dict:
    return headers_for(admin)


@pytest.fixture
def hero_tree() -> dict:
    return {
        "type": "section",
        "id": "hero",
        "styles": {"padding": 24, "backgroundColor": "#fff"},
        "children": [
            {"type": "h1", "id": "title", "styles": {"fontSize": 32}, "children": ["Welcome"]},
            {
                "type": "button",
                "id": "cta",
                "props": {"className": "btn"},
                "functionality": {
                    "state": {"clicks": 0},
                    "methods": {"count": "state.clicks += 1;"},
                    "eventHandlers": {"onClick": "count"},
                },
                "children": ["Click me"],
            },
        ],
    }


@pytest.fixture
def site(db, editor, hero_tree):
    site = Site(
        owner_id=editor.id,
        name="Portfolio",
        subdomain="portfolio",
        structure=hero_tree,
        settings={},
        seo_settings={"description": "My work"},
    )
    db.add(site)
    db.commit()
    db.refresh(site)
    return site


@pytest.fixture
def home_page(db, site):
    page = Page(
        site_id=site.id,
        title="Home",
        path="/",
        content={"type": "main", "id": "main", "children": [{"type": "p", "children": ["Hello <world>"]}]},
    )
    db.add(page)
    db.commit()
    db.refresh(page)
    return page
