from __future__ import annotations

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from webforge.core.cache import Cache
from webforge.core.exceptions import AuthenticationError, BadRequestError, ConflictError, SiteNotFoundError
from webforge.models.analytics import AnalyticsEvent
from webforge.models.component import Component
from webforge.models.template import Template
from webforge.schemas.analytics import TrackEvent
from webforge.services import analytics
from webforge.services.auth import (
    create_user,
    login_user,
    logout,
    refresh_access_token,
    request_password_reset,
    reset_password,
    verify_email,
)
from webforge.services.components import component_tag_map, validate_properties
from webforge.services.sites import apply_template, clone_site, restore_version, update_structure

PASSWORD = "Sup3rSecret"


# Auth

def test_create_user_rejects_duplicates(db, editor) -> None:
    with pytest.raises(ConflictError, match="email"):
        create_user(db, username="someone", email="EDITOR@example.com", password=PASSWORD)
    with pytest.raises(ConflictError, match="username"):
        create_user(db, username="editor", email="new@example.com", password=PASSWORD)


def test_create_user_rejects_weak_password(db) -> None:
    with pytest.raises(BadRequestError):
        create_user(db, username="weak", email="weak@example.com", password="password")


def test_login_and_refresh_rotation(db, editor) -> None:
    user, tokens = login_user(db, "Editor@Example.com", PASSWORD)
    assert user.id == editor.id
    assert user.last_login_at is not None

    _, rotated = refresh_access_token(db, tokens["refresh_token"])
    assert rotated["access_token"] != tokens["access_token"]

    # Refresh tokens work once
    with pytest.raises(AuthenticationError):
        refresh_access_token(db, tokens["refresh_token"])


@pytest.mark.parametrize("email,password", [
    ("editor@example.com", "Wr0ngPassword"),
    ("nobody@example.com", PASSWORD),
])
def test_login_failures_look_the_same(db, editor, email, password) -> None:
    with pytest.raises(AuthenticationError, match="Invalid email or password."):
        login_user(db, email, password)


def test_inactive_user_cannot_log_in(db, editor) -> None:
    editor.is_active = False
    db.commit()
    with pytest.raises(AuthenticationError):
        login_user(db, "editor@example.com", PASSWORD)


def test_logout_revokes_refresh_token(db, editor) -> None:
    from webforge.core.security import decode_token

    _, tokens = login_user(db, "editor@example.com", PASSWORD)
    logout(decode_token(tokens["access_token"]), refresh_token=tokens["refresh_token"])

    assert decode_token(tokens["access_token"]) is None
    with pytest.raises(AuthenticationError):
        refresh_access_token(db, tokens["refresh_token"])


def test_password_reset_flow(db, editor) -> None:
    request_password_reset(db, "nobody@example.com")
    request_password_reset(db, "editor@example.com")
    token = editor.password_reset_token
    assert token

    with pytest.raises(BadRequestError):
        reset_password(db, "not-the-token", "N3wPassword")

    reset_password(db, token, "N3wPassword")
    user, _ = login_user(db, "editor@example.com", "N3wPassword")
    assert user.password_reset_token is None

    with pytest.raises(BadRequestError):
        reset_password(db, token, "An0therOne")


def test_expired_reset_token_is_rejected(db, editor) -> None:
    request_password_reset(db, "editor@example.com")
    editor.password_reset_expires = datetime.utcnow() - timedelta(minutes=1)
    db.commit()
    with pytest.raises(BadRequestError):
        reset_password(db, editor.password_reset_token, "N3wPassword")


def test_verify_email(db, editor) -> None:
    token = editor.email_verification_token
    verify_email(db, token)
    assert editor.is_verified
    with pytest.raises(BadRequestError):
        verify_email(db, token)


# Cache

def test_local_cache_drops_expired_entries_on_write(monkeypatch) -> None:
    cache = Cache(enabled=False)
    clock = [1000.0]
    monkeypatch.setattr("webforge.core.cache.time", SimpleNamespace(time=lambda: clock[0]))

    cache.set("revoked:old", True, ttl=60)
    cache.set("keep", "forever", ttl=0)
    clock[0] += 120
    cache.set("revoked:new", True, ttl=60)

    assert sorted(cache._local) == ["webforge:keep", "webforge:revoked:new"]
    assert cache.get("keep") == "forever"


# Sites

def test_update_structure_snapshots_previous_state(db, site, editor, hero_tree) -> None:
    update_structure(db, site, {"type": "div"}, editor)
    db.commit()

    assert site.version == 2
    assert site.structure == {"type": "div"}
    assert len(site.versions) == 1
    assert site.versions[0].version_number == 1
    assert site.versions[0].structure == hero_tree


def test_restore_version_is_itself_versioned(db, site, editor, hero_tree) -> None:
    update_structure(db, site, {"type": "div"}, editor)
    db.commit()
    original = site.versions[0]

    restore_version(db, site, original, editor)

    assert site.structure == hero_tree
    assert site.version == 3
    db.expire(site, ["versions"])
    assert [v.structure for v in site.versions] == [{"type": "div"}, hero_tree]


def test_clone_site_copies_pages_without_hosting(db, site, home_page, other_editor) -> None:
    site.custom_domain = "portfolio.example.com"
    site.publish()
    db.commit()

    clone = clone_site(db, site, other_editor)

    assert clone.owner_id == other_editor.id
    assert clone.name == "Portfolio (copy)"
    assert clone.subdomain is None
    assert clone.custom_domain is None
    assert not clone.is_published
    assert clone.structure == site.structure
    assert [p.path for p in clone.pages] == ["/"]
    assert clone.pages[0].id != home_page.id
    assert clone.pages[0].status == "draft"


def test_apply_template_replaces_structure(db, site, editor) -> None:
    template = Template(name="Landing", content_structure={"type": "main"}, visibility="public")
    db.add(template)
    db.commit()

    apply_template(db, site, template, editor)

    assert site.structure == {"type": "main"}
    assert site.template_id == template.id
    assert template.usage_count == 1
    assert site.version == 2


# Components

SCHEMA = {
    "properties": {
        "size": {"type": "string", "enum": ["sm", "lg"]},
        "count": {"type": "integer", "minimum": 0, "maximum": 10},
        "link": {"type": "object", "properties": {"href": {"type": "string"}}, "required": ["href"]},
    },
    "required": ["size"],
}


def test_validate_properties_merges_defaults() -> None:
    merged, errors = validate_properties(SCHEMA, {"size": "sm", "count": 1}, {"count": 3})
    assert errors == []
    assert merged == {"size": "sm", "count": 3}


def test_validate_properties_reports_every_problem() -> None:
    _, errors = validate_properties(SCHEMA, {}, {"count": 11, "link": {}, "extra": True})
    assert errors == [
        "size: is required",
        "count: must be <= 10",
        "link.href: is required",
    ]

    _, errors = validate_properties(SCHEMA, {}, {"size": "xl", "count": True})
    assert errors == ["size: must be one of ['sm', 'lg']", "count: expected integer"]


def test_validate_properties_shorthand_schema() -> None:
    schema = {"title": {"type": "string", "required": True}, "level": {"type": "number"}}
    _, errors = validate_properties(schema, {}, {"level": "high"})
    assert errors == ["title: is required", "level: expected number"]


def test_component_tag_map(db) -> None:
    db.add(Component(name="Hero", type="organism", render_info={"tag_name": "section"}, is_custom=False))
    db.add(Component(name="Card", type="molecule", render_info={}))
    db.commit()
    assert component_tag_map(db) == {"Hero": "section", "Card": "div"}


# Analytics

def _track(db, site_id, **fields):
    return analytics.record_event(db, TrackEvent(site_id=site_id, **fields))


def test_record_event_requires_published_site(db, site) -> None:
    with pytest.raises(SiteNotFoundError):
        _track(db, site.id, event_type="pageview", path="/")

    site.publish()
    db.commit()
    event = _track(db, site.id, event_type="pageview", path="/")
    assert event.id

    with pytest.raises(BadRequestError):
        _track(db, site.id, event_type="scroll")


def test_resolve_range() -> None:
    start, end = analytics.resolve_range()
    assert (end - start).days == analytics.DEFAULT_RANGE_DAYS - 1
    assert analytics.resolve_range(date(2024, 1, 1), date(2024, 1, 2)) == (date(2024, 1, 1), date(2024, 1, 2))
    with pytest.raises(BadRequestError):
        analytics.resolve_range(date(2024, 1, 2), date(2024, 1, 1))

    year = analytics.resolve_range(date(2024, 1, 1), date(2024, 12, 31))
    assert (year[1] - year[0]).days == analytics.MAX_RANGE_DAYS - 1
    with pytest.raises(BadRequestError):
        analytics.resolve_range(date(2024, 1, 1), date(2025, 1, 1))


def test_reports(db, site) -> None:
    day = datetime(2024, 3, 1, 12, 0)
    rows = [
        ("pageview", "/", "https://www.google.com/search", "desktop", "v1", day),
        ("pageview", "/", None, "mobile", "v2", day),
        ("pageview", "/about", "https://news.ycombinator.com/", "desktop", "v1", day + timedelta(days=1)),
        ("click", "/", None, "desktop", "v1", day),
    ]
    for event_type, path, referrer, device, visitor, occurred_at in rows:
        db.add(AnalyticsEvent(
            site_id=site.id, event_type=event_type, path=path, referrer=referrer,
            device=device, visitor_id=visitor, occurred_at=occurred_at,
        ))
    db.commit()
    start, end = date(2024, 3, 1), date(2024, 3, 3)

    assert analytics.overview(db, site.id, start, end) == {
        "start": start, "end": end, "pageviews": 3, "unique_visitors": 2, "events": 4,
    }
    assert analytics.visitors_per_day(db, site.id, start, end) == [
        {"day": date(2024, 3, 1), "visitors": 2, "pageviews": 2},
        {"day": date(2024, 3, 2), "visitors": 1, "pageviews": 1},
        {"day": date(2024, 3, 3), "visitors": 0, "pageviews": 0},
    ]
    assert analytics.top_pages(db, site.id, start, end) == [{"key": "/", "count": 2}, {"key": "/about", "count": 1}]
    assert analytics.devices(db, site.id, start, end) == [{"key": "desktop", "count": 3}, {"key": "mobile", "count": 1}]
    assert analytics.sources(db, site.id, start, end) == [
        {"key": "direct", "count": 1},
        {"key": "google.com", "count": 1},
        {"key": "news.ycombinator.com", "count": 1},
    ]

    csv_text = analytics.export_csv(db, site.id, start, end)
    lines = csv_text.strip().splitlines()
    assert lines[0] == ",".join(analytics.EXPORT_COLUMNS)
    assert len(lines) == 5

    assert analytics.delete_site_data(db, site.id) == 4


def test_referrer_source() -> None:
    assert analytics.referrer_source(None) == "direct"
    assert analytics.referrer_source("not a url") == "direct"
    assert analytics.referrer_source("https://www.example.com/a") == "example.com"
