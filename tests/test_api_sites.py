from __future__ import annotations

from datetime import datetime, timedelta

from webforge.models.page import Page

SITES = "/api/v1/sites"


def test_create_and_list_sites(client, editor_headers) -> None:
    response = client.post(SITES, headers=editor_headers, json={
        "name": "Bakery",
        "subdomain": "bakery",
        "structure": {"type": "main"},
    })
    assert response.status_code == 201
    site = response.json()
    assert site["version"] == 1
    assert site["is_published"] is False
    assert site["structure"] == {"type": "main"}

    listing = client.get(SITES, headers=editor_headers).json()
    assert listing["total"] == 1
    assert listing["sites"][0]["id"] == site["id"]


def test_subdomain_must_be_unique(client, site, editor_headers) -> None:
    response = client.post(SITES, headers=editor_headers, json={"name": "Dup", "subdomain": "portfolio"})
    assert response.status_code == 409


def test_viewer_cannot_create_sites(client, viewer) -> None:
    from webforge.services.auth import issue_tokens

    headers = {"Authorization": f"Bearer {issue_tokens(viewer)['access_token']}"}
    response = client.post(SITES, headers=headers, json={"name": "Nope"})
    assert response.status_code == 403
    assert response.json()["type"] == "authorization_error"


def test_other_users_sites_look_missing(client, site, other_editor) -> None:
    from webforge.services.auth import issue_tokens

    headers = {"Authorization": f"Bearer {issue_tokens(other_editor)['access_token']}"}
    response = client.get(f"{SITES}/{site.id}", headers=headers)
    assert response.status_code == 404
    assert response.json()["type"] == "not_found"
    assert client.get(SITES, headers=headers).json()["total"] == 0


def test_admin_sees_every_site(client, site, admin_headers) -> None:
    assert client.get(f"{SITES}/{site.id}", headers=admin_headers).status_code == 200
    assert client.get(SITES, headers=admin_headers).json()["total"] == 1


def test_structure_update_creates_version(client, site, editor_headers, hero_tree) -> None:
    response = client.patch(f"{SITES}/{site.id}", headers=editor_headers, json={
        "name": "Portfolio 2",
        "structure": {"type": "div", "children": ["new"]},
    })
    assert response.status_code == 200
    assert response.json()["version"] == 2
    assert response.json()["name"] == "Portfolio 2"

    versions = client.get(f"{SITES}/{site.id}/versions", headers=editor_headers).json()
    assert len(versions) == 1
    assert versions[0]["version_number"] == 1

    detail = client.get(f"{SITES}/{site.id}/versions/{versions[0]['id']}", headers=editor_headers).json()
    assert detail["structure"] == hero_tree

    restored = client.post(f"{SITES}/{site.id}/versions/{versions[0]['id']}/restore", headers=editor_headers)
    assert restored.status_code == 200
    assert restored.json()["structure"] == hero_tree
    assert restored.json()["version"] == 3


def test_soft_delete_restore_and_permanent_delete(client, site, editor_headers, admin_headers) -> None:
    assert client.delete(f"{SITES}/{site.id}", headers=editor_headers).status_code == 204
    assert client.get(f"{SITES}/{site.id}", headers=editor_headers).status_code == 404

    trash = client.get(SITES, headers=editor_headers, params={"trash": True}).json()
    assert [s["id"] for s in trash["sites"]] == [site.id]

    restored = client.post(f"{SITES}/{site.id}/restore", headers=editor_headers)
    assert restored.status_code == 200
    assert restored.json()["is_deleted"] is False

    assert client.delete(f"{SITES}/{site.id}", headers=editor_headers, params={"permanent": True}).status_code == 403
    assert client.delete(f"{SITES}/{site.id}", headers=admin_headers, params={"permanent": True}).status_code == 204
    assert client.get(f"{SITES}/{site.id}", headers=admin_headers).status_code == 404


def test_publish_and_clone(client, site, home_page, editor_headers) -> None:
    published = client.post(f"{SITES}/{site.id}/publish", headers=editor_headers).json()
    assert published["is_published"] is True
    assert published["published_at"] is not None

    clone = client.post(f"{SITES}/{site.id}/clone", headers=editor_headers, json={"name": "Copy"})
    assert clone.status_code == 201
    assert clone.json()["name"] == "Copy"
    assert clone.json()["is_published"] is False
    assert clone.json()["subdomain"] is None

    pages = client.get(f"{SITES}/{clone.json()['id']}/pages", headers=editor_headers).json()
    assert [p["path"] for p in pages["pages"]] == ["/"]


def test_edit_history_undo_redo(client, site, editor_headers, hero_tree) -> None:
    base = f"{SITES}/{site.id}/history"

    initial = client.get(base, headers=editor_headers).json()
    assert initial["state"] == hero_tree
    assert initial["can_undo"] is False

    pushed = client.post(base, headers=editor_headers, json={"state": {"type": "div"}, "description": "Swap"})
    assert pushed.status_code == 201
    assert pushed.json()["entries"] == ["Initial state", "Swap"]

    undone = client.post(f"{base}/undo", headers=editor_headers).json()
    assert undone["state"] == hero_tree
    assert undone["can_redo"] is True
    assert client.post(f"{base}/undo", headers=editor_headers).status_code == 409

    redone = client.post(f"{base}/redo", headers=editor_headers).json()
    assert redone["state"] == {"type": "div"}
    assert client.post(f"{base}/redo", headers=editor_headers).status_code == 409

    # Undo/redo never touches the saved site
    assert client.get(f"{SITES}/{site.id}", headers=editor_headers).json()["structure"] == hero_tree

    assert client.delete(base, headers=editor_headers).status_code == 204
    assert client.get(base, headers=editor_headers).json()["entries"] == ["Initial state"]


def test_preview_and_export(client, site, editor_headers) -> None:
    preview = client.get(f"{SITES}/{site.id}/preview", headers=editor_headers)
    assert preview.status_code == 200
    assert preview.headers["content-type"].startswith("text/html")
    assert f'class="preview-{site.id}"' in preview.text

    bundle = client.get(f"{SITES}/{site.id}/export", headers=editor_headers).json()
    assert bundle["css"].startswith(f".site-{site.id} {{")
    assert bundle["html"].startswith(f'<div class="site-{site.id}">')
    assert 'data-wf-id="hero"' in bundle["html"]
    assert "addEventListener" in bundle["js"]


# Pages

def _pages(site) -> str:
    return f"{SITES}/{site.id}/pages"


def test_page_crud(client, site, editor_headers) -> None:
    created = client.post(_pages(site), headers=editor_headers, json={
        "title": "About",
        "path": "/about",
        "content": {"type": "p", "children": ["About"]},
    })
    assert created.status_code == 201
    page = created.json()
    assert page["status"] == "draft"

    duplicate = client.post(_pages(site), headers=editor_headers, json={"title": "Again", "path": "/about"})
    assert duplicate.status_code == 409

    updated = client.patch(f"{_pages(site)}/{page['id']}", headers=editor_headers, json={"status": "published"})
    assert updated.json()["status"] == "published"
    assert updated.json()["published_at"] is not None

    listing = client.get(_pages(site), headers=editor_headers, params={"status": "published"}).json()
    assert listing["total"] == 1

    assert client.delete(f"{_pages(site)}/{page['id']}", headers=editor_headers).status_code == 204
    assert client.get(f"{_pages(site)}/{page['id']}", headers=editor_headers).status_code == 404


def test_deleting_parent_keeps_children(client, site, editor_headers) -> None:
    parent = client.post(_pages(site), headers=editor_headers, json={"title": "Blog", "path": "/blog"}).json()
    child = client.post(_pages(site), headers=editor_headers, json={
        "title": "Post", "path": "/blog/post", "parent_id": parent["id"],
    }).json()
    assert child["parent_id"] == parent["id"]

    client.delete(f"{_pages(site)}/{parent['id']}", headers=editor_headers)
    assert client.get(f"{_pages(site)}/{child['id']}", headers=editor_headers).json()["parent_id"] is None


def test_page_parents_cannot_form_a_cycle(client, site, editor_headers) -> None:
    top = client.post(_pages(site), headers=editor_headers, json={"title": "Docs", "path": "/docs"}).json()
    middle = client.post(_pages(site), headers=editor_headers, json={
        "title": "Guide", "path": "/docs/guide", "parent_id": top["id"],
    }).json()
    leaf = client.post(_pages(site), headers=editor_headers, json={
        "title": "Setup", "path": "/docs/guide/setup", "parent_id": middle["id"],
    }).json()

    own = client.patch(f"{_pages(site)}/{top['id']}", headers=editor_headers, json={"parent_id": top["id"]})
    assert own.status_code == 400

    direct = client.patch(f"{_pages(site)}/{top['id']}", headers=editor_headers, json={"parent_id": middle["id"]})
    assert direct.status_code == 400
    assert direct.json()["detail"] == "A page can't be moved under one of its own children"

    indirect = client.patch(f"{_pages(site)}/{top['id']}", headers=editor_headers, json={"parent_id": leaf["id"]})
    assert indirect.status_code == 400

    moved = client.patch(f"{_pages(site)}/{leaf['id']}", headers=editor_headers, json={"parent_id": top["id"]})
    assert moved.status_code == 200
    assert moved.json()["parent_id"] == top["id"]


def test_page_paths_are_validated(client, site, editor_headers) -> None:
    response = client.post(_pages(site), headers=editor_headers, json={"title": "Bad", "path": "no-slash"})
    assert response.status_code == 422


def test_schedule_and_publish_due(client, db, site, home_page, editor_headers) -> None:
    url = f"{_pages(site)}/{home_page.id}/schedule"
    past = client.post(url, headers=editor_headers, json={"publish_at": "2000-01-01T00:00:00"})
    assert past.status_code == 400

    future = (datetime.utcnow() + timedelta(hours=1)).isoformat()
    scheduled = client.post(url, headers=editor_headers, json={"publish_at": future})
    assert scheduled.status_code == 200
    assert scheduled.json()["scheduled_publish_at"] is not None

    assert client.post(f"{_pages(site)}/publish-due", headers=editor_headers).json() == []

    db.query(Page).filter(Page.id == home_page.id).update(
        {Page.scheduled_publish_at: datetime.utcnow() - timedelta(minutes=1)}
    )
    db.commit()

    due = client.post(f"{_pages(site)}/publish-due", headers=editor_headers).json()
    assert [p["id"] for p in due] == [home_page.id]
    assert due[0]["status"] == "published"
    assert due[0]["scheduled_publish_at"] is None


def test_render_page_endpoints(client, site, home_page, editor_headers) -> None:
    rendered = client.get(f"{_pages(site)}/{home_page.id}/render", headers=editor_headers).json()
    assert rendered["error_code"] is None
    assert "<title>Home | Portfolio</title>" in rendered["head_tags"]
    assert "__INITIAL_STATE__" in rendered["initial_state_script"]

    html = client.get(f"{_pages(site)}/{home_page.id}/render.html", headers=editor_headers)
    assert html.status_code == 200
    assert "Hello &lt;world&gt;" in html.text


def test_broken_page_renders_error_document(client, site, editor_headers) -> None:
    page = client.post(_pages(site), headers=editor_headers, json={
        "title": "Broken", "path": "/broken", "content": {"type": "bad tag"},
    }).json()
    html = client.get(f"{_pages(site)}/{page['id']}/render.html", headers=editor_headers)
    assert html.status_code == 500
    assert "Error 500" in html.text
