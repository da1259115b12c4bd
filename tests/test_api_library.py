from __future__ import annotations

TEMPLATES = "/api/v1/templates"
COMPONENTS = "/api/v1/components"
CODEGEN = "/api/v1/codegen"

LANDING = {"type": "main", "id": "landing", "children": [{"type": "h1", "children": ["Launch"]}]}


def _create_template(client, headers, **fields) -> dict:
    body = {"name": "Landing", "content_structure": LANDING, "categories": ["marketing"], **fields}
    response = client.post(TEMPLATES, headers=headers, json=body)
    assert response.status_code == 201
    return response.json()


# Templates

def test_template_visibility(client, editor_headers, admin_headers) -> None:
    public = _create_template(client, editor_headers, name="Public", visibility="public")
    private = _create_template(client, editor_headers, name="Private")
    shared = _create_template(client, admin_headers, name="Shared", visibility="organization")

    anonymous = client.get(TEMPLATES).json()
    assert [t["id"] for t in anonymous["templates"]] == [public["id"]]
    assert client.get(f"{TEMPLATES}/{private['id']}").status_code == 404

    mine = client.get(TEMPLATES, headers=editor_headers, params={"sort": "newest"}).json()
    assert {t["id"] for t in mine["templates"]} == {public["id"], private["id"], shared["id"]}

    created_by_me = client.get(TEMPLATES, headers=editor_headers, params={"mine": True}).json()
    assert created_by_me["total"] == 2


def test_private_templates_hidden_from_other_editors(client, editor_headers, other_editor) -> None:
    from webforge.services.auth import issue_tokens

    private = _create_template(client, editor_headers)
    headers = {"Authorization": f"Bearer {issue_tokens(other_editor)['access_token']}"}

    assert client.get(f"{TEMPLATES}/{private['id']}", headers=headers).status_code == 404
    update = client.patch(f"{TEMPLATES}/{private['id']}", headers=headers, json={"name": "Mine now"})
    assert update.status_code == 404


def test_template_filters_and_categories(client, editor_headers) -> None:
    _create_template(client, editor_headers, name="Shop", visibility="public", categories=["store"], tags=["cart"])
    _create_template(client, editor_headers, name="Ads", visibility="public")
    _create_template(client, editor_headers, name="Hidden", categories=["secret"])

    by_category = client.get(TEMPLATES, params={"category": "store"}).json()
    assert [t["name"] for t in by_category["templates"]] == ["Shop"]

    by_tag = client.get(TEMPLATES, params={"tag": "cart"}).json()
    assert by_tag["total"] == 1

    assert client.get(f"{TEMPLATES}/categories").json() == ["marketing", "store"]


def test_rate_template(client, editor_headers) -> None:
    template = _create_template(client, editor_headers, visibility="public")
    url = f"{TEMPLATES}/{template['id']}/rate"

    client.post(url, headers=editor_headers, json={"rating": 5})
    rated = client.post(url, headers=editor_headers, json={"rating": 2}).json()
    assert rated["rating_count"] == 2
    assert rated["average_rating"] == 3.5

    assert client.post(url, headers=editor_headers, json={"rating": 6}).status_code == 422


def test_apply_template_to_site(client, site, editor_headers, hero_tree) -> None:
    template = _create_template(client, editor_headers)

    applied = client.post(f"{TEMPLATES}/apply/{template['id']}/to/{site.id}", headers=editor_headers)
    assert applied.status_code == 200
    assert applied.json()["structure"] == LANDING
    assert applied.json()["template_id"] == template["id"]
    assert applied.json()["version"] == 2

    versions = client.get(f"/api/v1/sites/{site.id}/versions", headers=editor_headers).json()
    assert versions[0]["description"] == "Before applying template Landing"

    assert client.get(f"{TEMPLATES}/{template['id']}", headers=editor_headers).json()["usage_count"] == 1


def test_create_site_from_template(client, editor_headers) -> None:
    template = _create_template(client, editor_headers)
    site = client.post("/api/v1/sites", headers=editor_headers, json={
        "name": "From template", "template_id": template["id"],
    }).json()
    assert site["structure"] == LANDING

    missing = client.post("/api/v1/sites", headers=editor_headers, json={"name": "x", "template_id": "nope"})
    assert missing.status_code == 404


def test_only_creator_deletes_template(client, editor_headers, admin_headers) -> None:
    template = _create_template(client, admin_headers, visibility="public")
    assert client.delete(f"{TEMPLATES}/{template['id']}", headers=editor_headers).status_code == 403
    assert client.delete(f"{TEMPLATES}/{template['id']}", headers=admin_headers).status_code == 204


# Components

BUTTON = {
    "name": "Button",
    "type": "atomic",
    "category": "forms",
    "properties_schema": {
        "properties": {"label": {"type": "string"}, "size": {"type": "string", "enum": ["sm", "lg"]}},
        "required": ["label"],
    },
    "default_properties": {"size": "sm"},
    "render_info": {"tag_name": "button"},
}


def test_create_and_list_components(client, editor_headers) -> None:
    created = client.post(COMPONENTS, headers=editor_headers, json=BUTTON)
    assert created.status_code == 201
    assert created.json()["is_custom"] is True
    assert created.json()["render_info"]["tag_name"] == "button"

    assert client.post(COMPONENTS, headers=editor_headers, json=BUTTON).status_code == 409

    listing = client.get(COMPONENTS, headers=editor_headers, params={"category": "forms"}).json()
    assert listing["total"] == 1
    assert client.get(f"{COMPONENTS}/categories", headers=editor_headers).json() == ["forms"]


def test_built_in_components_need_admin(client, editor_headers, admin_headers) -> None:
    body = {**BUTTON, "is_custom": False}
    assert client.post(COMPONENTS, headers=editor_headers, json=body).status_code == 403

    created = client.post(COMPONENTS, headers=admin_headers, json=body)
    assert created.status_code == 201

    url = f"{COMPONENTS}/{created.json()['id']}"
    assert client.patch(url, headers=editor_headers, json={"description": "x"}).status_code == 403
    assert client.patch(url, headers=admin_headers, json={"description": "x"}).json()["description"] == "x"


def test_validate_component_properties(client, editor_headers) -> None:
    component = client.post(COMPONENTS, headers=editor_headers, json=BUTTON).json()
    url = f"{COMPONENTS}/{component['id']}/validate"

    ok = client.post(url, headers=editor_headers, json={"properties": {"label": "Buy"}}).json()
    assert ok == {"valid": True, "errors": [], "properties": {"size": "sm", "label": "Buy"}}

    bad = client.post(url, headers=editor_headers, json={"properties": {"size": "xl"}}).json()
    assert bad["valid"] is False
    assert bad["errors"] == ["label: is required", "size: must be one of ['sm', 'lg']"]


def test_component_names_render_as_their_tag(client, site, editor_headers) -> None:
    client.post(COMPONENTS, headers=editor_headers, json=BUTTON)
    response = client.post(f"{CODEGEN}/html", headers=editor_headers, json={
        "tree": {"type": "Button", "children": ["Go"]},
    })
    assert response.json() == {"code": "<button>Go</button>"}


# Codegen

def test_codegen_requires_auth(client) -> None:
    assert client.post(f"{CODEGEN}/css", json={"styles": {}}).status_code == 401


def test_codegen_css(client, editor_headers) -> None:
    response = client.post(f"{CODEGEN}/css", headers=editor_headers, json={
        "styles": {"color": "red", "marginTop": 8}, "scope": "card", "optimize": True,
    })
    assert response.json() == {"code": ".card{color:red;margin-top:8px}"}

    invalid = client.post(f"{CODEGEN}/css", headers=editor_headers, json={"styles": {"color": "red"}, "scope": "1bad"})
    assert invalid.status_code == 422
    assert invalid.json()["type"] == "codegen_error"


def test_codegen_html_document(client, editor_headers) -> None:
    response = client.post(f"{CODEGEN}/html", headers=editor_headers, json={
        "tree": {"type": "p", "children": ["Body"]}, "document": True, "title": "A & B",
    })
    code = response.json()["code"]
    assert code.startswith("<!DOCTYPE html>")
    assert "<title>A &amp; B</title>" in code


def test_codegen_js_module_formats(client, editor_headers) -> None:
    functionality = {"state": {"open": False}, "methods": {"toggle": "state.open = !state.open;"}}
    esm = client.post(f"{CODEGEN}/js", headers=editor_headers, json={
        "functionality": functionality, "module_format": "esm",
    }).json()["code"]
    assert "function toggle() {" in esm
    assert "export {" in esm

    bad_format = client.post(f"{CODEGEN}/js", headers=editor_headers, json={
        "functionality": functionality, "module_format": "amd",
    })
    assert bad_format.status_code == 422


def test_codegen_parse(client, editor_headers) -> None:
    result = client.post(f"{CODEGEN}/parse", headers=editor_headers, json={"html": "<p>a</p></div>"}).json()
    assert result["errors"] == ["Unexpected closing tag </div> at line 1, column 8"]
    assert result["ast"]["children"][0]["type"] == "p"


def test_codegen_export_and_optimize(client, editor_headers, hero_tree) -> None:
    bundle = client.post(f"{CODEGEN}/export", headers=editor_headers, json={"tree": hero_tree}).json()
    assert bundle["css"].startswith(".generated-styles {")
    assert bundle["html"].startswith('<div class="generated-styles">')
    assert 'data-wf-id="cta"' in bundle["html"]

    optimized = client.post(f"{CODEGEN}/optimize", headers=editor_headers, json={
        "content": "a {\n  color: red;\n}", "kind": "css",
    })
    assert optimized.json() == {"code": "a{color:red}"}
