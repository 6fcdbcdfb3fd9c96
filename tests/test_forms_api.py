"""
Authoring API tests: /api/forms
"""
from sqlalchemy import text

from tests.conftest import USER_ID, create_form, field, published_form


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["x-request-id"]


async def test_health_db(client):
    resp = await client.get("/health/db")
    assert resp.json() == {"status": "ok", "db": True}


async def test_request_id_is_echoed(client):
    resp = await client.get("/health", headers={"x-request-id": "abc123"})
    assert resp.headers["x-request-id"] == "abc123"


async def test_field_types_palette(client):
    resp = await client.get("/api/forms/field-types")
    assert resp.status_code == 200
    types = resp.json()["fieldTypes"]
    assert len(types) == 15
    assert {"type": "SeparatorField", "label": "Separator field", "isInput": False, "extraAttributes": {}} in types


async def test_create_form_starts_empty_and_unpublished(client):
    form = await create_form(client, "Customer survey", theme="modern")
    assert form["name"] == "Customer survey"
    assert form["theme"] == "modern"
    assert form["content"] == []
    assert form["published"] is False
    assert form["visits"] == 0 and form["submissions"] == 0
    assert form["shareUrl"]


async def test_duplicate_names_get_a_suffix(client):
    first = await create_form(client, "Survey")
    second = await create_form(client, "Survey")
    third = await create_form(client, "Survey")
    assert [first["name"], second["name"], third["name"]] == ["Survey", "Survey (1)", "Survey (2)"]


async def test_same_name_for_different_users(client):
    await create_form(client, "Survey")
    resp = await client.post("/api/forms", params={"user_id": "user-2"}, json={"name": "Survey"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Survey"


async def test_create_form_rejects_bad_payloads(client):
    resp = await client.post("/api/forms", params={"user_id": USER_ID}, json={"name": "abc"})
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Invalid request."}
    resp = await client.post("/api/forms", params={"user_id": USER_ID}, json={"name": "Survey", "theme": "neon"})
    assert resp.status_code == 422


async def test_list_forms_omits_content(client):
    await create_form(client, "First form")
    await create_form(client, "Second form")
    resp = await client.get("/api/forms", params={"user_id": USER_ID})
    forms = resp.json()["forms"]
    assert {f["name"] for f in forms} == {"First form", "Second form"}
    assert all("content" not in f for f in forms)


async def test_forms_are_scoped_to_their_owner(client):
    form = await create_form(client)
    resp = await client.get(f"/api/forms/{form['id']}", params={"user_id": "someone-else"})
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Form not found"}


async def test_update_content_validates_attributes(client):
    form = await create_form(client)
    content = [field("TitleField", "t", title="Hello"), field("TextField", "name", required=True)]
    resp = await client.put(f"/api/forms/{form['id']}/content", params={"user_id": USER_ID},
                            json={"content": content, "theme": "elegant"})
    assert resp.status_code == 200
    body = resp.json()
    assert [f["id"] for f in body["content"]] == ["t", "name"]
    assert body["theme"] == "elegant"

    bad = [field("RatingScaleField", "r", minValue=9, maxValue=3)]
    resp = await client.put(f"/api/forms/{form['id']}/content", params={"user_id": USER_ID}, json={"content": bad})
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["errors"][0]["id"] == "r"


async def test_update_content_rejects_unknown_types_and_duplicates(client):
    form = await create_form(client)
    url = f"/api/forms/{form['id']}/content"
    resp = await client.put(url, params={"user_id": USER_ID},
                            json={"content": [{"id": "v", "type": "VideoField", "extraAttributes": {}}]})
    assert resp.status_code == 422
    resp = await client.put(url, params={"user_id": USER_ID},
                            json={"content": [field("TextField", "a"), field("DateField", "a")]})
    assert resp.status_code == 422
    assert "Duplicate" in resp.json()["detail"]["message"]


async def test_published_forms_are_frozen(client):
    form = await published_form(client, [field("TextField", "name")])
    assert form["published"] is True
    resp = await client.put(f"/api/forms/{form['id']}/content", params={"user_id": USER_ID},
                            json={"content": [field("TextField", "other")]})
    assert resp.status_code == 409
    resp = await client.get(f"/api/forms/{form['id']}", params={"user_id": USER_ID})
    assert [f["id"] for f in resp.json()["content"]] == ["name"]


async def test_publish_is_idempotent(client):
    form = await published_form(client, [field("TextField", "name")])
    resp = await client.post(f"/api/forms/{form['id']}/publish", params={"user_id": USER_ID})
    assert resp.status_code == 200
    assert resp.json()["published"] is True


async def test_publish_rejects_invalid_stored_content(client, session_maker):
    form = await create_form(client)
    async with session_maker() as session:
        await session.execute(
            text("UPDATE forms SET content = :content WHERE id = :id"),
            {"content": '[{"id": "s", "type": "SpacerField", "extraAttributes": {"height": 1}}]', "id": form["id"]},
        )
        await session.commit()
    resp = await client.post(f"/api/forms/{form['id']}/publish", params={"user_id": USER_ID})
    assert resp.status_code == 422
    resp = await client.get(f"/api/forms/{form['id']}", params={"user_id": USER_ID})
    assert resp.json()["published"] is False


async def test_embed_code_requires_publishing(client):
    form = await create_form(client)
    resp = await client.get(f"/api/forms/{form['id']}/embed-code", params={"user_id": USER_ID})
    assert resp.status_code == 409

    await client.post(f"/api/forms/{form['id']}/publish", params={"user_id": USER_ID})
    resp = await client.get(f"/api/forms/{form['id']}/embed-code", params={"user_id": USER_ID})
    assert resp.status_code == 200
    body = resp.json()
    assert body["scriptUrl"] == f"http://testserver/api/embed/{form['id']}/js"
    assert body["embedCode"].startswith(f'<div id="quick-form-{form["id"]}"></div>')


async def test_embed_code_uses_public_base_url(client, monkeypatch):
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://forms.example.com/")
    form = await published_form(client, [field("TextField", "name")])
    resp = await client.get(f"/api/forms/{form['id']}/embed-code", params={"user_id": USER_ID})
    assert resp.json()["scriptUrl"] == f"https://forms.example.com/api/embed/{form['id']}/js"


async def test_preview_renders_read_only_fields(client):
    form = await create_form(client)
    await client.put(f"/api/forms/{form['id']}/content", params={"user_id": USER_ID},
                     json={"content": [field("TextField", "name", label="Full name")]})
    resp = await client.get(f"/api/forms/{form['id']}/preview", params={"user_id": USER_ID})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Full name" in resp.text
    assert "disabled" in resp.text


async def test_delete_form(client):
    form = await create_form(client)
    resp = await client.delete(f"/api/forms/{form['id']}", params={"user_id": USER_ID})
    assert resp.json() == {"success": True}
    resp = await client.get(f"/api/forms/{form['id']}", params={"user_id": USER_ID})
    assert resp.status_code == 404
    resp = await client.delete(f"/api/forms/{form['id']}", params={"user_id": USER_ID})
    assert resp.status_code == 404


async def test_stats_without_visits(client):
    await create_form(client)
    resp = await client.get("/api/forms/stats", params={"user_id": USER_ID})
    assert resp.json() == {"visits": 0, "submissions": 0, "submissionRate": 0, "bounceRate": 100}
