import json

import pytest

from repurposer.generation.cache_keys import project_cache_prefix


async def _create(client, **overrides) -> dict:
    body = {"title": "Launch", "sourceContent": "We shipped offline mode.", "platforms": ["email"]}
    body.update(overrides)
    resp = await client.post("/api/projects", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.integration
class TestProjectRoutes:
    async def test_create_project(self, client, app_state) -> None:
        data = await _create(client, postsPerPlatformByPlatform={"linkedin": 2}, postTone="witty")

        assert data["title"] == "Launch"
        assert data["platforms"] == ["email"]
        assert data["postsPerPlatformByPlatform"] == {"linkedin": 2}
        assert data["postTone"] == "witty"
        assert app_state.audit_repo.entries[-1].action == "project_create"

    async def test_list_and_get(self, client) -> None:
        created = await _create(client)
        listed = (await client.get("/api/projects")).json()
        assert [p["id"] for p in listed] == [created["id"]]

        resp = await client.get(f"/api/projects/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["sourceContent"] == "We shipped offline mode."

    async def test_project_quota_enforced(self, client) -> None:
        for i in range(10):
            await _create(client, title=f"P{i}")
        resp = await client.post("/api/projects", json={"title": "One too many"})
        assert resp.status_code == 403
        body = resp.json()
        assert body["code"] == "QUOTA_EXCEEDED"
        assert body["details"]["limit"] == 10

    async def test_source_change_invalidates_cache(self, client, app_state) -> None:
        created = await _create(client)
        key = f"{project_cache_prefix(created['id'])}abc"
        await app_state.cache.store(key, "cached post")

        resp = await client.patch(f"/api/projects/{created['id']}", json={"title": "Renamed"})
        assert resp.status_code == 200
        assert await app_state.cache.lookup(key) == "cached post"

        resp = await client.patch(
            f"/api/projects/{created['id']}", json={"sourceContent": "New source"}
        )
        assert resp.status_code == 200
        assert await app_state.cache.lookup(key) is None
        details = json.loads(app_state.audit_repo.entries[-1].details_json)
        assert details == {"fields": ["source_content"]}

    async def test_delete_project(self, client) -> None:
        created = await _create(client)
        resp = await client.delete(f"/api/projects/{created['id']}")
        assert resp.status_code == 204
        assert (await client.get(f"/api/projects/{created['id']}")).status_code == 404
        assert (await client.delete(f"/api/projects/{created['id']}")).status_code == 404

    async def test_list_outputs_of_unknown_project(self, client) -> None:
        resp = await client.get("/api/projects/nope/outputs")
        assert resp.status_code == 404
