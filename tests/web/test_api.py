"""HTTP API tests over the in-process document store."""

import pytest
from fastapi.testclient import TestClient

from protracker.app import App
from protracker.web.server import create_fastapi_app

CODE = "team-a"
HEADERS = {"X-Access-Code": CODE}


@pytest.fixture
def app(config):
    return App(config)


@pytest.fixture
def client(app, config):
    fastapi_app = create_fastapi_app(app, config)
    with TestClient(fastapi_app) as test_client:
        yield test_client


@pytest.fixture
def opened(client):
    response = client.post("/api/v1/workspace/open", json={"access_code": CODE})
    assert response.status_code == 200
    return client


@pytest.fixture
def project(opened):
    response = opened.post("/api/v1/projects", json={"name": "Office laptops", "budget": 250000}, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


class TestWorkspace:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_open_creates_then_reopens(self, client):
        first = client.post("/api/v1/workspace/open", json={"access_code": CODE}).json()
        second = client.post("/api/v1/workspace/open", json={"access_code": CODE}).json()
        assert first["created"] is True
        assert second["created"] is False
        assert first["workspace"]["projects"] == []

    def test_invalid_code(self, client):
        response = client.post("/api/v1/workspace/open", json={"access_code": "a/b"})
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_access_code_required(self, client):
        response = client.get("/api/v1/dashboard")
        assert response.status_code == 401
        assert response.json()["type"] == "access_code_missing"

    def test_session_remembers_code(self, opened):
        """After opening, requests without the header use the session cookie."""
        assert opened.get("/api/v1/dashboard").status_code == 200

        assert opened.delete("/api/v1/workspace/session").status_code == 204
        assert opened.get("/api/v1/dashboard").status_code == 401

    def test_leaving_keeps_shared_session(self, app, opened):
        """Other clients of the code keep their live session when one client leaves."""
        assert opened.get("/api/v1/dashboard", headers=HEADERS).status_code == 200
        assert opened.delete("/api/v1/workspace/session").status_code == 204
        assert app._core.services.sync.has_session(CODE)
        assert opened.get("/api/v1/dashboard", headers=HEADERS).status_code == 200

    def test_unknown_workspace(self, client):
        response = client.get("/api/v1/projects", headers={"X-Access-Code": "never-opened"})
        assert response.status_code == 404


class TestProjects:
    def test_create_uses_default_template(self, project):
        assert len(project["steps"]) == 7
        assert project["currentStepIndex"] == 0
        assert project["revision"] == 0
        assert project["status"] == "active"

    def test_get_list_and_dashboard(self, opened, project):
        assert opened.get(f"/api/v1/projects/{project['id']}", headers=HEADERS).json()["name"] == "Office laptops"

        listed = opened.get("/api/v1/projects", params={"q": "LAPTOP"}, headers=HEADERS).json()
        assert [s["project"]["id"] for s in listed] == [project["id"]]
        assert listed[0]["progressPercent"] == 0

        assert opened.get("/api/v1/projects", params={"status": "completed"}, headers=HEADERS).json() == []

        stats = opened.get("/api/v1/dashboard", headers=HEADERS).json()
        assert stats["total"] == 1
        assert stats["inProgress"] == 1

    def test_empty_name_rejected(self, opened):
        response = opened.post("/api/v1/projects", json={"name": "  "}, headers=HEADERS)
        assert response.status_code == 400

    def test_update_details(self, opened, project):
        response = opened.put(
            f"/api/v1/projects/{project['id']}",
            json={"name": "Desktops", "priority": "urgent", "deadline": "2030-01-31"},
            headers=HEADERS,
            params={"revision": 0},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["name"] == "Desktops"
        assert body["priority"] == "urgent"
        assert body["deadline"] == "2030-01-31"
        assert body["revision"] == 1

    def test_delete(self, opened, project):
        assert opened.delete(f"/api/v1/projects/{project['id']}", headers=HEADERS).status_code == 204
        assert opened.get(f"/api/v1/projects/{project['id']}", headers=HEADERS).status_code == 404

    def test_import_legacy(self, opened):
        legacy = {
            "id": 1700000000000,
            "name": "Printer paper",
            "steps": [{"id": 1, "title": "Survey", "completed": True, "notes": "called vendors"}],
        }
        response = opened.post("/api/v1/projects/import", json={"projects": [legacy]}, headers=HEADERS)
        assert response.status_code == 201
        imported = response.json()[0]
        assert imported["id"] == "1700000000000"
        assert imported["status"] == "completed"
        assert imported["steps"][0]["timeline"][0]["text"] == "called vendors"


class TestSteps:
    def test_complete_and_revert(self, opened, project):
        url = f"/api/v1/projects/{project['id']}/steps"
        body = opened.post(f"{url}/0/complete", json={"document_number": "PO-1"}, headers=HEADERS).json()
        assert body["currentStepIndex"] == 1
        assert body["steps"][0]["documentNumber"] == "PO-1"

        body = opened.post(f"{url}/0/revert", headers=HEADERS).json()
        assert body["currentStepIndex"] == 0
        assert body["revision"] == 2

    def test_stale_revision_conflict(self, opened, project):
        url = f"/api/v1/projects/{project['id']}/steps"
        assert opened.post(f"{url}/0/complete", json={}, headers=HEADERS, params={"revision": 0}).status_code == 200

        response = opened.post(f"{url}/1/complete", json={}, headers=HEADERS, params={"revision": 0})
        assert response.status_code == 409
        assert response.json()["type"] == "stale_overwrite"

    def test_step_out_of_range(self, opened, project):
        response = opened.post(f"/api/v1/projects/{project['id']}/steps/99/complete", json={}, headers=HEADERS)
        assert response.status_code == 400


class TestChecklistAndNotes:
    def test_checklist_item_flow(self, opened, project):
        url = f"/api/v1/projects/{project['id']}/steps/0/checklist"
        body = opened.post(url, json={"text": "Extra quote"}, headers=HEADERS).json()
        index = len(body["steps"][0]["checklist"]) - 1

        body = opened.patch(f"{url}/{index}", json={"checked": True}, headers=HEADERS).json()
        item = body["steps"][0]["checklist"][index]
        assert item["checked"] is True
        assert item["completedAt"] is not None

        body = opened.patch(f"{url}/{index}", json={"checked": False}, headers=HEADERS).json()
        assert body["steps"][0]["checklist"][index]["completedAt"] is None

        body = opened.post(f"{url}/{index}/subnotes", json={"text": "vendor late"}, headers=HEADERS).json()
        assert body["steps"][0]["checklist"][index]["subnotes"][0]["text"] == "vendor late"

        body = opened.delete(f"{url}/{index}", headers=HEADERS).json()
        assert len(body["steps"][0]["checklist"]) == index

    def test_notes_flow(self, opened, project):
        url = f"/api/v1/projects/{project['id']}/steps/0/notes"
        body = opened.post(f"{url}/postit", json={"text": "call finance"}, headers=HEADERS).json()
        note_id = body["steps"][0]["postits"][0]["id"]

        body = opened.patch(f"{url}/postit/{note_id}", json={"text": "called finance"}, headers=HEADERS).json()
        assert body["steps"][0]["postits"][0]["text"] == "called finance"

        assert opened.delete(f"{url}/timeline/{note_id}", headers=HEADERS).status_code == 404
        body = opened.delete(f"{url}/postit/{note_id}", headers=HEADERS).json()
        assert body["steps"][0]["postits"] == []

    def test_project_timeline_newest_first(self, opened, project):
        url = f"/api/v1/projects/{project['id']}"
        for text, timestamp in [("quote", "2024-01-10T09:00:00Z"), ("order", "2024-02-01T09:00:00Z")]:
            opened.post(f"{url}/steps/0/notes/timeline", json={"text": text, "timestamp": timestamp}, headers=HEADERS)

        timeline = opened.get(url, headers=HEADERS).json()["steps"][0]["timeline"]
        assert [note["text"] for note in timeline] == ["order", "quote"]


class TestSettings:
    def test_save_template_propagates(self, opened, project):
        template = opened.get("/api/v1/settings/template", headers=HEADERS).json()
        template[0]["title"] = "Needs survey"

        response = opened.put("/api/v1/settings/template", json={"steps": template}, headers=HEADERS)
        result = response.json()
        assert response.status_code == 200
        assert [p["id"] for p in result["projects"]] == [project["id"]]

        stored = opened.get(f"/api/v1/projects/{project['id']}", headers=HEADERS).json()
        assert stored["steps"][0]["title"] == "Needs survey"

    def test_reset_without_propagation(self, opened, project):
        response = opened.post("/api/v1/settings/template/reset", params={"propagate": False}, headers=HEADERS)
        assert response.json()["projects"] == []

    def test_invalid_template(self, opened):
        response = opened.put("/api/v1/settings/template", json={"steps": []}, headers=HEADERS)
        assert response.status_code == 400

    def test_apply_template_to_project(self, opened, project):
        opened.put(
            "/api/v1/settings/template",
            json={"steps": [{"id": 1, "title": "Only step"}]},
            headers=HEADERS,
            params={"propagate": False},
        )
        body = opened.post(f"/api/v1/projects/{project['id']}/apply-template", headers=HEADERS).json()
        assert [s["title"] for s in body["steps"]] == ["Only step"]
