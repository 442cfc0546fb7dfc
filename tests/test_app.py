import json
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from config import Settings
from main import create_app

ADMIN = {"x-admin-key": "S"}


class ApiTestCase(unittest.TestCase):
    admin_key = "S"

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.dir = Path(tmp.name)
        self.db_file = self.dir / "db.json"
        self.settings = Settings(
            _env_file=None,
            admin_key=self.admin_key,
            db_file=str(self.db_file),
            static_dir=str(self.dir / "public"),
        )
        self.client = TestClient(create_app(self.settings))
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def create_project(self, **body):
        response = self.client.post("/api/projects", json=body, headers=ADMIN)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class ProjectApiTests(ApiTestCase):
    def test_startup_creates_document(self):
        self.assertEqual(json.loads(self.db_file.read_text()), {"projects": [], "contacts": []})
        response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_create_requires_admin_key(self):
        response = self.client.post("/api/projects", json={"title": "A"})
        self.assertEqual(response.status_code, 403)
        self.assertIn("error", response.json())

        response = self.client.post("/api/projects", json={"title": "A"}, headers={"x-admin-key": "wrong"})
        self.assertEqual(response.status_code, 403)

        self.assertEqual(self.client.get("/api/projects").json(), [])

    def test_create_and_fetch(self):
        created = self.create_project(title="Portfolio", tags=["fastapi", "json"])
        self.assertEqual(created["title"], "Portfolio")
        self.assertEqual(created["description"], "")
        self.assertEqual(created["url"], "")
        self.assertEqual(created["tags"], ["fastapi", "json"])
        self.assertTrue(created["id"])

        fetched = self.client.get(f"/api/projects/{created['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json(), created)

        listed = self.client.get("/api/projects").json()
        self.assertEqual(listed, [created])

    def test_admin_key_in_query_string(self):
        response = self.client.post("/api/projects", params={"adminKey": "S"}, json={"title": "Q"})
        self.assertEqual(response.status_code, 201)

    def test_create_without_title(self):
        response = self.client.post("/api/projects", json={"description": "no title"}, headers=ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Title required"})
        self.assertEqual(self.client.get("/api/projects").json(), [])

    def test_malformed_body(self):
        response = self.client.post("/api/projects", json={"title": "A", "tags": "not-a-list"}, headers=ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertIn("tags", response.json()["error"])

    def test_get_missing_project(self):
        response = self.client.get("/api/projects/missing")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})

    def test_update_merges_fields(self):
        created = self.create_project(title="A", description="old", url="https://a.dev", tags=["x"])
        response = self.client.put(
            f"/api/projects/{created['id']}",
            json={"description": "new", "id": "other"},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), dict(created, description="new"))
        self.assertEqual(self.client.get(f"/api/projects/{created['id']}").json()["description"], "new")

    def test_update_errors(self):
        created = self.create_project(title="A")
        response = self.client.put(f"/api/projects/{created['id']}", json={"title": "B"})
        self.assertEqual(response.status_code, 403)
        response = self.client.put("/api/projects/missing", json={"title": "B"}, headers=ADMIN)
        self.assertEqual(response.status_code, 404)

    def test_update_without_body(self):
        created = self.create_project(title="A", description="keep")
        response = self.client.put(f"/api/projects/{created['id']}", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), created)

        response = self.client.put("/api/projects/missing", headers=ADMIN)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})

    def test_delete_is_idempotent(self):
        created = self.create_project(title="A")
        for _ in range(2):
            response = self.client.delete(f"/api/projects/{created['id']}", headers=ADMIN)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/projects").json(), [])

    def test_delete_requires_admin(self):
        created = self.create_project(title="A")
        response = self.client.delete(f"/api/projects/{created['id']}")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(len(self.client.get("/api/projects").json()), 1)

    def test_storage_failure_is_server_error(self):
        self.db_file.write_text("{corrupt")
        response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Storage unavailable"})

    def test_malformed_stored_record_is_server_error(self):
        self.db_file.write_text(json.dumps({"projects": [{"id": "x"}], "contacts": []}))
        response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Storage unavailable"})

    def test_unknown_api_path_is_404_for_any_method(self):
        for method in ("GET", "POST", "PUT", "PATCH", "DELETE"):
            response = self.client.request(method, "/api/unknown")
            self.assertEqual(response.status_code, 404, method)
            self.assertEqual(response.json(), {"error": "Not found"})

    def test_framework_errors_use_error_body(self):
        response = self.client.post("/about")
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json(), {"error": "Method Not Allowed"})

    def test_health(self):
        payload = self.client.get("/api/health").json()
        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["storage"], "ok")
        self.assertEqual(payload["backend"], "file")
        self.assertEqual(payload["adminPolicy"], "key_required")
        self.assertEqual(payload["notifications"], "disabled")

        self.db_file.write_text("{corrupt")
        payload = self.client.get("/api/health").json()
        self.assertEqual(payload["status"], "degraded")
        self.assertEqual(payload["storage"], "unavailable")


class ContactApiTests(ApiTestCase):
    def test_submit_contact(self):
        response = self.client.post("/api/contact", json={"name": "A", "email": "", "message": "hi"})
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        entry = payload["entry"]
        self.assertEqual(entry["name"], "A")
        self.assertEqual(entry["email"], "")
        self.assertEqual(entry["message"], "hi")
        self.assertTrue(entry["createdAt"])
        self.assertTrue(entry["id"])

        stored = json.loads(self.db_file.read_text())["contacts"]
        self.assertEqual(stored, [entry])

    def test_contact_validation(self):
        for body in (
            {"name": "", "email": "", "message": "hi"},
            {"message": "hi"},
            {"name": "A"},
            {"name": "A", "message": ""},
        ):
            response = self.client.post("/api/contact", json=body)
            self.assertEqual(response.status_code, 400, body)
            self.assertIn("error", response.json())

    def test_list_contacts_requires_admin(self):
        self.client.post("/api/contact", json={"email": "a@example.com", "message": "hi"})
        self.assertEqual(self.client.get("/api/contacts").status_code, 403)
        self.assertEqual(self.client.get("/api/contacts", params={"adminKey": "nope"}).status_code, 403)

        response = self.client.get("/api/contacts", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        contacts = response.json()
        self.assertEqual(len(contacts), 1)
        self.assertEqual(contacts[0]["email"], "a@example.com")
        self.assertIn("createdAt", contacts[0])


class OpenPolicyTests(ApiTestCase):
    admin_key = None

    def test_admin_endpoints_open_without_secret(self):
        response = self.client.post("/api/projects", json={"title": "Dev"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.client.get("/api/contacts").status_code, 200)
        self.assertEqual(self.client.get("/api/health").json()["adminPolicy"], "open")


class StaticSiteTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        public = self.dir / "public"
        public.mkdir()
        (public / "index.html").write_text("<h1>portfolio</h1>")
        (public / "script.js").write_text("console.log('hi')")

    def test_serves_files_and_spa_fallback(self):
        self.assertIn("portfolio", self.client.get("/").text)
        self.assertIn("console.log", self.client.get("/script.js").text)
        self.assertIn("portfolio", self.client.get("/projects/some-slug").text)

    def test_unknown_api_path_is_json_404(self):
        response = self.client.get("/api/unknown")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})


if __name__ == "__main__":
    unittest.main()
