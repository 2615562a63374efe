"""
Spreadsheet, label, assistant, admin and system endpoints.
"""

import io
import os

import httpx
from openpyxl import load_workbook

from cladstock.services import assistant_service


def _make(client, headers, **fields):
    response = client.post("/api/items", json=fields, headers=headers)
    assert response.status_code == 201
    return response.get_json()["item"]


class TestSpreadsheets:
    def test_upload_then_commit(self, client, admin_headers):
        upload = client.post(
            "/api/imports/upload",
            data={"file": (io.BytesIO(b"Profile,Qty,Location\nCP-101,12,Rack 1\nCP-102,4,Rack 2\n"), "stock.csv")},
            content_type="multipart/form-data",
            headers=admin_headers,
        )
        assert upload.status_code == 200
        parsed = upload.get_json()
        assert parsed["success"] is True
        assert parsed["imported"] == 2

        # Nothing is saved until the reviewed rows come back
        assert client.get("/api/items", headers=admin_headers).get_json()["items"] == []

        committed = client.post("/api/imports/commit", json={"items": parsed["items"]}, headers=admin_headers)
        assert committed.status_code == 201
        assert committed.get_json() == {"success": True, "imported": 2}

        names = [i["name"] for i in client.get("/api/items", headers=admin_headers).get_json()["items"]]
        assert names == ["CP-101", "CP-102"]

    def test_upload_failures(self, client, admin_headers):
        assert client.post("/api/imports/upload", headers=admin_headers).status_code == 400

        empty = client.post(
            "/api/imports/upload",
            data={"file": (io.BytesIO(b"Name,Qty\n"), "empty.csv")},
            content_type="multipart/form-data",
            headers=admin_headers,
        )
        assert empty.status_code == 400
        assert empty.get_json()["success"] is False

    def test_commit_rejects_bad_rows(self, client, admin_headers):
        response = client.post(
            "/api/imports/commit",
            json={"items": [{"name": "Good"}, {"name": "Bad", "category": "Wood"}]},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Row 2")
        # All-or-nothing
        assert client.get("/api/items", headers=admin_headers).get_json()["items"] == []

    def test_exports(self, client, admin_headers):
        _make(client, admin_headers, name="Meteon", category="Trespa", quantity=8)

        csv_response = client.get("/api/exports/items.csv", headers=admin_headers)
        assert csv_response.mimetype == "text/csv"
        assert "attachment" in csv_response.headers["Content-Disposition"]
        assert csv_response.get_data(as_text=True).splitlines()[1].startswith("Meteon,Trespa,8")

        xlsx_response = client.get("/api/exports/items.xlsx", headers=admin_headers)
        ws = load_workbook(io.BytesIO(xlsx_response.data))["Inventory"]
        assert ws["A2"].value == "Meteon"

    def test_data_files(self, app, client, admin_headers):
        directory = app.config["DATA_DIR"]
        os.makedirs(directory)
        with open(os.path.join(directory, "stock.csv"), "w", encoding="utf-8") as fh:
            fh.write("Name,Qty\nClip,500\n")

        listing = client.get("/api/data-files", headers=admin_headers).get_json()
        assert listing == {"files": ["stock.csv"]}

        parsed = client.post("/api/data-files", json={"filename": "stock.csv"}, headers=admin_headers)
        assert parsed.get_json()["items"][0]["quantity"] == 500

        missing = client.post("/api/data-files", json={"filename": "nope.csv"}, headers=admin_headers)
        assert missing.status_code == 404
        assert client.post("/api/data-files", json={}, headers=admin_headers).status_code == 400

    def test_crew_cannot_import(self, client, crew_headers):
        assert client.get("/api/exports/items.csv", headers=crew_headers).status_code == 403


class TestLabels:
    def test_single_label(self, client, admin_headers):
        item = _make(client, admin_headers, name="Hat channel", category="Extrusions", location="Rack 3")

        body = client.get(f"/api/labels/{item['id']}", headers=admin_headers).get_json()

        assert body["label"]["name"] == "Hat channel"
        assert body["label"]["qr_data_url"].startswith("data:image/png;base64,")
        assert "Rack 3" in body["html"]

    def test_print_page_skips_unknown_ids(self, client, admin_headers):
        a = _make(client, admin_headers, name="Panel A")
        b = _make(client, admin_headers, name="Panel B")

        response = client.post(
            "/api/labels/print", json={"item_ids": [a["id"], "ghost", b["id"]]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.mimetype == "text/html"
        page = response.get_data(as_text=True)
        assert "Panel A" in page and "Panel B" in page

    def test_print_validation(self, client, admin_headers):
        assert client.post("/api/labels/print", json={"item_ids": []}, headers=admin_headers).status_code == 400
        assert client.post("/api/labels/print", json={"item_ids": ["ghost"]}, headers=admin_headers).status_code == 404
        assert client.get("/api/labels/ghost", headers=admin_headers).status_code == 404


class TestAssistant:
    def test_ai_count_demo(self, client, crew_headers):
        response = client.post("/api/ai-count", json={"image": "data:image/jpeg;base64,AAAA"}, headers=crew_headers)

        assert response.status_code == 200
        assert response.get_json()["confidence"] == "demo"

    def test_ai_count_requires_image(self, client, crew_headers):
        assert client.post("/api/ai-count", json={}, headers=crew_headers).status_code == 400

    def test_ai_count_upstream_failure(self, app, client, crew_headers, monkeypatch):
        app.config["ANTHROPIC_API_KEY"] = "test-key"
        monkeypatch.setattr(
            assistant_service,
            "http_client",
            lambda: httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
        )

        response = client.post("/api/ai-count", json={"image": "AAAA"}, headers=crew_headers)

        assert response.status_code == 502

    def test_assistant_without_key(self, client, crew_headers):
        response = client.post("/api/assistant", json={"question": "How many clips?"}, headers=crew_headers)

        assert response.status_code == 503
        body = response.get_json()
        assert body["error"] == "API key not configured"
        assert body["answer"] == assistant_service.NOT_CONFIGURED_ANSWER

    def test_assistant_answers(self, app, client, crew_headers, monkeypatch):
        app.config["ANTHROPIC_API_KEY"] = "test-key"
        monkeypatch.setattr(
            assistant_service,
            "http_client",
            lambda: httpx.Client(transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"content": [{"type": "text", "text": "Nothing in stock."}]})
            )),
        )

        response = client.post("/api/assistant", json={"question": "What is low?"}, headers=crew_headers)

        assert response.get_json() == {"answer": "Nothing in stock."}

    def test_chat_messages_roundtrip(self, client, crew_headers):
        assert client.post("/api/chat/messages", json={"content": "Hi"}, headers=crew_headers).status_code == 201
        assert client.post(
            "/api/chat/messages", json={"role": "robot", "content": "Hi"}, headers=crew_headers
        ).status_code == 400

        messages = client.get("/api/chat/messages", headers=crew_headers).get_json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [("user", "Hi")]

        cleared = client.delete("/api/chat/messages", headers=crew_headers).get_json()
        assert cleared == {"success": True, "deleted": 1}

    def test_ai_count_logs(self, client, crew_headers):
        created = client.post(
            "/api/ai-count/logs",
            json={"image_url": "data:image/jpeg;base64,AAAA", "ai_count": 14, "confirmed_count": 12},
            headers=crew_headers,
        )
        assert created.status_code == 201
        assert created.get_json()["log"]["user_name"] == "Riley Crew"

        logs = client.get("/api/ai-count/logs", headers=crew_headers).get_json()["logs"]
        assert [(log["ai_count"], log["confirmed_count"]) for log in logs] == [(14, 12)]

        missing = client.post("/api/ai-count/logs", json={"ai_count": 1, "confirmed_count": 1}, headers=crew_headers)
        assert missing.status_code == 400


class TestAdmin:
    def test_reset_requires_confirmation(self, client, admin_headers):
        assert client.post("/api/admin/reset", json={}, headers=admin_headers).status_code == 400

    def test_reset_wipes_everything(self, client, admin_headers, crew):
        _make(client, admin_headers, name="Panel")

        response = client.post("/api/admin/reset", json={"confirm": True}, headers=admin_headers)
        assert response.get_json() == {"success": True, "message": "All data has been reset"}

        # The old session went with the reset; the default admin can log back in
        assert client.get("/api/items", headers=admin_headers).status_code == 401
        relogin = client.post("/api/auth/login", json={"pin": "1234"})
        token = relogin.get_json()["token"]
        items = client.get("/api/items", headers={"Authorization": f"Bearer {token}"}).get_json()["items"]
        assert items == []
        assert client.post("/api/auth/login", json={"pin": "3333"}).status_code == 401

    def test_only_admin_can_reset(self, client, counter_headers):
        assert client.post("/api/admin/reset", json={"confirm": True}, headers=counter_headers).status_code == 403


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["storage"]["backend"] == "sql"
        assert body["ai_assistant"] == "demo"

    def test_health_without_backend(self, unconfigured_app):
        body = unconfigured_app.test_client().get("/health").get_json()

        assert body["status"] == "degraded"
        assert body["checks"]["storage"]["backend"] == "none"

    def test_version(self, client):
        body = client.get("/version").get_json()

        assert body["api_version"] == "1.0.0"
        assert body["storage_backend"] == "sql"
        assert "ANTHROPIC" not in str(body)

    def test_login_without_backend(self, unconfigured_app):
        response = unconfigured_app.test_client().post("/api/auth/login", json={"pin": "1234"})
        assert response.status_code == 401
