import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.app import app
from catalog.store import CatalogUnavailable, JsonCatalogStore
from conftest import course_record


class BrokenStore:
    """Store whose every read fails, as an unreachable database would."""

    def ping(self):
        raise CatalogUnavailable("connection refused")

    def find(self, q, skip=0, limit=50):
        raise CatalogUnavailable("connection refused")

    def count(self, q=""):
        raise CatalogUnavailable("connection refused")

    def all(self):
        raise CatalogUnavailable("connection refused")


@pytest.fixture
def catalog():
    rows = [course_record(str(i), f"C{i:04d}") for i in range(120)]
    rows.append(course_record("900", "ZZ900", zh="文化科技", en="Cultural Technology",
                              credit="2.0", hours="2", teachers=["Chen Wei"], thu=["3", "4"]))
    return rows


@pytest.fixture
def client(catalog):
    """FastAPI test client backed by an in-memory catalog."""
    app.state.store = JsonCatalogStore.from_courses(catalog)
    yield TestClient(app)
    app.state.store = None


@pytest.fixture
def broken_client():
    app.state.store = BrokenStore()
    yield TestClient(app)
    app.state.store = None


class TestCourseEndpoint:
    """Test GET /api/course."""

    def test_first_page(self, client):
        response = client.get("/api/course", params={"q": "", "page": 1, "limit": 50})
        assert response.status_code == 200
        data = response.json()
        assert len(data["courses"]) == 50
        assert data["total"] == 121
        assert data["pages"] == 3
        assert data["page"] == 1
        assert data["limit"] == 50
        codes = [c["code"] for c in data["courses"]]
        assert codes == sorted(codes)

    def test_defaults(self, client):
        data = client.get("/api/course").json()
        assert data["page"] == 1
        assert data["limit"] == 50

    def test_limit_clamped(self, client):
        data = client.get("/api/course", params={"limit": 500}).json()
        assert data["limit"] == 100
        assert len(data["courses"]) == 100

    def test_page_clamped(self, client):
        data = client.get("/api/course", params={"page": 0}).json()
        assert data["page"] == 1

    def test_malformed_numbers_fall_back(self, client):
        """Non-numeric page/limit are not a validation error."""
        response = client.get("/api/course", params={"page": "abc", "limit": "x"})
        assert response.status_code == 200
        data = response.json()
        assert data["page"] == 1
        assert data["limit"] == 50

    def test_search_by_teacher(self, client):
        data = client.get("/api/course", params={"q": "chen"}).json()
        assert data["total"] == 1
        course = data["courses"][0]
        assert course["code"] == "ZZ900"
        assert course["name"] == {"zh": "文化科技", "en": "Cultural Technology"}
        assert course["time"]["thu"] == ["3", "4"]
        assert course["credit"] == "2.0"
        assert course["hours"] == "2"

    def test_last_page(self, client):
        data = client.get("/api/course", params={"page": 3, "limit": 50}).json()
        assert len(data["courses"]) == 21

    def test_malformed_time_passes_through(self):
        """A stored record with a non-list day is served as-is, not a crash."""
        bad = {**course_record("1", "A1"), "time": {"mon": 5}}
        app.state.store = JsonCatalogStore.from_courses([bad, course_record("2", "B2")])
        try:
            response = TestClient(app).get("/api/course")
        finally:
            app.state.store = None
        assert response.status_code == 200
        courses = response.json()["courses"]
        assert [c["code"] for c in courses] == ["A1", "B2"]
        assert courses[0]["time"] == {"mon": 5}
        assert courses[1]["time"]["mon"] == []


class TestErrorHandling:
    """Test failure responses when the store is unreachable."""

    def test_store_failure_is_500(self, broken_client):
        response = broken_client.get("/api/course", params={"q": "x"})
        assert response.status_code == 500
        assert response.headers["cache-control"] == "no-store"
        data = response.json()
        assert data["error"]
        assert "connection refused" in data["details"]
        # ISO-8601, parseable
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None

    def test_collection_failure(self, broken_client):
        response = broken_client.get("/api/collection")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch data"}

    def test_healthz_failure(self, broken_client):
        response = broken_client.get("/healthz")
        assert response.status_code == 503
        assert response.json()["ok"] is False


class TestAuxEndpoints:
    """Test the collection dump and health probe."""

    def test_collection(self, client):
        data = client.get("/api/collection").json()
        assert len(data["documents"]) == 121

    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"ok": True, "courses": 121}


class TestScriptEntryPoint:
    """Test running app/app.py directly as a script."""

    def test_imports_app_package(self, tmp_path):
        """The script's own directory must not shadow the app package."""
        script = Path(__file__).resolve().parent.parent / "app" / "app.py"
        code = (
            "import runpy, sys, uvicorn\n"
            f"sys.path[0] = {str(script.parent)!r}\n"
            "uvicorn.run = lambda *a, **k: None\n"
            f"runpy.run_path({str(script)!r}, run_name='__main__')\n"
        )
        env = {
            **os.environ,
            "CATALOG_FILE": str(tmp_path / "courses.json"),
            "RAW_CATALOG_FILE": str(tmp_path / "raw.json"),
            "SUPABASE_URL": "",
        }
        result = subprocess.run(
            [sys.executable, "-c", code],
            cwd=script.parent.parent, env=env, capture_output=True, text=True, timeout=60,
        )
        assert result.returncode == 0, result.stderr
