import json
from types import SimpleNamespace

import pytest

from catalog.store import (
    CatalogUnavailable,
    JsonCatalogStore,
    SupabaseCatalogStore,
    query_with_retry,
)
from conftest import course_record


class TestRetry:
    """Test the fixed-delay retry wrapper."""

    def test_success_first_try(self):
        sleeps = []
        assert query_with_retry(lambda: 42, sleep=sleeps.append) == 42
        assert sleeps == []

    def test_recovers_after_failures(self):
        calls = {"n": 0}
        sleeps = []

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("down")
            return "ok"

        assert query_with_retry(flaky, attempts=3, delay=0.5, sleep=sleeps.append) == "ok"
        assert sleeps == [0.5, 0.5]

    def test_gives_up(self):
        sleeps = []

        def broken():
            raise ConnectionError("down")

        with pytest.raises(CatalogUnavailable) as exc_info:
            query_with_retry(broken, attempts=3, delay=1.0, sleep=sleeps.append)
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert "3 attempts" in str(exc_info.value)
        assert sleeps == [1.0, 1.0]


class TestJsonCatalogStore:
    """Test the JSON snapshot backend."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "courses.json"
        path.write_text(json.dumps([course_record("2", "B2"), course_record("1", "A1")]), encoding="utf-8")
        store = JsonCatalogStore(path, attempts=1)
        assert [c["code"] for c in store.all()] == ["A1", "B2"]
        assert store.count("") == 2
        assert store.find("b", 0, 10)[0]["id"] == "2"

    def test_missing_file_unavailable(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "nope.json", attempts=2, delay=0)
        with pytest.raises(CatalogUnavailable):
            store.ping()

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "courses.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(CatalogUnavailable):
            JsonCatalogStore(path, attempts=1).count("")


class FakeQuery:
    """Records the PostgREST builder chain and returns canned rows."""

    def __init__(self, log, rows, count):
        self.log, self.rows, self.count = log, rows, count

    def select(self, columns, count=None):
        self.log.append(("select", columns, count))
        return self

    def or_(self, filters):
        self.log.append(("or_", filters))
        return self

    def order(self, col, desc=False):
        self.log.append(("order", col, desc))
        return self

    def range(self, start, end):
        self.log.append(("range", start, end))
        return self

    def execute(self):
        return SimpleNamespace(data=self.rows, count=self.count)


class FakeClient:
    def __init__(self, rows, count=0):
        self.log: list = []
        self.rows, self.count = rows, count

    def table(self, name):
        self.log.append(("table", name))
        return FakeQuery(self.log, self.rows, self.count)


class TestSupabaseCatalogStore:
    """Test the hosted-table backend against a fake client."""

    def test_find_builds_query(self):
        row = {**course_record("1", "A1"), "teacher_names": "Lee"}
        client = FakeClient([row])
        store = SupabaseCatalogStore(client, table="courses", attempts=1)
        rows = store.find("lee", skip=50, limit=50)

        assert rows == [course_record("1", "A1")]
        assert ("table", "courses") in client.log
        assert ("order", "code", False) in client.log
        assert ("range", 50, 99) in client.log
        or_filter = next(entry[1] for entry in client.log if entry[0] == "or_")
        assert "code.ilike.*lee*" in or_filter
        assert "name->>zh.ilike.*lee*" in or_filter
        assert "teacher_names.ilike.*lee*" in or_filter

    def test_empty_query_no_filter(self):
        client = FakeClient([])
        SupabaseCatalogStore(client, attempts=1).find("", 0, 10)
        assert not any(entry[0] == "or_" for entry in client.log)

    def test_reserved_characters_stripped(self):
        client = FakeClient([])
        SupabaseCatalogStore(client, attempts=1).find("a,b(c)", 0, 10)
        or_filter = next(entry[1] for entry in client.log if entry[0] == "or_")
        assert "code.ilike.*abc*" in or_filter

    @pytest.mark.parametrize("q", [",", "(*)", "%"])
    def test_only_reserved_characters_matches_nothing(self, q):
        client = FakeClient([course_record("1", "A1")], count=120)
        store = SupabaseCatalogStore(client, attempts=1)
        assert store.find(q, 0, 10) == []
        assert store.count(q) == 0
        assert not any(entry[0] == "table" for entry in client.log)

    def test_count_uses_exact(self):
        client = FakeClient([], count=120)
        assert SupabaseCatalogStore(client, attempts=1).count("") == 120
        assert ("select", "id", "exact") in client.log
