"""结构化错误响应测试

所有错误响应均为 {"error": {"code", "message", "details"}} JSON，永不返回 HTML。
"""

from httpx import AsyncClient
from tcof.core.exceptions import TransientStoreError

TASK_A = "3f2b8c1e-9d4a-4e7b-8c2d-1a2b3c4d5e6f"


def _error(resp) -> dict:
    assert resp.headers["content-type"].startswith("application/json")
    body = resp.json()
    assert set(body["error"]) == {"code", "message", "details"}
    return body["error"]


class TestResolutionErrors:
    async def test_not_found(self, client: AsyncClient):
        resp = await client.put("/api/projects/P1/tasks/nope", json={"text": "x"})
        assert resp.status_code == 404
        error = _error(resp)
        assert error["code"] == "TASK_NOT_FOUND"
        assert error["details"] == {"taskId": "nope", "projectId": "P1"}

    async def test_foreign_record_looks_like_not_found(self, client: AsyncClient, seed_task):
        """其他项目的记录与不存在的记录返回完全相同的响应形态"""
        await seed_task(TASK_A, project_id="P1")
        foreign = await client.put(f"/api/projects/P2/tasks/{TASK_A}", json={"text": "x"})
        missing = await client.put(
            "/api/projects/P2/tasks/7c9e6679-7425-40de-944b-e07fc1f90ae7",
            json={"text": "x"},
        )
        assert foreign.status_code == missing.status_code == 404
        assert _error(foreign)["code"] == _error(missing)["code"]
        assert "P1" not in foreign.text

    async def test_ambiguous(self, client: AsyncClient, seed_task):
        await seed_task(f"{TASK_A}-identification-0")
        await seed_task(f"{TASK_A}-delivery-0")
        resp = await client.put(f"/api/projects/P1/tasks/{TASK_A}", json={"text": "x"})
        assert resp.status_code == 409
        error = _error(resp)
        assert error["code"] == "AMBIGUOUS_TASK_ID"
        assert error["details"]["strategy"] == "prefix"
        assert len(error["details"]["candidates"]) == 2

    async def test_invalid_identifier(self, client: AsyncClient):
        resp = await client.put("/api/projects/P1/tasks/a%201", json={"text": "x"})
        assert resp.status_code == 400
        assert _error(resp)["code"] == "INVALID_TASK_ID"

    async def test_identifier_too_long(self, client: AsyncClient):
        resp = await client.get(f"/api/projects/P1/tasks/{'x' * 300}")
        assert resp.status_code == 400
        assert _error(resp)["code"] == "INVALID_TASK_ID"


class TestUpdateErrors:
    async def test_null_text_names_field(self, client: AsyncClient, seed_task):
        await seed_task("a1")
        resp = await client.put("/api/projects/P1/tasks/a1", json={"text": None})
        assert resp.status_code == 400
        error = _error(resp)
        assert error["code"] == "INVALID_TASK_UPDATE"
        assert error["details"]["field"] == "text"

    async def test_invalid_stage_names_field(self, client: AsyncClient, seed_task):
        await seed_task("a1")
        resp = await client.put("/api/projects/P1/tasks/a1", json={"stage": "launch"})
        assert resp.status_code == 400
        assert _error(resp)["details"]["field"] == "stage"

    async def test_invalid_completed_names_field(self, client: AsyncClient, seed_task):
        await seed_task("a1")
        resp = await client.put("/api/projects/P1/tasks/a1", json={"completed": "maybe"})
        assert resp.status_code == 400
        assert _error(resp)["details"]["field"] == "completed"


class TestRequestErrors:
    async def test_body_not_object(self, client: AsyncClient, seed_task):
        await seed_task("a1")
        resp = await client.put("/api/projects/P1/tasks/a1", json=[1, 2])
        assert resp.status_code == 400
        assert _error(resp)["code"] == "VALIDATION_ERROR"

    async def test_malformed_json(self, client: AsyncClient, seed_task):
        await seed_task("a1")
        resp = await client.put(
            "/api/projects/P1/tasks/a1",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert _error(resp)["code"] == "VALIDATION_ERROR"

    async def test_invalid_stage_filter(self, client: AsyncClient):
        resp = await client.get("/api/projects/P1/tasks", params={"stage": "launch"})
        assert resp.status_code == 400
        assert _error(resp)["code"] == "VALIDATION_ERROR"

    async def test_unknown_route_json(self, client: AsyncClient):
        resp = await client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert _error(resp)["code"] == "NOT_FOUND"

    async def test_method_not_allowed_json(self, client: AsyncClient):
        resp = await client.post("/api/projects/P1/tasks/a1", json={})
        assert resp.status_code == 405
        assert _error(resp)["code"] == "METHOD_NOT_ALLOWED"


class TestStoreErrors:
    async def test_transient_store_error_503(self, client: AsyncClient, app, monkeypatch):
        async def unavailable(*args, **kwargs):
            raise TransientStoreError("resolve_exact", TimeoutError())

        monkeypatch.setattr(app.state.store_group.read_task_store, "get_task", unavailable)
        resp = await client.get("/api/projects/P1/tasks/a1")
        assert resp.status_code == 503
        error = _error(resp)
        assert error["code"] == "STORE_UNAVAILABLE"
        assert error["details"]["retryable"] is True


class TestUnstorableValues:
    """JSON 合法但 SQLite 无法存储的值 -> 400 并指出字段"""

    async def test_oversized_sort_order(self, client: AsyncClient, seed_task):
        await seed_task(TASK_A)
        resp = await client.put(f"/api/projects/P1/tasks/{TASK_A}", json={"sortOrder": 10**20})
        assert resp.status_code == 400
        error = _error(resp)
        assert error["code"] == "INVALID_TASK_UPDATE"
        assert error["details"] == {"field": "sortOrder"}
        assert "x-request-id" in resp.headers

    async def test_lone_surrogate_in_notes(self, client: AsyncClient, seed_task):
        await seed_task(TASK_A)
        # httpx 无法编码孤立代理项，直接发送原始 JSON 转义
        resp = await client.put(
            f"/api/projects/P1/tasks/{TASK_A}",
            content=b'{"notes": "\\ud800"}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        error = _error(resp)
        assert error["code"] == "INVALID_TASK_UPDATE"
        assert error["details"] == {"field": "notes"}

    async def test_lone_surrogate_on_create(self, client: AsyncClient):
        resp = await client.post(
            "/api/projects/P1/tasks",
            content=b'{"text": "\\udfff"}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert _error(resp)["details"] == {"field": "text"}

    async def test_record_unchanged(self, client: AsyncClient, seed_task):
        await seed_task(TASK_A, sort_order=4)
        await client.put(f"/api/projects/P1/tasks/{TASK_A}", json={"sortOrder": -(2**64)})
        resp = await client.get(f"/api/projects/P1/tasks/{TASK_A}")
        assert resp.json()["sortOrder"] == 4


class TestUnhandledErrors:
    async def test_unexpected_exception_is_structured(self, client: AsyncClient, app, caplog):
        async def explode():
            raise RuntimeError("secret internals")

        app.add_api_route("/api/explode", explode)
        resp = await client.get("/api/explode")

        assert resp.status_code == 500
        error = _error(resp)
        assert error["code"] == "INTERNAL_ERROR"
        assert "secret internals" not in resp.text
        assert len(resp.headers["x-request-id"]) == 26

        completed = [
            r.msg
            for r in caplog.records
            if isinstance(r.msg, dict) and r.msg.get("event") == "request_completed"
        ]
        assert completed[-1]["status_code"] == 500
        assert completed[-1]["request_id"] == resp.headers["x-request-id"]
