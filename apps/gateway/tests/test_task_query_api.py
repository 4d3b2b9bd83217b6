"""任务查询/创建/删除/事件接口测试

测试内容：
1. GET 单个任务与列表（stage 筛选）
2. POST 创建自定义任务
3. DELETE 硬删除
4. GET 审计事件
"""

from httpx import AsyncClient


class TestGetTask:
    async def test_get_by_template_id(self, client: AsyncClient, seed_task):
        await seed_task("a1", template_id="t1")
        resp = await client.get("/api/projects/P1/tasks/t1")
        assert resp.status_code == 200
        assert resp.headers["x-task-lookup-method"] == "template"
        assert resp.json()["id"] == "a1"

    async def test_defaults_never_null(self, client: AsyncClient, seed_task):
        await seed_task("a1", stage=None, status=None)
        data = (await client.get("/api/projects/P1/tasks/a1")).json()
        assert data["stage"] == "identification"
        assert data["status"] == "todo"
        assert data["notes"] == ""
        assert data["sourceId"] == ""
        assert data["sortOrder"] == 0

    async def test_seeded_completed_row_without_status(self, client: AsyncClient, seed_task):
        """外部导入的 completed=1 / status=NULL 记录展示为 done"""
        await seed_task("a1", completed=True, status=None)
        data = (await client.get("/api/projects/P1/tasks/a1")).json()
        assert data["completed"] is True
        assert data["status"] == "done"


class TestListTasks:
    async def test_list_scoped(self, client: AsyncClient, seed_task):
        await seed_task("a1", sort_order=2)
        await seed_task("a2", sort_order=1)
        await seed_task("b1", project_id="P2")
        resp = await client.get("/api/projects/P1/tasks")
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()["tasks"]] == ["a2", "a1"]

    async def test_list_by_stage(self, client: AsyncClient, seed_task):
        await seed_task("a1", stage="closure")
        await seed_task("a2")
        resp = await client.get("/api/projects/P1/tasks", params={"stage": "closure"})
        assert [t["id"] for t in resp.json()["tasks"]] == ["a1"]

    async def test_empty_project(self, client: AsyncClient):
        resp = await client.get("/api/projects/P9/tasks")
        assert resp.status_code == 200
        assert resp.json() == {"tasks": []}


class TestCreateTask:
    async def test_create_custom(self, client: AsyncClient):
        resp = await client.post(
            "/api/projects/P1/tasks",
            json={"text": "自定义任务", "stage": "definition", "owner": "alice"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["origin"] == "custom"
        assert data["sourceId"] == ""
        assert data["projectId"] == "P1"
        assert data["stage"] == "definition"
        assert data["status"] == "todo"
        assert data["completed"] is False
        assert len(data["id"]) == 36

        resp = await client.get(f"/api/projects/P1/tasks/{data['id']}")
        assert resp.status_code == 200
        assert resp.headers["x-task-lookup-method"] == "exact"

    async def test_origin_forced_custom(self, client: AsyncClient):
        resp = await client.post(
            "/api/projects/P1/tasks",
            json={"text": "x", "origin": "template", "sourceId": "t1"},
        )
        assert resp.status_code == 201
        assert resp.json()["origin"] == "custom"
        assert resp.json()["sourceId"] == ""

    async def test_created_completed(self, client: AsyncClient):
        resp = await client.post(
            "/api/projects/P1/tasks",
            json={"text": "x", "completed": True},
        )
        assert resp.json()["status"] == "done"

    async def test_text_required(self, client: AsyncClient):
        resp = await client.post("/api/projects/P1/tasks", json={"stage": "delivery"})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "INVALID_TASK_UPDATE"
        assert error["details"]["field"] == "text"


class TestDeleteTask:
    async def test_delete(self, client: AsyncClient, seed_task):
        await seed_task("a1", template_id="t1")
        resp = await client.delete("/api/projects/P1/tasks/t1")
        assert resp.status_code == 204
        assert resp.headers["x-task-lookup-method"] == "template"

        resp = await client.get("/api/projects/P1/tasks/a1")
        assert resp.status_code == 404
        resp = await client.get("/api/projects/P1/tasks/t1")
        assert resp.status_code == 404

    async def test_delete_foreign_not_found(self, client: AsyncClient, seed_task):
        await seed_task("a1", project_id="P1")
        resp = await client.delete("/api/projects/P2/tasks/a1")
        assert resp.status_code == 404
        assert (await client.get("/api/projects/P1/tasks/a1")).status_code == 200


class TestTaskEvents:
    async def test_events_after_create_and_update(self, client: AsyncClient):
        created = (await client.post("/api/projects/P1/tasks", json={"text": "x"})).json()
        await client.put(
            f"/api/projects/P1/tasks/{created['id']}",
            json={"completed": True},
        )

        resp = await client.get(f"/api/projects/P1/tasks/{created['id']}/events")
        assert resp.status_code == 200
        events = resp.json()["events"]
        assert [e["type"] for e in events] == ["TASK_CREATED", "TASK_UPDATED"]
        update = events[1]
        assert update["payload"]["lookup_method"] == "exact"
        assert update["payload"]["changes"]["completed"] == {"before": False, "after": True}
        # request_id 与响应头一致的 ULID
        assert len(update["request_id"]) == 26

    async def test_events_scoped(self, client: AsyncClient, seed_task):
        await seed_task("a1", project_id="P1")
        resp = await client.get("/api/projects/P2/tasks/a1/events")
        assert resp.status_code == 404
