"""
Task endpoint tests for TaskHub API
"""
import uuid

import pytest
from httpx import AsyncClient

from conftest import auth_headers, create_task_as, assign_as


class TestCreateTask:
    """Test task creation"""

    async def test_minimal_task_defaults(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, description="Buy milk")

        assert task["description"] == "Buy milk"
        assert task["status"] == "pending"
        assert task["priority"] == "medium"
        assert task["title"] == ""
        assert task["tags"] == []
        assert task["due_date"] is None
        assert task["assignee"] is None
        assert task["owner"]["id"] == str(alice.uuid)
        assert task["creator"]["id"] == str(alice.uuid)
        assert task["owner"]["name"] == "Alice"
        assert task["owner"]["email"] == alice.email

    async def test_full_payload(self, client: AsyncClient, alice):
        task = await create_task_as(
            client, alice,
            description="Ship the release",
            title="Release",
            priority="high",
            dueDate="2030-01-15T12:00:00Z",
            tags=["release", "ops"]
        )

        assert task["title"] == "Release"
        assert task["priority"] == "high"
        assert task["due_date"].startswith("2030-01-15")
        assert task["tags"] == ["release", "ops"]

    async def test_comma_separated_tags_are_normalized(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags=" a , b ,, c ")
        assert task["tags"] == ["a", "b", "c"]

    async def test_repeated_tags_are_kept(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags="a, b, b")
        assert task["tags"] == ["a", "b", "b"]

    async def test_blank_due_date_is_ignored(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, dueDate="")
        assert task["due_date"] is None

    async def test_tag_at_column_limit(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags=["t" * 100])
        assert task["tags"] == ["t" * 100]

    @pytest.mark.parametrize("tags", [["ok", "t" * 101], "ok, " + "t" * 101])
    async def test_overlong_tag_rejected(self, client: AsyncClient, alice, tags):
        response = await client.post(
            "/api/v1/tasks/", json={"description": "Tagged", "tags": tags}, headers=auth_headers(alice)
        )
        assert response.status_code == 422

        listing = await client.get("/api/v1/tasks/", headers=auth_headers(alice))
        assert listing.json()["total"] == 0

    @pytest.mark.parametrize("payload", [{}, {"description": ""}, {"description": "   "}, {"title": "No body"}])
    async def test_description_is_required(self, client: AsyncClient, alice, payload):
        response = await client.post("/api/v1/tasks/", json=payload, headers=auth_headers(alice))

        assert response.status_code == 400
        assert "Description" in response.json()["detail"]

    async def test_invalid_priority(self, client: AsyncClient, alice):
        response = await client.post(
            "/api/v1/tasks/",
            json={"description": "x", "priority": "urgent"},
            headers=auth_headers(alice)
        )
        assert response.status_code == 422

    async def test_admin_creates_on_behalf_of_user(self, client: AsyncClient, admin, alice):
        task = await create_task_as(client, admin, description="Onboarding", userId=str(alice.uuid))

        assert task["owner"]["id"] == str(alice.uuid)
        assert task["creator"]["id"] == str(admin.uuid)

        visible = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert visible.status_code == 200

    async def test_admin_on_behalf_of_unknown_user(self, client: AsyncClient, admin):
        response = await client.post(
            "/api/v1/tasks/",
            json={"description": "x", "userId": str(uuid.uuid4())},
            headers=auth_headers(admin)
        )
        assert response.status_code == 400

    async def test_admin_on_behalf_with_malformed_id(self, client: AsyncClient, admin):
        response = await client.post(
            "/api/v1/tasks/",
            json={"description": "x", "userId": "not-an-id"},
            headers=auth_headers(admin)
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User id not valid"

    async def test_user_id_ignored_for_regular_users(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice, description="Mine", userId=str(bob.uuid))
        assert task["owner"]["id"] == str(alice.uuid)


class TestReadTask:
    """Test single task reads"""

    async def test_owner_can_read(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["id"] == task["id"]

    async def test_stranger_gets_not_found(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice)
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))

        assert response.status_code == 404

    async def test_hidden_and_missing_look_the_same(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice)

        hidden = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))
        missing = await client.get(f"/api/v1/tasks/{uuid.uuid4()}", headers=auth_headers(bob))

        assert hidden.status_code == missing.status_code == 404
        assert hidden.json()["detail"] == missing.json()["detail"]

    async def test_malformed_id(self, client: AsyncClient, alice):
        response = await client.get("/api/v1/tasks/12345", headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["detail"] == "Task id not valid"

    async def test_assignee_can_read(self, client: AsyncClient, alice, bob, admin):
        task = await create_task_as(client, alice)
        await assign_as(client, admin, task["id"], bob)

        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))
        assert response.status_code == 200

    async def test_admin_can_read_any(self, client: AsyncClient, alice, admin):
        task = await create_task_as(client, alice)
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(admin))
        assert response.status_code == 200


class TestListTasks:
    """Test listing, visibility, filtering and pagination"""

    async def _list(self, client: AsyncClient, user, **params) -> dict:
        response = await client.get("/api/v1/tasks/", params=params, headers=auth_headers(user))
        assert response.status_code == 200, response.text
        return response.json()

    async def test_empty_list(self, client: AsyncClient, alice):
        page = await self._list(client, alice)
        assert page == {"tasks": [], "total": 0, "page": 1, "limit": 20}

    async def test_visibility(self, client: AsyncClient, alice, bob, carol, admin):
        own = await create_task_as(client, alice, description="alice own")
        assigned = await create_task_as(client, bob, description="bob for alice")
        await assign_as(client, admin, assigned["id"], alice)
        await create_task_as(client, bob, description="bob private")
        await create_task_as(client, carol, description="carol private")

        page = await self._list(client, alice)
        ids = {task["id"] for task in page["tasks"]}

        assert ids == {own["id"], assigned["id"]}
        assert page["total"] == 2

    async def test_admin_sees_everything(self, client: AsyncClient, alice, bob, admin):
        await create_task_as(client, alice)
        await create_task_as(client, bob)
        await create_task_as(client, admin)

        page = await self._list(client, admin)
        assert page["total"] == 3

    async def test_newest_first(self, client: AsyncClient, alice):
        first = await create_task_as(client, alice, description="first")
        second = await create_task_as(client, alice, description="second")

        page = await self._list(client, alice)
        assert [task["id"] for task in page["tasks"]] == [second["id"], first["id"]]

    async def test_pages_do_not_overlap(self, client: AsyncClient, alice):
        for index in range(7):
            await create_task_as(client, alice, description=f"task {index}")

        seen = []
        totals = set()
        for page_number in (1, 2, 3):
            page = await self._list(client, alice, page=page_number, limit=3)
            totals.add(page["total"])
            seen.extend(task["id"] for task in page["tasks"])

        assert totals == {7}
        assert len(seen) == 7
        assert len(set(seen)) == 7

    @pytest.mark.parametrize("params,expected_page,expected_limit", [
        ({}, 1, 20),
        ({"page": 0}, 1, 20),
        ({"page": -4}, 1, 20),
        ({"limit": 1000}, 1, 100),
        ({"limit": -5}, 1, 1),
        ({"limit": 0}, 1, 20),
        ({"page": 3, "limit": 5}, 3, 5),
    ])
    async def test_paging_is_clamped(self, client: AsyncClient, alice, params, expected_page, expected_limit):
        page = await self._list(client, alice, **params)
        assert page["page"] == expected_page
        assert page["limit"] == expected_limit

    async def test_search_is_case_insensitive(self, client: AsyncClient, alice):
        match = await create_task_as(client, alice, description="Renew the Passport")
        await create_task_as(client, alice, description="Water plants")

        page = await self._list(client, alice, search="passport")
        assert [task["id"] for task in page["tasks"]] == [match["id"]]

    async def test_search_treats_wildcards_literally(self, client: AsyncClient, alice):
        await create_task_as(client, alice, description="Reach 100% coverage")
        await create_task_as(client, alice, description="Reach 100 users")

        page = await self._list(client, alice, search="100%")
        assert page["total"] == 1

    async def test_search_does_not_widen_visibility(self, client: AsyncClient, alice, bob):
        await create_task_as(client, bob, description="secret plan")

        page = await self._list(client, alice, search="secret")
        assert page["total"] == 0

    async def test_status_and_priority_filters(self, client: AsyncClient, alice):
        done = await create_task_as(client, alice, priority="high")
        await client.put(f"/api/v1/tasks/{done['id']}", json={"status": "completed"}, headers=auth_headers(alice))
        await create_task_as(client, alice, priority="high")
        await create_task_as(client, alice, priority="low")

        completed = await self._list(client, alice, status="completed")
        assert [task["id"] for task in completed["tasks"]] == [done["id"]]

        high = await self._list(client, alice, priority="high")
        assert high["total"] == 2

        both = await self._list(client, alice, status="pending", priority="high")
        assert both["total"] == 1

    async def test_invalid_status_filter(self, client: AsyncClient, alice):
        response = await client.get("/api/v1/tasks/", params={"status": "archived"}, headers=auth_headers(alice))
        assert response.status_code == 422

    async def test_blank_filters_mean_any(self, client: AsyncClient, alice):
        await create_task_as(client, alice, priority="high")
        await create_task_as(client, alice, priority="low")

        page = await self._list(client, alice, status="", priority="")
        assert page["total"] == 2

    async def test_page_past_the_end_is_empty(self, client: AsyncClient, alice):
        await create_task_as(client, alice)

        for page_number in (2, 10 ** 19):
            page = await self._list(client, alice, page=page_number)
            assert page["tasks"] == []
            assert page["total"] == 1

    async def test_tag_filter_matches_any_tag(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags=["a", "b"])

        for tags in ("b,c", "a", " c , b "):
            page = await self._list(client, alice, tags=tags)
            assert [item["id"] for item in page["tasks"]] == [task["id"]], tags

        page = await self._list(client, alice, tags="c,d")
        assert page["total"] == 0

    async def test_tag_filter_counts_each_task_once(self, client: AsyncClient, alice):
        await create_task_as(client, alice, tags=["a", "b", "a"])

        page = await self._list(client, alice, tags="a,b")
        assert page["total"] == 1
        assert len(page["tasks"]) == 1


class TestUpdateTask:
    """Test partial updates"""

    async def test_owner_updates_fields(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags="a")

        response = await client.put(
            f"/api/v1/tasks/{task['id']}",
            json={"status": "in-progress", "priority": "low", "title": "Renamed", "tags": "x, y"},
            headers=auth_headers(alice)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "in-progress"
        assert data["priority"] == "low"
        assert data["title"] == "Renamed"
        assert data["tags"] == ["x", "y"]
        assert data["description"] == task["description"]

    async def test_overlong_tag_rejected(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, tags="a")

        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"tags": ["t" * 101]}, headers=auth_headers(alice)
        )
        assert response.status_code == 422

        fetched = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert fetched.json()["tags"] == ["a"]

    async def test_only_supplied_fields_change(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice, title="Keep", priority="high", tags=["t"])

        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"status": "completed"}, headers=auth_headers(alice)
        )

        data = response.json()
        assert data["title"] == "Keep"
        assert data["priority"] == "high"
        assert data["tags"] == ["t"]

    async def test_empty_update_is_rejected(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)

        response = await client.put(f"/api/v1/tasks/{task['id']}", json={}, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["detail"] == "No update data provided"

        after = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert after.json()["updated_at"] == task["updated_at"]

    async def test_unknown_fields_only_is_rejected(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"owner": "someone"}, headers=auth_headers(alice)
        )
        assert response.status_code == 400

    async def test_invalid_status_leaves_task_unchanged(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)

        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"status": "archived"}, headers=auth_headers(alice)
        )
        assert response.status_code == 422

        after = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert after.json()["status"] == "pending"

    async def test_null_status_is_rejected(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"status": None}, headers=auth_headers(alice)
        )
        assert response.status_code == 400

    async def test_empty_description_is_rejected(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"description": "  "}, headers=auth_headers(alice)
        )
        assert response.status_code == 400

    async def test_assignee_can_update(self, client: AsyncClient, alice, bob, admin):
        task = await create_task_as(client, alice)
        await assign_as(client, admin, task["id"], bob)

        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"status": "completed"}, headers=auth_headers(bob)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    async def test_stranger_update_is_not_found(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"status": "completed"}, headers=auth_headers(bob)
        )
        assert response.status_code == 404

    async def test_admin_can_update_any(self, client: AsyncClient, alice, admin):
        task = await create_task_as(client, alice)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"priority": "high"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200


class TestDeleteTask:
    """Test deletion rights"""

    async def test_owner_deletes(self, client: AsyncClient, alice):
        task = await create_task_as(client, alice)

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["message"] == "Task deleted successfully"

        after = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert after.status_code == 404

    async def test_assignee_cannot_delete(self, client: AsyncClient, alice, bob, admin):
        task = await create_task_as(client, alice)
        await assign_as(client, admin, task["id"], bob)

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))
        assert response.status_code == 403

        still_there = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(alice))
        assert still_there.status_code == 200

    async def test_stranger_delete_is_not_found(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice)
        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))
        assert response.status_code == 404

    async def test_admin_deletes_any(self, client: AsyncClient, alice, admin):
        task = await create_task_as(client, alice, tags=["a"])
        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers(admin))
        assert response.status_code == 200


class TestAssignTask:
    """Test admin assignment"""

    async def test_assignment_replaces_assignee(self, client: AsyncClient, alice, bob, carol, admin):
        task = await create_task_as(client, alice)

        first = await assign_as(client, admin, task["id"], bob)
        assert first["assignee"]["id"] == str(bob.uuid)

        second = await assign_as(client, admin, task["id"], carol)
        assert second["assignee"]["id"] == str(carol.uuid)

        lost = await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(bob))
        assert lost.status_code == 404

    async def test_non_admin_cannot_assign(self, client: AsyncClient, alice, bob):
        task = await create_task_as(client, alice)
        response = await client.post(
            f"/api/v1/tasks/{task['id']}/assign",
            json={"userId": str(bob.uuid)},
            headers=auth_headers(alice)
        )
        assert response.status_code == 403

    async def test_unknown_assignee(self, client: AsyncClient, alice, admin):
        task = await create_task_as(client, alice)
        response = await client.post(
            f"/api/v1/tasks/{task['id']}/assign",
            json={"userId": str(uuid.uuid4())},
            headers=auth_headers(admin)
        )
        assert response.status_code == 400

    async def test_unknown_task(self, client: AsyncClient, bob, admin):
        response = await client.post(
            f"/api/v1/tasks/{uuid.uuid4()}/assign",
            json={"userId": str(bob.uuid)},
            headers=auth_headers(admin)
        )
        assert response.status_code == 404

    async def test_malformed_ids(self, client: AsyncClient, bob, admin):
        response = await client.post(
            "/api/v1/tasks/nope/assign",
            json={"userId": str(bob.uuid)},
            headers=auth_headers(admin)
        )
        assert response.status_code == 400
