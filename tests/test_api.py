from __future__ import annotations

from fastapi.testclient import TestClient

from taskboard.app import app
from taskboard.services.auth_service import Session


TASK_ROW = {
    "id": 4,
    "title": "Launch",
    "description": "Kickoff",
    "due_date": "2026-11-01",
    "priority": "HIGH",
    "status": "TO DO",
    "created_by": "user-1",
    "project_id": 3,
    "tasks_assigned_users": [{"user_id": "user-2", "profiles": {"id": "user-2", "username": "bo"}}],
}


def test_requests_without_token_are_rejected(fake_supabase):
    response = TestClient(app).get("/projects")
    assert response.status_code == 401


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["endpoints"]["tasks"] == "/tasks"


def test_magic_link_requires_valid_email(client, fake_supabase):
    assert client.post("/auth/magic-link", data={"email": "nope"}).status_code == 400

    response = client.post("/auth/magic-link", data={"email": "ada@example.com"})

    assert response.status_code == 200
    assert fake_supabase.auth.sign_in_with_otp.call_count == 1


def test_create_task_blank_form_returns_every_error(client, fake_supabase):
    response = client.post("/tasks", data={"title": "   "})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["errors"] == {
        "title": "Title is required.",
        "description": "Description is required.",
        "project_id": "Project is required.",
        "due_date": "Due date is required.",
    }
    assert detail["values"]["title"] == "   "
    assert fake_supabase.queries == []


def test_create_task_persists_coerced_fields_and_assignee(client, fake_supabase):
    fake_supabase.queue("tasks", data=[{"id": 11, "title": "Launch"}])

    response = client.post("/tasks", data={
        "title": " Launch ",
        "description": "Kickoff",
        "due_date": "2026-11-01",
        "priority": "HIGH",
        "project_id": "3",
        "assigned_user": "user-2",
    })

    assert response.status_code == 201
    (payload,) = fake_supabase.queries_for("tasks")[0].args_for("insert")[0]
    assert payload == {
        "title": "Launch",
        "description": "Kickoff",
        "due_date": "2026-11-01",
        "priority": "HIGH",
        "status": "TO DO",
        "project_id": 3,
        "created_by": "user-1",
    }
    clear, insert = fake_supabase.queries_for("tasks_assigned_users")
    assert "delete" in clear.methods
    assert insert.args_for("insert") == [({"task_id": 11, "user_id": "user-2"},)]


def test_create_task_rejects_unknown_priority(client):
    response = client.post("/tasks", data={"title": "t", "priority": "URGENT"})
    assert response.status_code == 400


def test_list_tasks_filters_and_flags_editable_rows(client, fake_supabase):
    fake_supabase.queue("tasks", data=[TASK_ROW, {**TASK_ROW, "id": 5, "created_by": "user-9"}], count=7)

    response = client.get("/tasks", params={
        "search": "launch",
        "status": "TO DO",
        "priority": "HIGH",
        "project_id": 3,
        "assigned_to": "user-2",
        "page": 2,
        "page_size": 5,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 7
    assert body["total_pages"] == 2
    assert [item["can_edit"] for item in body["items"]] == [True, False]
    query = fake_supabase.queries_for("tasks")[0]
    assert query.args_for("range") == [(5, 9)]
    assert ("status", "TO DO") in query.args_for("eq")


def test_list_tasks_rejects_unknown_status(client):
    assert client.get("/tasks", params={"status": "BLOCKED"}).status_code == 400


def test_manager_sees_every_task_as_editable(client, fake_supabase, login):
    login(Session(user_id="user-9", email=None, role="Project manager"))
    fake_supabase.queue("tasks", data=[TASK_ROW], count=1)

    body = client.get("/tasks").json()

    assert body["items"][0]["can_edit"] is True


def test_update_task_forbidden_for_other_users(client, fake_supabase, login):
    login(Session(user_id="user-9", email=None, role="User"))
    fake_supabase.queue("tasks", data=[TASK_ROW])

    response = client.put("/tasks/4", data={"status": "DONE"})

    assert response.status_code == 403


def test_update_task_merges_submitted_fields_into_current_row(client, fake_supabase, login):
    login(Session(user_id="user-9", email=None, role="Administrator"))
    fake_supabase.queue("tasks", data=[TASK_ROW])

    response = client.put("/tasks/4", data={"status": "DONE"})

    assert response.status_code == 200
    get_query, update_query = fake_supabase.queries_for("tasks")
    (payload,) = update_query.args_for("update")[0]
    assert payload == {
        "title": "Launch",
        "description": "Kickoff",
        "due_date": "2026-11-01",
        "priority": "HIGH",
        "status": "DONE",
        "project_id": 3,
    }
    assert update_query.args_for("eq") == [("id", 4)]
    _, insert = fake_supabase.queries_for("tasks_assigned_users")
    assert insert.args_for("insert") == [({"task_id": 4, "user_id": "user-2"},)]


def test_update_task_with_blank_required_field_is_422(client, fake_supabase):
    fake_supabase.queue("tasks", data=[TASK_ROW])

    response = client.put("/tasks/4", data={"description": "  "})

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {"description": "Description is required."}
    assert len(fake_supabase.queries_for("tasks")) == 1


def test_delete_missing_task_is_404(client, fake_supabase):
    fake_supabase.queue("tasks", data=[])
    assert client.delete("/tasks/99").status_code == 404


def test_delete_task_clears_assignments_then_task(client, fake_supabase):
    fake_supabase.queue("tasks", data=[TASK_ROW])

    assert client.delete("/tasks/4").status_code == 200
    assert [q.table for q in fake_supabase.queries] == ["tasks", "tasks_assigned_users", "tasks"]


def test_create_project_requires_title(client, fake_supabase):
    response = client.post("/projects", data={"description": "No title"})

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {"title": "Title is required."}


def test_create_project(client, fake_supabase):
    fake_supabase.queue("projects", data=[{"id": 1, "title": "Roadmap"}])

    response = client.post("/projects", data={"title": "Roadmap ", "description": "Q4"})

    assert response.status_code == 201
    assert fake_supabase.queries_for("projects")[0].args_for("insert") == [
        ({"title": "Roadmap", "description": "Q4", "created_by": "user-1"},)
    ]


def test_list_projects_marks_only_own_projects_editable(client, fake_supabase):
    fake_supabase.queue("projects", data=[{"id": 1, "created_by": "user-1"}, {"id": 2, "created_by": "user-2"}], count=2)

    body = client.get("/projects", params={"search": "road"}).json()

    assert [p["can_edit"] for p in body["items"]] == [True, False]
    assert body["total_pages"] == 1


def test_only_creator_can_update_project(client, fake_supabase, login):
    project = {"id": 1, "title": "Roadmap", "description": "Q4", "created_by": "user-1"}
    login(Session(user_id="user-2", email=None, role="Administrator"))
    fake_supabase.queue("projects", data=[project])

    assert client.put("/projects/1", data={"title": "Mine now"}).status_code == 403


def test_update_project(client, fake_supabase):
    fake_supabase.queue("projects", data=[{"id": 1, "title": "Roadmap", "description": "Q4", "created_by": "user-1"}])

    response = client.put("/projects/1", data={"description": "Q1"})

    assert response.status_code == 200
    _, update_query = fake_supabase.queries_for("projects")
    assert update_query.args_for("update") == [({"title": "Roadmap", "description": "Q1"},)]


def test_administrator_can_change_role(client, fake_supabase, login):
    login(Session(user_id="user-1", email=None, role="Administrator"))
    fake_supabase.queue("profiles", data=[{"id": "user-1", "username": "ada", "role": "Administrator"}])
    fake_supabase.queue("profiles", data=[{"id": "user-1", "username": "ada", "role": "Project manager"}])

    response = client.put("/account", data={"role": "Project manager"})

    assert response.status_code == 200
    (payload,) = fake_supabase.queries_for("profiles")[1].args_for("upsert")[0]
    assert payload["id"] == "user-1"
    assert payload["username"] == "ada"
    assert payload["role"] == "Project manager"


def test_user_cannot_promote_themselves(client, fake_supabase):
    fake_supabase.queue("profiles", data=[{"id": "user-1", "username": "ada", "role": "User"}])

    response = client.put("/account", data={"role": "Administrator"})

    assert response.status_code == 403
    assert len(fake_supabase.queries_for("profiles")) == 1


def test_user_can_rename_and_keeps_role(client, fake_supabase):
    fake_supabase.queue("profiles", data=[{"id": "user-1", "username": "ada", "role": "User"}])

    response = client.put("/account", data={"username": "Ada L", "role": "User"})

    assert response.status_code == 200
    (payload,) = fake_supabase.queries_for("profiles")[1].args_for("upsert")[0]
    assert payload["username"] == "Ada L"
    assert payload["role"] == "User"


def test_update_task_with_empty_assignee_unassigns(client, fake_supabase):
    fake_supabase.queue("tasks", data=[TASK_ROW])

    response = client.put("/tasks/4", data={"assigned_user": ""})

    assert response.status_code == 200
    (clear,) = fake_supabase.queries_for("tasks_assigned_users")
    assert clear.methods == ["delete", "eq", "execute"]
    assert clear.args_for("eq") == [("task_id", 4)]


def test_update_task_without_assignee_field_keeps_assignee(client, fake_supabase):
    fake_supabase.queue("tasks", data=[TASK_ROW])

    assert client.put("/tasks/4", data={"title": "Relaunch"}).status_code == 200
    _, insert = fake_supabase.queries_for("tasks_assigned_users")
    assert insert.args_for("insert") == [({"task_id": 4, "user_id": "user-2"},)]


def test_update_project_can_clear_description(client, fake_supabase):
    fake_supabase.queue("projects", data=[{"id": 1, "title": "Roadmap", "description": "old", "created_by": "user-1"}])

    response = client.put("/projects/1", data={"description": ""})

    assert response.status_code == 200
    _, update_query = fake_supabase.queries_for("projects")
    assert update_query.args_for("update") == [({"title": "Roadmap", "description": ""},)]


def test_update_account_requires_name(client, fake_supabase):
    response = client.put("/account", data={"role": "User"})

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {"username": "Name is required."}


def test_update_account_rejects_unknown_role(client):
    assert client.put("/account", data={"username": "ada", "role": "Owner"}).status_code == 400


def test_health_reports_unhealthy_without_config(client, monkeypatch):
    from taskboard.core.config import Config

    monkeypatch.setattr(Config, "SUPABASE_URL", "")

    body = client.get("/health").json()

    assert body["status"] == "unhealthy"


def test_sign_out_revokes_current_token(client, fake_supabase):
    response = client.post("/auth/sign-out")

    assert response.status_code == 200
    fake_supabase.auth.admin.sign_out.assert_called_once_with("token-1")
