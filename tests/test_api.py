"""Tests for the JSON API — auth, role enforcement and the main flows.

Covers:
- Login / me / logout, JSON 401 when logged out
- Role enforcement: viewers read, developers edit tasks, elevated roles
  change structure, outsiders are refused
- Error taxonomy surfaced as {"error": kind, "message": ...}
- Board view, moves, status reorder, sprints, backlog, plan import
"""

import pytest

from workboard.errors import Forbidden
from workboard.extensions import db
from workboard.services import tarefa_service, workflow_service
from workboard.services.permission_service import (
    ELEVATED_ROLES,
    get_project_role,
    require_role,
)


# ─── Helpers ───────────────────────────────────────────────

def _login(client, seed_data, who):
    resp = client.post("/auth/login", json={
        "email": seed_data[who].email,
        "password": seed_data["password"],
    })
    assert resp.status_code == 200, resp.get_json()
    return resp


def _board(seed_data, columns=("To Do", "In Progress", "Done")):
    result = workflow_service.create_board_with_workflow(
        seed_data["project_id"], "Main", column_names=list(columns)
    )
    db.session.commit()
    return {
        "board_id": result["board"].id,
        "workflow_id": result["workflow"].id,
        "status_ids": [s.id for s in result["statuses"]],
    }


# ─── Auth ──────────────────────────────────────────────────

class TestAuth:

    def test_login_and_me(self, client, seed_data):
        _login(client, seed_data, "dev")
        resp = client.get("/auth/me")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["user"]["email"] == "dev@workboard.test"
        assert data["memberships"] == [{"project_id": seed_data["project_id"], "role": "developer"}]

    def test_bad_password(self, client, seed_data):
        resp = client.post("/auth/login", json={"email": "dev@workboard.test", "password": "nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "unauthorized"

    def test_missing_fields(self, client, seed_data):
        resp = client.post("/auth/login", json={"email": ""})
        assert resp.status_code == 400

    def test_form_login(self, client, seed_data):
        resp = client.post("/auth/login", data={
            "email": "DEV@workboard.test",
            "password": seed_data["password"],
        })
        assert resp.status_code == 200

    def test_deactivated_user(self, client, seed_data):
        seed_data["viewer"].is_active = False
        db.session.commit()
        resp = client.post("/auth/login", json={
            "email": "viewer@workboard.test",
            "password": seed_data["password"],
        })
        assert resp.status_code == 403

    def test_logged_out_gets_json_401(self, client, seed_data):
        resp = client.get(f"/api/projects/{seed_data['project_id']}/boards")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "unauthorized", "message": "Login required."}

    def test_logout(self, client, seed_data):
        _login(client, seed_data, "dev")
        assert client.post("/auth/logout").status_code == 200
        assert client.get("/auth/me").status_code == 401

    def test_csrf_token_endpoint(self, client, seed_data):
        resp = client.get("/auth/login")
        assert resp.status_code == 200
        assert resp.get_json()["csrf_token"]


# ─── Roles ─────────────────────────────────────────────────

class TestRoles:

    def test_viewer_reads_but_cannot_write(self, client, seed_data):
        _board(seed_data)
        _login(client, seed_data, "viewer")
        assert client.get(f"/api/projects/{seed_data['project_id']}/boards").status_code == 200

        resp = client.post(f"/api/projects/{seed_data['project_id']}/tarefas", json={"title": "Nope"})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "forbidden"

    def test_developer_cannot_change_structure(self, client, seed_data):
        board = _board(seed_data)
        _login(client, seed_data, "dev")

        resp = client.post(f"/api/projects/{seed_data['project_id']}/boards", json={"name": "Mine"})
        assert resp.status_code == 403
        resp = client.post(
            f"/api/workflows/{board['workflow_id']}/statuses/reorder",
            json={"status_ids": list(reversed(board["status_ids"]))},
        )
        assert resp.status_code == 403
        resp = client.post(f"/api/projects/{seed_data['project_id']}/plans/import", json={
            "type": "task_plan", "tasks": [{"title": "A"}],
        })
        assert resp.status_code == 403

    @pytest.mark.parametrize("who", ["admin", "lead"])
    def test_elevated_roles_create_boards(self, client, seed_data, who):
        _login(client, seed_data, who)
        resp = client.post(f"/api/projects/{seed_data['project_id']}/boards", json={
            "name": "Delivery",
            "type": "SCRUM",
            "columns": ["Backlog", "Doing", "Done"],
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["board"]["type"] == "SCRUM"
        assert [s["name"] for s in data["workflow"]["statuses"]] == ["Backlog", "Doing", "Done"]
        assert len(data["workflow"]["transitions"]) == 2

    def test_only_admin_deletes_boards(self, client, seed_data):
        board = _board(seed_data)
        _login(client, seed_data, "lead")
        assert client.delete(f"/api/boards/{board['board_id']}").status_code == 403
        _login(client, seed_data, "admin")
        assert client.delete(f"/api/boards/{board['board_id']}").status_code == 200
        assert client.get(f"/api/boards/{board['board_id']}").status_code == 404

    def test_outsider_refused(self, client, seed_data):
        board = _board(seed_data)
        _login(client, seed_data, "outsider")
        assert client.get(f"/api/boards/{board['board_id']}/view").status_code == 403
        assert client.get(f"/api/projects/{seed_data['project_id']}/tarefas").status_code == 403

    def test_unknown_resources_404(self, client, seed_data):
        _login(client, seed_data, "admin")
        assert client.get("/api/boards/missing").status_code == 404
        assert client.get("/api/projects/missing/boards").status_code == 404
        resp = client.put("/api/tarefas/missing/move", json={"status_id": "x"})
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "not_found"


class TestProjectRoles:

    def test_member_roles(self, seed_data):
        project_id = seed_data["project_id"]
        assert get_project_role(seed_data["lead_id"], project_id) == "tech_lead"
        assert get_project_role(seed_data["viewer_id"], project_id) == "viewer"
        assert get_project_role(seed_data["outsider_id"], project_id) is None

    def test_creator_is_admin_without_membership(self, seed_data):
        assert get_project_role(seed_data["outsider_id"], seed_data["other_project_id"]) == "admin"

    def test_require_role(self, seed_data):
        assert require_role(seed_data["admin_id"], seed_data["project_id"], ELEVATED_ROLES) == "admin"
        with pytest.raises(Forbidden):
            require_role(seed_data["dev_id"], seed_data["project_id"], ELEVATED_ROLES)


# ─── Flows ─────────────────────────────────────────────────

class TestTarefaFlow:

    def test_create_move_and_view(self, client, seed_data):
        board = _board(seed_data)
        _login(client, seed_data, "dev")

        resp = client.post(f"/api/projects/{seed_data['project_id']}/tarefas", json={
            "title": "Write docs",
            "board_id": board["board_id"],
            "priority": "high",
        })
        assert resp.status_code == 201
        tarefa = resp.get_json()
        assert tarefa["key"] == "PROJ-1"
        assert tarefa["status_id"] == board["status_ids"][0]

        # Free-form move straight to the last column
        resp = client.put(f"/api/tarefas/{tarefa['id']}/move", json={"status_id": board["status_ids"][2]})
        assert resp.status_code == 200
        assert resp.get_json()["status_id"] == board["status_ids"][2]

        view = client.get(f"/api/boards/{board['board_id']}/view").get_json()
        assert [c["status"]["name"] for c in view["columns"]] == ["To Do", "In Progress", "Done"]
        assert [t["key"] for t in view["columns"][2]["tarefas"]] == ["PROJ-1"]
        assert view["columns"][0]["allowed_transitions"] == [board["status_ids"][1]]
        assert view["columns"][2]["allowed_transitions"] == []

    def test_move_to_foreign_status_is_invalid_operation(self, client, seed_data):
        board = _board(seed_data)
        other = _board(seed_data)
        tarefa = tarefa_service.create_tarefa(
            seed_data["project_id"], seed_data["dev_id"], "T", board_id=board["board_id"]
        )
        db.session.commit()

        _login(client, seed_data, "dev")
        resp = client.put(f"/api/tarefas/{tarefa.id}/move", json={"status_id": other["status_ids"][1]})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_operation"

    def test_update_comment_activity(self, client, seed_data):
        _login(client, seed_data, "dev")
        tarefa = client.post(
            f"/api/projects/{seed_data['project_id']}/tarefas", json={"title": "T"}
        ).get_json()

        resp = client.put(f"/api/tarefas/{tarefa['id']}", json={"title": "Renamed", "labels": ["x"]})
        assert resp.get_json()["title"] == "Renamed"
        resp = client.post(f"/api/tarefas/{tarefa['id']}/comments", json={"content": "Done?"})
        assert resp.status_code == 201

        activity = client.get(f"/api/tarefas/{tarefa['id']}/activity").get_json()
        assert {(a["action"], a["field_name"]) for a in activity} == {
            ("created", None),
            ("updated", "title"),
            ("updated", "labels"),
            ("commented", None),
        }
        comments = client.get(f"/api/tarefas/{tarefa['id']}/comments").get_json()
        assert [c["content"] for c in comments] == ["Done?"]

    def test_unknown_update_field(self, client, seed_data):
        _login(client, seed_data, "dev")
        tarefa = client.post(
            f"/api/projects/{seed_data['project_id']}/tarefas", json={"title": "T"}
        ).get_json()
        resp = client.put(f"/api/tarefas/{tarefa['id']}", json={"key": "PROJ-9"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_input"

    def test_developer_cannot_delete(self, client, seed_data):
        _login(client, seed_data, "dev")
        tarefa = client.post(
            f"/api/projects/{seed_data['project_id']}/tarefas", json={"title": "T"}
        ).get_json()
        assert client.delete(f"/api/tarefas/{tarefa['id']}").status_code == 403
        _login(client, seed_data, "lead")
        assert client.delete(f"/api/tarefas/{tarefa['id']}").status_code == 200


class TestWorkflowFlow:

    def test_reorder_and_delete_status(self, client, seed_data):
        board = _board(seed_data, ("A", "B", "C", "D"))
        a, b, c, d = board["status_ids"]
        _login(client, seed_data, "lead")

        resp = client.post(
            f"/api/workflows/{board['workflow_id']}/statuses/reorder",
            json={"status_ids": [a, c, b, d]},
        )
        assert resp.status_code == 200
        assert [s["position"] for s in resp.get_json()] == [0, 1, 2, 3]

        resp = client.delete(f"/api/workflows/{board['workflow_id']}/statuses/{a}")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_operation"

        resp = client.delete(f"/api/workflows/{board['workflow_id']}/statuses/{c}")
        assert resp.status_code == 200

        data = client.get(f"/api/boards/{board['board_id']}").get_json()
        assert [s["name"] for s in data["workflow"]["statuses"]] == ["A", "B", "D"]

    def test_merge_and_create_status(self, client, seed_data):
        board = _board(seed_data, ("To Do", "Done"))
        _login(client, seed_data, "lead")

        resp = client.post(
            f"/api/workflows/{board['workflow_id']}/columns/merge",
            json={"columns": ["to do", "Review"]},
        )
        assert [s["name"] for s in resp.get_json()["statuses"]] == ["To Do", "Done", "Review"]

        resp = client.post(f"/api/workflows/{board['workflow_id']}/statuses", json={"name": "review"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "conflict"

        resp = client.post(
            f"/api/workflows/{board['workflow_id']}/statuses",
            json={"name": "QA", "color": "#000000"},
        )
        assert resp.status_code == 201
        status_id = resp.get_json()["id"]

        resp = client.put(
            f"/api/workflows/{board['workflow_id']}/statuses/{status_id}",
            json={"name": "Quality"},
        )
        assert resp.get_json()["name"] == "Quality"


class TestSprintFlow:

    def test_sprint_lifecycle_and_backlog(self, client, seed_data):
        board = _board(seed_data)
        _login(client, seed_data, "lead")

        sprint = client.post(f"/api/projects/{seed_data['project_id']}/sprints", json={
            "name": "Sprint 1",
            "board_id": board["board_id"],
        }).get_json()
        assert sprint["state"] == "PLANNED"

        resp = client.post(f"/api/sprints/{sprint['id']}/complete")
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "invalid_state"

        tarefas = [
            client.post(f"/api/projects/{seed_data['project_id']}/tarefas", json={
                "title": title, "board_id": board["board_id"],
            }).get_json()
            for title in ("One", "Two", "Three")
        ]
        resp = client.post(f"/api/tarefas/{tarefas[0]['id']}/sprint", json={"sprint_id": sprint["id"]})
        assert resp.get_json()["sprint_id"] == sprint["id"]

        backlog = client.get(f"/api/projects/{seed_data['project_id']}/backlog").get_json()
        assert {t["title"] for t in backlog} == {"Two", "Three"}

        resp = client.post(
            f"/api/projects/{seed_data['project_id']}/backlog/reorder",
            json={"tarefa_ids": [tarefas[2]["id"], tarefas[1]["id"]]},
        )
        assert [t["title"] for t in resp.get_json()] == ["Three", "Two"]
        backlog = client.get(f"/api/projects/{seed_data['project_id']}/backlog").get_json()
        assert [t["title"] for t in backlog] == ["Three", "Two"]

        assert client.post(f"/api/sprints/{sprint['id']}/start").get_json()["state"] == "ACTIVE"
        resp = client.post(f"/api/sprints/{sprint['id']}/complete")
        data = resp.get_json()
        assert data["state"] == "COMPLETED"
        assert data["returned_to_backlog"] == 1

        sprints = client.get(f"/api/projects/{seed_data['project_id']}/sprints?state=COMPLETED").get_json()
        assert [s["id"] for s in sprints] == [sprint["id"]]

    def test_update_sprint_dates_validated(self, client, seed_data):
        _login(client, seed_data, "admin")
        sprint = client.post(f"/api/projects/{seed_data['project_id']}/sprints", json={
            "name": "S", "start_date": "2026-05-10",
        }).get_json()
        resp = client.put(f"/api/sprints/{sprint['id']}", json={"end_date": "2026-05-01"})
        assert resp.status_code == 400
        resp = client.put(f"/api/sprints/{sprint['id']}", json={"end_date": "2026-05-24"})
        assert resp.get_json()["end_date"] == "2026-05-24"


class TestPlanImportApi:

    def test_import_plan(self, client, seed_data):
        _login(client, seed_data, "lead")
        resp = client.post(f"/api/projects/{seed_data['project_id']}/plans/import", json={
            "type": "task_plan",
            "board": {"mode": "new", "name": "Sprint Plan", "columns": ["To Do", "Done"]},
            "tasks": [{"title": "A"}, {"title": "B", "column": "Done"}],
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert [t["key"] for t in data["created_tasks"]] == ["PROJ-1", "PROJ-2"]
        assert data["board_label"] == "Sprint Plan"

    def test_wrapped_plan_accepted(self, client, seed_data):
        _login(client, seed_data, "admin")
        resp = client.post(f"/api/projects/{seed_data['project_id']}/plans/import", json={
            "plan": {"type": "task_plan", "tasks": [{"title": "A"}]},
        })
        assert resp.status_code == 201

    def test_invalid_plan_is_422(self, client, seed_data):
        _login(client, seed_data, "lead")
        resp = client.post(f"/api/projects/{seed_data['project_id']}/plans/import", json={
            "type": "task_plan", "tasks": [{"title": ""}],
        })
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["error"] == "invalid_plan"
        assert body["message"]


class TestAuditApi:

    def test_audit_trail(self, client, seed_data):
        _login(client, seed_data, "lead")
        client.post(f"/api/projects/{seed_data['project_id']}/plans/import", json={
            "type": "task_plan", "tasks": [{"title": "A"}, {"title": "B"}],
        })

        resp = client.get(f"/api/projects/{seed_data['project_id']}/audit?action=plan.imported")
        assert resp.status_code == 200
        events = resp.get_json()
        assert len(events) == 1
        assert events[0]["metadata"]["created_count"] == 2
        assert events[0]["actor_user_id"] == seed_data["lead_id"]

        actions = {e["action"] for e in client.get(
            f"/api/projects/{seed_data['project_id']}/audit"
        ).get_json()}
        assert {"board.created", "plan.imported"} <= actions

    def test_audit_needs_elevated_role(self, client, seed_data):
        _login(client, seed_data, "dev")
        resp = client.get(f"/api/projects/{seed_data['project_id']}/audit")
        assert resp.status_code == 403
