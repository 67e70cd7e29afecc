"""Tests for boards, workflows, columns and the transition chain.

Covers:
- Board creation with default and custom columns
- Column dedupe, boundary flags, palette colors, linear chain
- ensure_workflow_and_statuses never creates a workflow
- Idempotent, case-insensitive column merge
- Reorder: dense positions, new edges added, stale edges kept, stale ids ignored
- Status delete: boundary protection, in-use rejection, gap closing
- Status update / create name conflicts
- One default workflow per board (partial unique index)
"""

import itertools

import pytest
from sqlalchemy.exc import IntegrityError

from workboard.errors import Conflict, InvalidInput, InvalidOperation, NotFound
from workboard.extensions import db
from workboard.models.board import Board, Workflow, WorkflowStatus
from workboard.models.audit import AuditEvent
from workboard.services import tarefa_service, workflow_service


# ─── Helpers ───────────────────────────────────────────────

def _make_board(seed_data, columns=None, name="Board"):
    result = workflow_service.create_board_with_workflow(
        seed_data["project_id"],
        name,
        board_type="KANBAN",
        column_names=columns,
        actor_id=seed_data["admin_id"],
    )
    db.session.commit()
    return result


def _edges(workflow_id):
    return {
        (t.from_status_id, t.to_status_id)
        for t in workflow_service.list_transitions(workflow_id)
    }


def _names(workflow_id):
    return [s.name for s in workflow_service.ordered_statuses(workflow_id)]


# ─── Board creation ────────────────────────────────────────

class TestCreateBoard:

    def test_default_columns(self, seed_data):
        result = _make_board(seed_data)
        statuses = result["statuses"]
        assert [s.name for s in statuses] == ["To Do", "In Progress", "Done"]
        assert [s.position for s in statuses] == [0, 1, 2]
        assert [s.is_initial for s in statuses] == [True, False, False]
        assert [s.is_final for s in statuses] == [False, False, True]
        assert result["workflow"].is_default is True
        assert result["board"].type == "KANBAN"

    def test_chain_between_consecutive_columns(self, seed_data):
        result = _make_board(seed_data, ["Backlog", "Doing", "Review", "Done"])
        ids = [s.id for s in result["statuses"]]
        assert _edges(result["workflow"].id) == set(zip(ids, ids[1:]))

    def test_columns_deduplicated_case_insensitively(self, seed_data):
        result = _make_board(seed_data, ["To Do", " to do ", "Done", "", None, "DONE"])
        assert [s.name for s in result["statuses"]] == ["To Do", "Done"]

    def test_palette_colors_round_robin(self, seed_data):
        columns = [f"C{i}" for i in range(8)]
        result = _make_board(seed_data, columns)
        palette = workflow_service.STATUS_PALETTE
        assert [s.color for s in result["statuses"]] == [
            palette[i % len(palette)] for i in range(8)
        ]

    def test_invalid_type_falls_back_to_kanban(self, seed_data):
        result = workflow_service.create_board_with_workflow(
            seed_data["project_id"], "Odd", board_type="waterfall"
        )
        assert result["board"].type == "KANBAN"

    def test_scrum_type_kept(self, seed_data):
        result = workflow_service.create_board_with_workflow(
            seed_data["project_id"], "Sprinty", board_type="scrum"
        )
        assert result["board"].type == "SCRUM"

    def test_empty_name_rejected(self, seed_data):
        with pytest.raises(InvalidInput, match="name is required"):
            workflow_service.create_board_with_workflow(seed_data["project_id"], "  ")

    def test_unknown_project(self, seed_data):
        with pytest.raises(NotFound):
            workflow_service.create_board_with_workflow("missing", "Board")

    def test_always_creates_new_board(self, seed_data):
        first = _make_board(seed_data, name="Same")
        second = _make_board(seed_data, name="Same")
        assert first["board"].id != second["board"].id
        assert Board.query.filter_by(project_id=seed_data["project_id"]).count() == 2

    def test_audit_event_recorded(self, seed_data):
        result = _make_board(seed_data)
        event = AuditEvent.query.filter_by(action="board.created").one()
        assert event.metadata_["board_id"] == result["board"].id
        assert event.actor_user_id == seed_data["admin_id"]


class TestEnsureWorkflow:

    def test_returns_ordered_statuses(self, seed_data):
        result = _make_board(seed_data)
        data = workflow_service.ensure_workflow_and_statuses(result["board"].id)
        assert data["workflow"].id == result["workflow"].id
        assert [s.name for s in data["statuses"]] == ["To Do", "In Progress", "Done"]

    def test_missing_workflow_not_created(self, seed_data):
        board = Board(project_id=seed_data["project_id"], name="Bare", type="KANBAN")
        db.session.add(board)
        db.session.commit()

        with pytest.raises(NotFound, match="workflow missing"):
            workflow_service.ensure_workflow_and_statuses(board.id)
        assert Workflow.query.filter_by(board_id=board.id).count() == 0

    def test_second_default_workflow_rejected(self, seed_data):
        result = _make_board(seed_data)
        db.session.add(Workflow(board_id=result["board"].id, name="Dup", is_default=True))
        with pytest.raises(IntegrityError):
            db.session.flush()
        db.session.rollback()


# ─── Merge ─────────────────────────────────────────────────

class TestMergeColumns:

    def test_merge_is_idempotent(self, seed_data):
        result = _make_board(seed_data, ["To Do", "Done"])
        workflow_id = result["workflow"].id

        workflow_service.merge_columns(workflow_id, ["To Do", "to do ", "Done"])
        db.session.commit()
        workflow_service.merge_columns(workflow_id, ["To Do", "to do ", "Done"])
        db.session.commit()

        assert _names(workflow_id) == ["To Do", "Done"]

    def test_merge_appends_missing_columns(self, seed_data):
        result = _make_board(seed_data, ["To Do", "Done"])
        workflow_id = result["workflow"].id

        statuses = workflow_service.merge_columns(workflow_id, ["Review", "done", "QA", "review"])
        db.session.commit()

        assert [s.name for s in statuses] == ["To Do", "Done", "Review", "QA"]
        assert [s.position for s in statuses] == [0, 1, 2, 3]
        review, qa = statuses[2], statuses[3]
        assert not review.is_initial and not review.is_final
        assert not qa.is_initial and not qa.is_final
        # Boundary flags are fixed at creation
        assert statuses[1].is_final is True
        assert review.color == workflow_service.STATUS_PALETTE[2]

    def test_merge_extends_chain_without_removing(self, seed_data):
        result = _make_board(seed_data, ["To Do", "Done"])
        workflow_id = result["workflow"].id
        before = _edges(workflow_id)

        statuses = workflow_service.merge_columns(workflow_id, ["Review"])
        db.session.commit()

        ids = [s.id for s in statuses]
        after = _edges(workflow_id)
        assert before <= after
        assert set(zip(ids, ids[1:])) <= after

    def test_merge_never_renames(self, seed_data):
        result = _make_board(seed_data, ["To Do", "Done"])
        workflow_service.merge_columns(result["workflow"].id, ["TO DO", "DONE"])
        db.session.commit()
        assert _names(result["workflow"].id) == ["To Do", "Done"]

    def test_merge_unknown_workflow(self, seed_data):
        with pytest.raises(NotFound):
            workflow_service.merge_columns("missing", ["A"])

    def test_duplicate_name_key_rejected_by_constraint(self, seed_data):
        result = _make_board(seed_data, ["To Do", "Done"])
        db.session.add(WorkflowStatus(
            workflow_id=result["workflow"].id,
            name="to do",
            name_key="to do",
            position=5,
        ))
        with pytest.raises(IntegrityError):
            db.session.flush()
        db.session.rollback()


# ─── Reorder ───────────────────────────────────────────────

class TestReorderStatuses:

    @pytest.mark.parametrize("order", list(itertools.permutations(range(4))))
    def test_positions_dense_and_new_neighbours_linked(self, seed_data, order):
        result = _make_board(seed_data, ["A", "B", "C", "D"])
        workflow_id = result["workflow"].id
        ids = [s.id for s in result["statuses"]]
        before = _edges(workflow_id)

        wanted = [ids[i] for i in order]
        workflow_service.reorder_statuses(workflow_id, wanted)
        db.session.commit()

        statuses = workflow_service.ordered_statuses(workflow_id)
        assert [s.id for s in statuses] == wanted
        assert [s.position for s in statuses] == [0, 1, 2, 3]
        after = _edges(workflow_id)
        assert set(zip(wanted, wanted[1:])) <= after
        # Additive only
        assert before <= after

    def test_boundary_flags_untouched(self, seed_data):
        result = _make_board(seed_data, ["A", "B", "C"])
        ids = [s.id for s in result["statuses"]]
        workflow_service.reorder_statuses(result["workflow"].id, list(reversed(ids)))
        db.session.commit()

        statuses = workflow_service.ordered_statuses(result["workflow"].id)
        assert [s.name for s in statuses] == ["C", "B", "A"]
        assert statuses[0].is_final is True
        assert statuses[2].is_initial is True

    def test_stale_ids_ignored_and_missing_appended(self, seed_data):
        result = _make_board(seed_data, ["A", "B", "C"])
        a, b, c = [s.id for s in result["statuses"]]

        statuses = workflow_service.reorder_statuses(
            result["workflow"].id, [c, "deleted-status", c, a]
        )
        db.session.commit()

        assert [s.id for s in statuses] == [c, a, b]
        assert [s.position for s in statuses] == [0, 1, 2]

    def test_retry_is_harmless(self, seed_data):
        result = _make_board(seed_data, ["A", "B", "C"])
        a, b, c = [s.id for s in result["statuses"]]
        workflow_id = result["workflow"].id

        workflow_service.reorder_statuses(workflow_id, [b, a, c])
        db.session.commit()
        edges = _edges(workflow_id)
        workflow_service.reorder_statuses(workflow_id, [b, a, c])
        db.session.commit()

        assert _edges(workflow_id) == edges
        assert _names(workflow_id) == ["B", "A", "C"]

    def test_empty_order_rejected(self, seed_data):
        result = _make_board(seed_data)
        with pytest.raises(InvalidInput):
            workflow_service.reorder_statuses(result["workflow"].id, [])

    def test_only_unknown_ids_rejected(self, seed_data):
        result = _make_board(seed_data)
        with pytest.raises(InvalidInput, match="None of the given statuses"):
            workflow_service.reorder_statuses(result["workflow"].id, ["nope"])


# ─── Status CRUD ───────────────────────────────────────────

class TestStatusCrud:

    def test_boundary_statuses_cannot_be_deleted(self, seed_data):
        result = _make_board(seed_data)
        workflow_id = result["workflow"].id
        first, _, last = result["statuses"]
        edges = _edges(workflow_id)

        for status in (first, last):
            with pytest.raises(InvalidOperation, match="permanent"):
                workflow_service.delete_status(workflow_id, status.id)

        assert _names(workflow_id) == ["To Do", "In Progress", "Done"]
        assert _edges(workflow_id) == edges

    def test_delete_middle_status_closes_gap(self, seed_data):
        result = _make_board(seed_data, ["A", "B", "C", "D"])
        workflow_id = result["workflow"].id
        a, b, c, d = [s.id for s in result["statuses"]]

        workflow_service.delete_status(workflow_id, b)
        db.session.commit()

        statuses = workflow_service.ordered_statuses(workflow_id)
        assert [s.name for s in statuses] == ["A", "C", "D"]
        assert [s.position for s in statuses] == [0, 1, 2]
        edges = _edges(workflow_id)
        assert all(b not in edge for edge in edges)
        assert (a, c) in edges

    def test_delete_status_in_use_rejected(self, seed_data):
        result = _make_board(seed_data)
        middle = result["statuses"][1]
        tarefa_service.create_tarefa(
            seed_data["project_id"],
            seed_data["admin_id"],
            "Busy",
            board_id=result["board"].id,
            status_id=middle.id,
        )
        db.session.commit()

        with pytest.raises(InvalidOperation, match="while tasks are in it"):
            workflow_service.delete_status(result["workflow"].id, middle.id)

    def test_delete_status_of_other_workflow(self, seed_data):
        first = _make_board(seed_data, ["A", "B", "C"])
        second = _make_board(seed_data, ["X", "Y", "Z"])
        with pytest.raises(NotFound):
            workflow_service.delete_status(first["workflow"].id, second["statuses"][1].id)

    def test_update_status_name_and_color(self, seed_data):
        result = _make_board(seed_data)
        status = workflow_service.update_status(
            result["workflow"].id, result["statuses"][1].id, name="Doing", color="#123ABC"
        )
        db.session.commit()
        assert status.name == "Doing"
        assert status.name_key == "doing"
        assert status.color == "#123ABC"

    def test_update_status_name_clash(self, seed_data):
        result = _make_board(seed_data)
        with pytest.raises(Conflict):
            workflow_service.update_status(
                result["workflow"].id, result["statuses"][1].id, name=" done "
            )

    def test_update_status_bad_color(self, seed_data):
        result = _make_board(seed_data)
        with pytest.raises(InvalidInput, match="Invalid color"):
            workflow_service.update_status(
                result["workflow"].id, result["statuses"][1].id, color="red"
            )

    def test_create_status_appends_and_links(self, seed_data):
        result = _make_board(seed_data, ["A", "B"])
        status = workflow_service.create_status(result["workflow"].id, "C")
        db.session.commit()
        assert status.position == 2
        assert (result["statuses"][1].id, status.id) in _edges(result["workflow"].id)

    def test_create_status_duplicate(self, seed_data):
        result = _make_board(seed_data, ["A", "B"])
        with pytest.raises(Conflict, match="already exists"):
            workflow_service.create_status(result["workflow"].id, " a ")


# ─── Board update / delete ─────────────────────────────────

class TestBoardUpdateDelete:

    def test_update_board(self, seed_data):
        result = _make_board(seed_data)
        board = workflow_service.update_board(
            result["board"].id, name="Renamed", board_type="scrum", description="desc"
        )
        db.session.commit()
        assert (board.name, board.type, board.description) == ("Renamed", "SCRUM", "desc")

    def test_update_board_bad_type(self, seed_data):
        result = _make_board(seed_data)
        with pytest.raises(InvalidInput, match="Invalid board type"):
            workflow_service.update_board(result["board"].id, board_type="waterfall")

    def test_delete_board_removes_workflow_and_tasks(self, seed_data):
        result = _make_board(seed_data)
        tarefa = tarefa_service.create_tarefa(
            seed_data["project_id"], seed_data["admin_id"], "On board",
            board_id=result["board"].id,
        )
        db.session.commit()
        tarefa_id = tarefa.id

        workflow_service.delete_board(result["board"].id, actor_id=seed_data["admin_id"])
        db.session.commit()

        assert Workflow.query.filter_by(board_id=result["board"].id).count() == 0
        assert tarefa_service.list_tarefas(seed_data["project_id"]) == []
        with pytest.raises(NotFound):
            tarefa_service.get_tarefa(tarefa_id)
