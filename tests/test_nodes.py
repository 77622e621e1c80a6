"""Tests for the node repository (save / load / delete).

All tests use an in-memory SQLite database with the schema initialised.
"""

from __future__ import annotations

import uuid
from typing import Generator

import pytest

from nodegraph.db.connection import get_connection
from nodegraph.db.executor import QueryExecutor
from nodegraph.db.models import Node, NodeInput
from nodegraph.db.nodes import delete_node, load_node, load_nodes, save_node
from nodegraph.db.schema import init_db
from nodegraph.errors import ConstraintError, NotFoundError, ValidationError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def db() -> Generator[QueryExecutor, None, None]:
    executor = QueryExecutor(get_connection(db_path=":memory:"))  # type: ignore[arg-type]
    init_db(executor, id_strategy="caller-supplied")
    yield executor
    executor.close()


@pytest.fixture()
def generated_db() -> Generator[QueryExecutor, None, None]:
    executor = QueryExecutor(get_connection(db_path=":memory:"))  # type: ignore[arg-type]
    init_db(executor, id_strategy="generated")
    yield executor
    executor.close()


def _save(db: QueryExecutor, node_id: str, title: str = "Node", **fields) -> None:
    save_node(db, NodeInput(id=node_id, title=title, **fields))


def _count(db: QueryExecutor, table: str) -> int:
    return db.execute(f"SELECT COUNT(*) FROM {table}").rows[0][0]


# ---------------------------------------------------------------------------
# Save + load round trip
# ---------------------------------------------------------------------------

class TestRoundTrip:
    def test_minimal_node_gets_defaults(self, db: QueryExecutor) -> None:
        result = save_node(db, NodeInput(id="n1", title="Root"))
        assert result.id == "n1"
        assert result.created is True

        node = load_node(db, "n1")
        assert node.to_dict() == {
            "id": "n1",
            "title": "Root",
            "description": None,
            "images": [],
            "audio_files": [],
            "documents": [],
            "video_links": [],
            "coordinates": None,
            "type": "normal",
            "parent_id": None,
            "position": {"dx": 0, "dy": 0},
            "super_node_id": None,
            "connections": [],
            "graphs": [],
        }

    def test_every_field_round_trips(self, db: QueryExecutor) -> None:
        _save(db, "parent", "Parent")
        _save(db, "group", "Group", type="super")
        _save(
            db,
            "n1",
            "Full",
            description="A node",
            images=["https://img/1.png", "https://img/2.png"],
            audio_files=["https://audio/a.mp3"],
            documents=["https://docs/d.pdf"],
            video_links=["https://video/v"],
            coordinates={"lat": 52.5, "lng": 13.4},
            type="image",
            parent_id="parent",
            position={"dx": 12.5, "dy": -3},
            super_node_id="group",
        )

        node = load_node(db, "n1")
        assert node.description == "A node"
        assert node.images == ["https://img/1.png", "https://img/2.png"]
        assert node.audio_files == ["https://audio/a.mp3"]
        assert node.documents == ["https://docs/d.pdf"]
        assert node.video_links == ["https://video/v"]
        assert node.coordinates == {"lat": 52.5, "lng": 13.4}
        assert node.type == "image"
        assert node.parent_id == "parent"
        assert node.position == {"dx": 12.5, "dy": -3}
        assert node.super_node_id == "group"

    def test_explicit_empty_list_reads_back_empty(self, db: QueryExecutor) -> None:
        _save(db, "n1", images=[])
        assert load_node(db, "n1").images == []

    def test_explicit_position_is_not_replaced_by_default(self, db: QueryExecutor) -> None:
        _save(db, "n1", position={"dx": 5, "dy": 5})
        assert load_node(db, "n1").position == {"dx": 5, "dy": 5}

    def test_zero_position_is_kept(self, db: QueryExecutor) -> None:
        _save(db, "n1", position={"dx": 0, "dy": 0})
        stored = db.execute("SELECT position FROM nodes WHERE id = 'n1'").rows[0][0]
        assert stored is not None
        assert load_node(db, "n1").position == {"dx": 0, "dy": 0}

    def test_present_but_empty_values_are_stored_verbatim(self, db: QueryExecutor) -> None:
        _save(db, "n1", description="", coordinates=[])
        node = load_node(db, "n1")
        assert node.description == ""
        assert node.coordinates == []

    def test_image_order_is_preserved(self, db: QueryExecutor) -> None:
        _save(db, "n1", images=["c", "a", "b"])
        assert load_node(db, "n1").images == ["c", "a", "b"]


# ---------------------------------------------------------------------------
# Save semantics
# ---------------------------------------------------------------------------

class TestSave:
    def test_missing_title_rejected_before_writing(self, db: QueryExecutor) -> None:
        with pytest.raises(ValidationError, match="title"):
            save_node(db, NodeInput(id="n1", title=None))
        assert load_nodes(db) == []

    def test_empty_title_rejected(self, db: QueryExecutor) -> None:
        with pytest.raises(ValidationError):
            save_node(db, NodeInput(id="n1", title=""))
        assert _count(db, "nodes") == 0

    def test_whitespace_title_is_stored_verbatim(self, db: QueryExecutor) -> None:
        save_node(db, NodeInput(id="n1", title="   "))
        assert load_node(db, "n1").title == "   "

    def test_upsert_overwrites_all_fields(self, db: QueryExecutor) -> None:
        _save(db, "n1", "Old", description="first", images=["x"])
        result = save_node(db, NodeInput(id="n1", title="New"))

        assert result.created is False
        node = load_node(db, "n1")
        assert node.title == "New"
        assert node.description is None
        assert node.images == []
        assert _count(db, "nodes") == 1

    def test_caller_supplied_without_id_generates_uuid(self, db: QueryExecutor) -> None:
        result = save_node(db, NodeInput(title="Anonymous"))
        assert result.created is True
        uuid.UUID(str(result.id))
        assert load_node(db, result.id).title == "Anonymous"

    def test_integer_id_stored_as_text(self, db: QueryExecutor) -> None:
        result = save_node(db, NodeInput(id=7, title="Seven"))
        assert result.id == "7"
        assert load_node(db, "7").id == "7"

    def test_missing_parent_is_constraint_error(self, db: QueryExecutor) -> None:
        with pytest.raises(ConstraintError):
            _save(db, "n1", parent_id="ghost")
        assert _count(db, "nodes") == 0

    def test_node_may_be_its_own_parent(self, db: QueryExecutor) -> None:
        _save(db, "n1", parent_id="n1")
        assert load_node(db, "n1").parent_id == "n1"


class TestConnections:
    def test_connections_are_saved(self, db: QueryExecutor) -> None:
        _save(db, "n2")
        _save(db, "n3")
        _save(db, "n1", connections=["n2", "n3"])
        assert load_node(db, "n1").connections == ["n2", "n3"]

    def test_second_save_replaces_connections(self, db: QueryExecutor) -> None:
        _save(db, "n2")
        _save(db, "n3")
        _save(db, "n1", connections=["n2", "n3"])
        _save(db, "n1", connections=["n2"])

        assert load_node(db, "n1").connections == ["n2"]
        assert _count(db, "connections") == 1

    def test_save_without_connections_clears_them(self, db: QueryExecutor) -> None:
        _save(db, "n2")
        _save(db, "n1", connections=["n2"])
        _save(db, "n1")
        assert load_node(db, "n1").connections == []

    def test_null_empty_and_duplicate_entries_are_dropped(self, db: QueryExecutor) -> None:
        _save(db, "n2")
        _save(db, "n1", connections=[None, "", "n2", "n2", None])
        assert load_node(db, "n1").connections == ["n2"]
        assert _count(db, "connections") == 1

    def test_self_loop_allowed(self, db: QueryExecutor) -> None:
        _save(db, "n1", connections=["n1"])
        assert load_node(db, "n1").connections == ["n1"]

    def test_only_outgoing_edges_are_replaced(self, db: QueryExecutor) -> None:
        _save(db, "n1")
        _save(db, "n2", connections=["n1"])
        _save(db, "n1", connections=[])
        assert load_node(db, "n2").connections == ["n1"]

    def test_missing_target_rolls_back_whole_save(self, db: QueryExecutor) -> None:
        _save(db, "n2")
        _save(db, "n1", "Before", connections=["n2"])

        with pytest.raises(ConstraintError):
            _save(db, "n1", "After", connections=["ghost"])

        node = load_node(db, "n1")
        assert node.title == "Before"
        assert node.connections == ["n2"]

    def test_missing_target_on_new_node_leaves_nothing(self, db: QueryExecutor) -> None:
        with pytest.raises(ConstraintError):
            _save(db, "n1", connections=["ghost"])
        assert load_nodes(db) == []


class TestGraphMembership:
    def test_graph_id_recorded(self, db: QueryExecutor) -> None:
        _save(db, "n1", graph_id="g1")
        assert load_node(db, "n1").graphs == ["g1"]

    def test_memberships_accumulate_across_graphs(self, db: QueryExecutor) -> None:
        _save(db, "n1", graph_id="g1")
        _save(db, "n1", graph_id="g2")
        assert load_node(db, "n1").graphs == ["g1", "g2"]

    def test_same_graph_twice_is_one_row(self, db: QueryExecutor) -> None:
        _save(db, "n1", graph_id="g1")
        _save(db, "n1", graph_id="g1")
        assert _count(db, "node_graphs") == 1

    def test_omitted_graph_id_leaves_memberships(self, db: QueryExecutor) -> None:
        _save(db, "n1", graph_id="g1")
        _save(db, "n1", "Renamed")
        assert load_node(db, "n1").graphs == ["g1"]


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------

class TestLoad:
    def test_load_one_missing_is_not_found(self, db: QueryExecutor) -> None:
        with pytest.raises(NotFoundError):
            load_node(db, "nope")

    def test_load_all_empty(self, db: QueryExecutor) -> None:
        assert load_nodes(db) == []

    def test_load_all_does_not_multiply_joined_rows(self, db: QueryExecutor) -> None:
        _save(db, "a")
        _save(db, "b")
        _save(db, "hub", connections=["a", "b"], graph_id="g1")
        _save(db, "hub", connections=["a", "b"], graph_id="g2")

        nodes = {n.id: n for n in load_nodes(db)}
        assert set(nodes) == {"a", "b", "hub"}
        assert nodes["hub"].connections == ["a", "b"]
        assert nodes["hub"].graphs == ["g1", "g2"]
        assert nodes["a"].connections == []
        assert all(isinstance(n, Node) for n in nodes.values())


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    def test_delete_cascades_connections_and_memberships(self, db: QueryExecutor) -> None:
        _save(db, "n1")
        _save(db, "n2", connections=["n1"], graph_id="g1")
        _save(db, "n3", connections=["n1", "n2"])
        _save(db, "n1", connections=["n2", "n3"], graph_id="g1")

        delete_node(db, "n1")

        nodes = {n.id: n for n in load_nodes(db)}
        assert set(nodes) == {"n2", "n3"}
        assert nodes["n2"].connections == []
        assert nodes["n3"].connections == ["n2"]
        for node in nodes.values():
            assert set(node.connections) <= set(nodes)
        assert db.execute(
            "SELECT * FROM connections WHERE source_id = 'n1' OR target_id = 'n1'"
        ).rows == []
        assert db.execute("SELECT * FROM node_graphs WHERE node_id = 'n1'").rows == []
        assert nodes["n2"].graphs == ["g1"]

    def test_delete_missing_is_not_found(self, db: QueryExecutor) -> None:
        _save(db, "n1")
        with pytest.raises(NotFoundError):
            delete_node(db, "ghost")
        assert _count(db, "nodes") == 1

    def test_delete_detaches_children(self, db: QueryExecutor) -> None:
        _save(db, "root")
        _save(db, "child", parent_id="root", super_node_id="root")

        delete_node(db, "root")

        child = load_node(db, "child")
        assert child.parent_id is None
        assert child.super_node_id is None


# ---------------------------------------------------------------------------
# Generated id strategy
# ---------------------------------------------------------------------------

class TestGeneratedIds:
    def test_store_assigns_increasing_ids(self, generated_db: QueryExecutor) -> None:
        first = save_node(generated_db, NodeInput(title="A"), id_strategy="generated")
        second = save_node(generated_db, NodeInput(title="B"), id_strategy="generated")
        assert first.id == 1
        assert second.id == 2
        assert first.created and second.created

    def test_string_ids_are_coerced(self, generated_db: QueryExecutor) -> None:
        save_node(generated_db, NodeInput(title="A"), id_strategy="generated")
        save_node(generated_db, NodeInput(title="B"), id_strategy="generated")
        result = save_node(
            generated_db,
            NodeInput(id="1", title="A2", connections=["2"], parent_id="2"),
            id_strategy="generated",
        )
        assert result.id == 1
        assert result.created is False

        node = load_node(generated_db, "1", id_strategy="generated")
        assert node.id == 1
        assert node.title == "A2"
        assert node.connections == [2]
        assert node.parent_id == 2

    def test_non_integer_id_rejected(self, generated_db: QueryExecutor) -> None:
        with pytest.raises(ValidationError):
            save_node(generated_db, NodeInput(id="abc", title="A"), id_strategy="generated")
        with pytest.raises(ValidationError):
            save_node(
                generated_db,
                NodeInput(title="A", connections=["abc"]),
                id_strategy="generated",
            )
        assert _count(generated_db, "nodes") == 0

    def test_non_integer_lookup_is_not_found(self, generated_db: QueryExecutor) -> None:
        with pytest.raises(NotFoundError):
            load_node(generated_db, "abc", id_strategy="generated")
        with pytest.raises(NotFoundError):
            delete_node(generated_db, "abc", id_strategy="generated")

    @pytest.mark.parametrize("key", ["--5", "²", "99999999999999999999", 2**63, -(2**63) - 1])
    def test_unusable_lookup_key_is_not_found(self, generated_db: QueryExecutor, key) -> None:
        with pytest.raises(NotFoundError):
            load_node(generated_db, key, id_strategy="generated")
        with pytest.raises(NotFoundError):
            delete_node(generated_db, key, id_strategy="generated")

    @pytest.mark.parametrize("field", ["id", "parent_id", "super_node_id"])
    def test_out_of_range_key_rejected_on_save(
        self, generated_db: QueryExecutor, field: str
    ) -> None:
        with pytest.raises(ValidationError, match="out of range"):
            save_node(
                generated_db,
                NodeInput(title="A", **{field: 2**63}),
                id_strategy="generated",
            )
        with pytest.raises(ValidationError, match="out of range"):
            save_node(
                generated_db,
                NodeInput(title="A", connections=["99999999999999999999"]),
                id_strategy="generated",
            )
        assert _count(generated_db, "nodes") == 0

    def test_largest_key_is_accepted(self, generated_db: QueryExecutor) -> None:
        key = 2**63 - 1
        result = save_node(generated_db, NodeInput(id=key, title="Max"), id_strategy="generated")
        assert result.id == key
        assert load_node(generated_db, str(key), id_strategy="generated").title == "Max"

    def test_delete_by_integer_id(self, generated_db: QueryExecutor) -> None:
        a = save_node(generated_db, NodeInput(title="A"), id_strategy="generated")
        save_node(
            generated_db, NodeInput(title="B", connections=[a.id]), id_strategy="generated"
        )
        delete_node(generated_db, str(a.id), id_strategy="generated")
        assert [n.title for n in load_nodes(generated_db)] == ["B"]
        assert _count(generated_db, "connections") == 0
