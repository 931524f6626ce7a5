"""Tests for the visibility / expansion state machine."""

from __future__ import annotations

import pytest

from service_flowmap.core.edge_grouping import group_interfaces
from service_flowmap.core.models import InterfaceRecord
from service_flowmap.core.visibility import VisibilityState

pytestmark = pytest.mark.unit


def build_state() -> VisibilityState:
    """X -> {Y, Z}, Y -> {W}, everything expanded."""
    state = VisibilityState("X")
    state.register_node("Y", parent_id="X")
    state.register_node("Z", parent_id="X")
    state.register_node("W", parent_id="Y")
    state.expand("Y")
    return state


class TestVisibilityState:
    def test_root_is_visible_and_expanded(self):
        state = VisibilityState("X")

        assert state.is_visible("X")
        assert state.is_expanded("X")
        assert state.visible_node_ids() == ["X"]

    def test_children_of_expanded_visible_parent_are_visible(self):
        state = build_state()

        assert state.visible_node_ids() == ["X", "Y", "Z", "W"]

    def test_collapse_hides_subtree_and_clears_expansion(self):
        """Collapsing X hides Y, Z and W, and Y's expansion flag clears."""
        state = build_state()

        state.collapse("X")

        assert state.visible_node_ids() == ["X"]
        assert not state.is_expanded("X")
        assert not state.is_expanded("Y")
        assert not state.is_visible("W")

    def test_reexpand_shows_direct_children_only(self):
        state = build_state()
        state.collapse("X")

        state.expand("X")

        assert state.visible_node_ids() == ["X", "Y", "Z"]
        assert not state.is_visible("W")

    def test_collapsing_child_keeps_siblings(self):
        state = build_state()

        state.collapse("Y")

        assert state.visible_node_ids() == ["X", "Y", "Z"]

    def test_visibility_is_transitive(self):
        """A node whose parent is expanded but hidden stays hidden."""
        state = build_state()
        state.collapse("X")
        state.expanded.add("Y")  # Y expanded while X is collapsed
        state.expand("Z")

        assert not state.is_visible("W")

    def test_first_registration_wins(self):
        state = build_state()

        assert state.register_node("W", parent_id="Z") is False
        assert state.parents["W"] == "Y"
        assert state.children("Z") == []

    def test_root_never_gets_a_parent(self):
        state = VisibilityState("X")
        state.register_node("Y", parent_id="X")

        assert state.register_node("X", parent_id="Y") is False
        assert state.parents["X"] is None

    def test_unknown_ids_are_noops(self):
        state = build_state()
        before = state.to_dict()

        state.expand("nope")
        state.collapse("nope")

        assert state.to_dict() == before
        assert not state.is_visible("nope")
        assert "nope" not in state

    def test_orphan_is_not_visible(self):
        state = VisibilityState("X")
        state.register_node("O")

        assert "O" in state
        assert not state.is_visible("O")

    def test_descendants_handles_cycles(self):
        state = VisibilityState("X")
        state.register_node("A", parent_id="X")
        state.register_node("B", parent_id="A")
        state.hierarchy.setdefault("B", {})["A"] = None

        assert state.descendants("A") == {"B"}

    def test_visible_edges_require_both_endpoints(self):
        state = build_state()
        edges = group_interfaces(
            [
                InterfaceRecord(id="1", sender_id="X", receiver_id="Y"),
                InterfaceRecord(id="2", sender_id="Y", receiver_id="W"),
                InterfaceRecord(id="3", sender_id="Z", receiver_id="X"),
            ]
        ).edges
        state.collapse("Y")

        assert [e.key for e in state.visible_edges(edges)] == ["X::Y", "X::Z"]

    def test_to_dict(self):
        state = build_state()

        data = state.to_dict()

        assert data["root_id"] == "X"
        assert data["expanded"] == ["X", "Y"]
        assert data["hierarchy"] == {"X": ["Y", "Z"], "Y": ["W"]}
