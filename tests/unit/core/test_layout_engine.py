"""Tests for the radial layout engine."""

from __future__ import annotations

import math

import pytest

from service_flowmap.config.settings import LayoutConfig
from service_flowmap.core.layout_engine import (
    calculate_hierarchical_layout,
    calculate_radial_layout,
    child_ring_radius,
    place_on_ring,
    ring_radius,
)
from service_flowmap.core.models import FlowNode, Position, ServiceRecord

pytestmark = pytest.mark.unit


def make_node(node_id: str, parent_id: str | None = None, **kwargs) -> FlowNode:
    return FlowNode.from_record(ServiceRecord(id=node_id, name=node_id), parent_id).model_copy(
        update=kwargs
    )


def angle_deg(origin: tuple[float, float], point: tuple[float, float]) -> float:
    return math.degrees(math.atan2(point[1] - origin[1], point[0] - origin[0])) % 360


class TestRadii:
    @pytest.mark.parametrize("count,expected", [(0, 300), (1, 300), (3, 300), (4, 400), (6, 600)])
    def test_ring_radius_grows_with_population(self, count, expected):
        assert ring_radius(count, 300, 100) == expected

    def test_child_ring_radius_is_bounded(self):
        config = LayoutConfig()

        assert child_ring_radius(1, config) == 150
        assert child_ring_radius(3, config) == 180
        assert child_ring_radius(50, config) == 250
        assert child_ring_radius(50, config) < config.base_radius


class TestPlaceOnRing:
    def test_even_spacing(self):
        positions = place_on_ring((0, 0), ["a", "b", "c", "d"], 100)

        assert positions["a"] == pytest.approx((100, 0))
        assert positions["b"] == pytest.approx((0, 100))
        assert positions["c"] == pytest.approx((-100, 0))
        assert positions["d"] == pytest.approx((0, -100))

    def test_start_angle(self):
        positions = place_on_ring((10, 10), ["a"], 50, start_angle=math.pi / 2)

        assert positions["a"] == pytest.approx((10, 60))

    def test_empty(self):
        assert place_on_ring((0, 0), [], 100) == {}


class TestRadialLayout:
    def test_six_neighbours_at_sixty_degree_steps(self):
        nodes = [make_node("C")] + [make_node(f"N{i}", "C") for i in range(6)]

        positions = calculate_radial_layout(nodes, "C")

        center = positions["C"]
        assert center == (500.0, 400.0)
        angles = [angle_deg(center, positions[f"N{i}"]) for i in range(6)]
        assert angles == pytest.approx([0, 60, 120, 180, 240, 300], abs=1e-6)
        for i in range(6):
            assert math.dist(center, positions[f"N{i}"]) == pytest.approx(600)

    def test_minimum_radius_for_small_rings(self):
        nodes = [make_node("C"), make_node("A", "C")]

        positions = calculate_radial_layout(nodes, "C")

        assert positions["A"] == pytest.approx((800, 400))

    def test_unknown_center_falls_back_to_first_node(self):
        nodes = [make_node("A"), make_node("B", "A")]

        positions = calculate_radial_layout(nodes, "missing")

        assert positions["A"] == (500.0, 400.0)

    def test_empty_nodes(self):
        assert calculate_radial_layout([], "C") == {}

    def test_pinned_node_keeps_position(self):
        nodes = [
            make_node("C"),
            make_node("A", "C", position=Position(x=12, y=34), user_positioned=True),
            make_node("B", "C"),
        ]

        positions = calculate_radial_layout(nodes, "C")

        assert positions["A"] == (12, 34)

    def test_deterministic(self):
        nodes = [make_node("C")] + [make_node(f"N{i}", "C") for i in range(5)]

        assert calculate_radial_layout(nodes, "C") == calculate_radial_layout(nodes, "C")


class TestHierarchicalLayout:
    @pytest.fixture
    def tree(self):
        nodes = [
            make_node("C"),
            make_node("A", "C"),
            make_node("B", "C"),
            make_node("D", "C"),
            make_node("A1", "A"),
            make_node("A2", "A"),
        ]
        hierarchy = {"C": ["A", "B", "D"], "A": ["A1", "A2"]}
        return nodes, hierarchy

    def test_center_at_origin_and_first_ring(self, tree):
        nodes, hierarchy = tree

        positions = calculate_hierarchical_layout(nodes[:4], "C", hierarchy, {"C"})

        assert positions["C"] == (0.0, 0.0)
        assert positions["A"] == pytest.approx((300, 0))
        assert angle_deg((0, 0), positions["B"]) == pytest.approx(120)
        assert angle_deg((0, 0), positions["D"]) == pytest.approx(240)

    def test_children_ring_around_expanded_parent(self, tree):
        nodes, hierarchy = tree

        positions = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C", "A"})

        parent = positions["A"]
        # Two children: radius max(150, min(120, 250)) = 150, first child pointing outward
        assert positions["A1"] == pytest.approx((450, 0))
        assert positions["A2"] == pytest.approx((150, 0))
        assert math.dist(parent, positions["A1"]) == pytest.approx(150)

    def test_first_ring_unchanged_by_expansion(self, tree):
        nodes, hierarchy = tree

        before = calculate_hierarchical_layout(nodes[:4], "C", hierarchy, {"C"})
        after = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C", "A"})

        for node_id in ("C", "A", "B", "D"):
            assert after[node_id] == pytest.approx(before[node_id])

    def test_children_of_collapsed_node_go_to_fallback_ring(self, tree):
        nodes, hierarchy = tree

        positions = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C"})

        # Remainder ring sits outside the first ring
        assert math.dist((0, 0), positions["A1"]) == pytest.approx(500)
        assert math.dist((0, 0), positions["A2"]) == pytest.approx(500)

    def test_every_node_is_placed(self, tree):
        nodes, hierarchy = tree

        positions = calculate_hierarchical_layout(nodes, "C", {}, set())

        assert set(positions) == {n.id for n in nodes}

    def test_pinned_parent_anchors_its_children(self, tree):
        nodes, hierarchy = tree
        nodes[1] = make_node("A", "C", position=Position(x=1000, y=1000), user_positioned=True)

        positions = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C", "A"})

        assert positions["A"] == (1000, 1000)
        assert math.dist((1000, 1000), positions["A1"]) == pytest.approx(150)

    def test_empty_nodes(self):
        assert calculate_hierarchical_layout([], "C", {}, set()) == {}

    def test_deterministic(self, tree):
        nodes, hierarchy = tree

        first = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C", "A"})
        second = calculate_hierarchical_layout(nodes, "C", hierarchy, {"C", "A"})

        assert first == second
