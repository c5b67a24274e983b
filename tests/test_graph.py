"""Tests for graph construction."""

import pytest
from rail_isochrone.graph import (
    GraphFormatError,
    GraphShape,
    NegativeCostError,
    RailGraph,
    detect_shape,
    parse_graph_document,
)


@pytest.fixture
def edge_list_doc():
    """A three-station line in {nodes, edges} form."""
    return {
        "nodes": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}, {"id": 3}],
        "edges": [
            {"from": 1, "to": 2, "cost": 100},
            {"from": 2, "to": 3, "cost": 50},
        ],
    }


def test_edges_are_symmetric(edge_list_doc):
    """Test every edge is usable in both directions with the same cost."""
    graph = parse_graph_document(edge_list_doc)
    assert (2, 100.0) in graph.neighbors_of(1)
    assert (1, 100.0) in graph.neighbors_of(2)
    assert (3, 50.0) in graph.neighbors_of(2)
    assert (2, 50.0) in graph.neighbors_of(3)
    assert graph.edge_count == 2


def test_node_names(edge_list_doc):
    """Test node names are kept and default to empty."""
    graph = parse_graph_document(edge_list_doc)
    assert graph.node_name(1) == "A"
    assert graph.node_name(3) == ""
    assert graph.node_name(99) is None


def test_unknown_endpoint_edge_dropped():
    """Test edges referencing undeclared nodes are silently dropped."""
    graph = RailGraph.build(
        [{"id": 1}, {"id": 2}],
        [{"from": 1, "to": 2, "cost": 10}, {"from": 2, "to": 7, "cost": 5}],
    )
    assert graph.neighbors_of(2) == [(1, 10.0)]
    assert not graph.has_node(7)
    assert graph.dropped_edges == 1


def test_neighbors_of_unknown_or_isolated_node():
    """Test neighbor lookup never fails."""
    graph = RailGraph.build([{"id": 1}, {"id": 2}], [])
    assert graph.neighbors_of(1) == []
    assert graph.neighbors_of(42) == []


def test_adjacency_shape_accepted():
    """Test the adjacency-map form builds the same structure."""
    graph = parse_graph_document({"1": {"2": 100}, "2": {"3": 50}})
    assert len(graph) == 3
    assert (2, 100.0) in graph.neighbors_of(1)
    assert (1, 100.0) in graph.neighbors_of(2)
    assert (2, 50.0) in graph.neighbors_of(3)


def test_string_ids_normalized_to_int(edge_list_doc):
    """Test identifiers are canonical integers whatever the input type."""
    edge_list_doc["nodes"] = [{"id": "1"}, {"id": "2"}, {"id": 3}]
    edge_list_doc["edges"][0]["from"] = "1"
    graph = parse_graph_document(edge_list_doc)
    assert 1 in graph
    assert "1" not in graph
    assert graph.neighbors_of(1) == [(2, 100.0)]


def test_detect_shape(edge_list_doc):
    """Test structural shape detection."""
    assert detect_shape(edge_list_doc) is GraphShape.EDGE_LIST
    assert detect_shape({"1": {"2": 3}}) is GraphShape.ADJACENCY


def test_unrecognized_document():
    """Test a document of neither shape is rejected."""
    with pytest.raises(GraphFormatError):
        parse_graph_document([1, 2, 3])
    with pytest.raises(GraphFormatError):
        parse_graph_document({"1": [2, 3]})


def test_negative_cost_fails_fast():
    """Test negative edge costs are refused."""
    with pytest.raises(NegativeCostError):
        RailGraph.build([{"id": 1}, {"id": 2}], [{"from": 1, "to": 2, "cost": -1}])
    with pytest.raises(NegativeCostError):
        RailGraph.from_adjacency({1: {2: -5}})


def test_neighbors_cannot_mutate_graph(edge_list_doc):
    """Test returned neighbor lists are copies."""
    graph = parse_graph_document(edge_list_doc)
    graph.neighbors_of(1).append((3, 0.0))
    assert graph.neighbors_of(1) == [(2, 100.0)]


def test_node_without_id_skipped():
    """Test nodes lacking a usable id are skipped along with their edges."""
    graph = RailGraph.build(
        [{"id": 1}, {"name": "no id"}, {"id": 2}],
        [{"from": 1, "to": 2, "cost": 3}, {"from": None, "to": 2, "cost": 3}],
    )
    assert len(graph) == 2
    assert graph.neighbors_of(2) == [(1, 3.0)]
    assert graph.dropped_edges == 1


def test_adjacency_unusable_ids_skipped():
    """Test bad ids in the adjacency form are dropped like in the edge-list form."""
    graph = parse_graph_document({"1": {"2": 10, "y": 4}, "x": {"1": 5, "2": 6}})
    assert len(graph) == 2
    assert graph.neighbors_of(1) == [(2, 10.0)]
    assert graph.dropped_edges == 3
