"""
Tests for the genome -> membrane graph builder
==============================================
"""

import math

import pytest

from membrane.factory import create_genome
from membrane.genome import EdgeGene, NodeType
from membrane.graph import build_graph


def test_build_is_deterministic(rng):
    genome = create_genome(rng)
    assert build_graph(genome, 36.0) == build_graph(genome, 36.0)


def test_ring_and_chords(rng):
    genome = create_genome(rng)
    graph = build_graph(genome, 36.0)
    n = genome.node_count

    assert len(graph.nodes) == n
    assert [node.id for node in graph.nodes] == list(range(n))
    assert len(graph.ring_edges) == n
    assert {(e.source, e.target) for e in graph.ring_edges} == {(i, (i + 1) % n) for i in range(n)}
    assert len(graph.chords) == len(genome.edges)


def test_stale_chords_are_dropped_after_shrink(scenario_genome):
    genome = scenario_genome(
        node_count=14,
        edges=[
            EdgeGene(0, 5, 0.5, 0.0),
            EdgeGene(2, 15, 0.5, 0.0),    # node 15 no longer exists
            EdgeGene(0, 13, 0.5, 0.0),    # now ring neighbours
        ],
    )
    graph = build_graph(genome, 36.0)

    assert len(graph.nodes) == 14
    assert [(e.source, e.target) for e in graph.chords] == [(0, 5)]
    # The genome keeps its intent
    assert len(genome.edges) == 3


def test_weights_are_clamped(scenario_genome):
    genome = scenario_genome(edge_weight=0.05, edges=[EdgeGene(0, 5, 0.01, 3.0)])
    graph = build_graph(genome, 36.0)

    assert all(e.weight == 0.2 for e in graph.ring_edges)
    chord = graph.chords[0]
    assert chord.weight == 0.1
    assert chord.curvature == 1.2


def test_positions_scale_linearly(rng):
    genome = create_genome(rng)
    small = build_graph(genome, 36.0)
    large = build_graph(genome, 72.0)

    for a, b in zip(small.nodes, large.nodes):
        assert b.x == pytest.approx(2 * a.x)
        assert b.y == pytest.approx(2 * a.y)
        assert b.s == a.s
        assert b.leak == a.leak
    assert large.perimeter == pytest.approx(2 * small.perimeter)


def test_node_expression_ranges(rng):
    genome = create_genome(rng)
    for node in build_graph(genome, 36.0).nodes:
        assert 0.0 <= node.s <= 1.0
        assert 0.005 <= node.leak <= 0.12


def test_plain_ellipse_geometry(scenario_genome):
    genome = scenario_genome(pocket_amp=0.0, angle_jitter=0.0, radius_x=0.6, radius_y=0.6)
    for fold in genome.folds:
        fold.amp = 0.0
    graph = build_graph(genome, 10.0)

    first = graph.nodes[0]
    assert first.x == pytest.approx(6.0)
    assert first.y == pytest.approx(0.0, abs=1e-12)
    # Regular 16-gon of radius 6
    assert graph.perimeter == pytest.approx(16 * 2 * 6.0 * math.sin(math.pi / 16))


def test_node_types_follow_genes(scenario_genome):
    graph = build_graph(scenario_genome(), 36.0)
    assert graph.nodes_of_type(NodeType.ETC) == [0]
    assert graph.nodes_of_type(NodeType.SYNTHASE) == [8]


def test_missing_node_genes_reuse_last(scenario_genome):
    genome = scenario_genome()
    genome.nodes = genome.nodes[:12]
    graph = build_graph(genome, 36.0)
    assert len(graph.nodes) == 16
    assert all(node.type == genome.nodes[-1].type for node in graph.nodes[12:])
