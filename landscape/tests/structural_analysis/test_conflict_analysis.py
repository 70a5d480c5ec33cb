"""Tests for cascade risks and relationship pattern detection."""
import pytest

from landscape.core.types import Claim, Edge
from landscape.structure_agents.conflict_analysis import ConflictAnalyzer, detect_cascade_risks


class TestCascadeRisks:
    """Test suite for detect_cascade_risks."""

    def 
        """Test transitive dependents and depth."""
        claims = [Claim(id=cid, label=cid.upper()) for cid in ('a', 'b', 'c')]
        edges = [Edge('a', 'b', 'prerequisite'), Edge('b', 'c', 'prerequisite')]
        risks = {r.source_id: r for r in detect_cascade_risks(edges, claims)}

        assert set(risks) == {'a', 'b'}
        assert risks['a'].dependent_ids == ['b', 'c']
        assert risks['a'].dependent_labels == ['B', 'C']
        assert risks['a'].depth == 2
        assert risks['b'].depth == 1

    def 
        """Test that non-prerequisite and dangling edges are ignored."""
        claims = [Claim(id='a'), Claim(id='b')]
        edges = [Edge('a', 'b', 'supports'), Edge('a', 'zzz', 'prerequisite')]
        assert detect_cascade_risks(edges, claims) == []

    def 
        """Test cycle terminates."""
        claims = [Claim(id='a'), Claim(id='b')]
        edges = [Edge('a', 'b', 'prerequisite'), Edge('b', 'a', 'prerequisite')]
        risks = {r.source_id: r for r in detect_cascade_risks(edges, claims)}
        assert risks['a'].dependent_ids == ['b', 'a']
        assert risks['a'].depth == 1


class TestConflictAnalyzer:
    """Test suite for ConflictAnalyzer."""

    def 
        """Test enriched conflicts."""
        result = enrich(*contested_landscape)
        infos = result.patterns.conflict_infos

        assert [i.id for i in infos] == ['ch1_vs_t', 'ch2_vs_t', 't_vs_u']
        first = infos[0]
        assert first.involves_challenger
        assert first.significance == pytest.approx(1.5)
        assert first.axis.explicit == 'Postgres fits the workload'
        assert first.axis.resolved == first.axis.explicit
        assert first.is_high_vs_low
        assert first.combined_support == 4
        assert first.support_delta == 2
        assert first.dynamics == 'asymmetric'

        last = infos[2]
        assert not last.involves_challenger
        assert last.axis.explicit is None
        assert last.axis.resolved == 'Use Postgres vs Use DynamoDB'
        assert last.is_both_high_support
        assert last.dynamics == 'symmetric'

    def 
        """Test conflict cluster."""
        result = enrich(*contested_landscape)
        clusters = result.patterns.conflict_clusters

        assert len(clusters) == 1
        assert clusters[0].target_id == 't'
        assert clusters[0].challenger_ids == ['ch1', 'ch2']
        assert clusters[0].axis == 'Multiple challenges to Use Postgres'
        cluster_ids = [i.cluster_id for i in result.patterns.conflict_infos]
        assert cluster_ids == ['cluster_0', 'cluster_0', None]

    def 
        """Test conflict pairs."""
        result = enrich(*contested_landscape)
        conflicts = result.patterns.conflicts
        assert len(conflicts) == 3
        assert conflicts[2].is_both_consensus
        assert not conflicts[0].is_both_consensus

    def 
        """Test tradeoff symmetry."""
        claims = [
            {'id': 'a', 'supporters': [0, 1, 2, 3]},
            {'id': 'b', 'supporters': [0]},
            {'id': 'c', 'supporters': [1]},
        ]
        edges = [{'from': 'a', 'to': 'b', 'type': 'tradeoff'}, {'from': 'b', 'to': 'c', 'type': 'tradeoff'}]
        tradeoffs = enrich(claims, edges, model_count=4).patterns.tradeoffs
        assert [t.symmetry for t in tradeoffs] == ['asymmetric', 'both_singular']
        assert tradeoffs[0].claim_a.supporter_count == 4

    def 
        """Test convergence points."""
        claims = [{'id': cid, 'supporters': [0]} for cid in ('t', 'x', 'y', 'z')]
        edges = [
            {'from': 'x', 'to': 't', 'type': 'supports'},
            {'from': 'y', 'to': 't', 'type': 'supports'},
            {'from': 'z', 'to': 't', 'type': 'prerequisite'},
        ]
        points = enrich(claims, edges).patterns.convergence_points
        assert len(points) == 1
        assert points[0].target_id == 't'
        assert points[0].source_ids == ['x', 'y']
        assert points[0].edge_type == 'supports'

    def 
        """Test leverage inversion reasons."""
        result = enrich(*chain_landscape)
        inversions = {i.claim_id: i for i in result.patterns.leverage_inversions}
        assert inversions['b'].reason == 'singular_foundation'
        assert inversions['b'].affected_claims == ['c']
        assert inversions['d'].reason == 'high_connectivity_low_support'

    def 
        """Test isolated claims."""
        claims = [{'id': 'a', 'supporters': [0]}, {'id': 'b', 'supporters': [0]}, {'id': 'c', 'supporters': [1]}]
        result = enrich(claims, [{'from': 'a', 'to': 'b', 'type': 'supports'}])
        assert result.patterns.isolated_claims == ['c']

    def 
        """Test ghost analysis."""
        result = enrich(*contested_landscape)
        analyzer = ConflictAnalyzer(result.claims, result.edges, result.top_claim_ids)
        ghosts = analyzer.analyze_ghosts(['pricing', 'compliance'])
        assert ghosts.count == 2
        assert ghosts.may_extend_challenger
        assert ghosts.challenger_ids == ['ch1', 'ch2']
        assert not analyzer.analyze_ghosts([]).may_extend_challenger
