"""Tests for secondary pattern detectors."""
from landscape.core.types import (
    SEVERITY_HIGH, SEVERITY_MEDIUM, SEVERITY_LOW,
    INSIGHT_LEVERAGE_INVERSION, INSIGHT_EXPLICIT_CHALLENGER, INSIGHT_UNIQUE_PERSPECTIVE, INSIGHT_EDGE_CASE,
    PATTERN_DISSENT, PATTERN_CHALLENGED, PATTERN_KEYSTONE, PATTERN_CHAIN, PATTERN_FRAGILE,
    PATTERN_CONDITIONAL, PATTERN_ORPHANED,
)
from landscape.structure_agents.pattern_detectors import PatternDetector
from landscape.structure_agents.shape_classifier import ShapeClassifier


def _setup(result, max_dissent_voices=None):
    peaks = ShapeClassifier(result.claims, result.edges).analyze_peaks()
    return PatternDetector(result.claims, result.edges, max_dissent_voices=max_dissent_voices), peaks


class TestPatternDetector:
    """Test suite for PatternDetector."""

    def 
        """Test chain pattern."""
        result = enrich(*chain_landscape)
        detector, _ = _setup(result)
        pattern = detector.detect_chain_pattern(result.graph, result.patterns)

        assert pattern.type == PATTERN_CHAIN
        assert pattern.data.chain == ['a', 'b', 'c', 'd']
        assert pattern.data.length == 4
        assert pattern.data.weak_links == ['b', 'd']
        assert pattern.severity == SEVERITY_HIGH

    def 
        """Test chain requires three steps."""
        claims = [{'id': 'a', 'supporters': [0]}, {'id': 'b', 'supporters': [0]}]
        result = enrich(claims, [{'from': 'a', 'to': 'b', 'type': 'prerequisite'}])
        detector, _ = _setup(result)
        assert detector.detect_chain_pattern(result.graph, result.patterns) is None

    def 
        """Test keystone pattern."""
        result = enrich(*keystone_landscape)
        detector, _ = _setup(result)
        pattern = detector.detect_keystone_pattern(result.graph, result.patterns)

        assert pattern.type == PATTERN_KEYSTONE
        assert pattern.severity == SEVERITY_HIGH
        assert pattern.data.keystone.id == 'k'
        assert pattern.data.dependents == ['x', 'y', 'z']
        assert pattern.data.cascade_size == 2

    def 
        """Test keystone needs two dependents."""
        result = enrich(*chain_landscape)
        detector, _ = _setup(result)
        # hub b enables only c
        assert result.graph.hub_claim == 'b'
        assert detector.detect_keystone_pattern(result.graph, result.patterns) is None

    def 
        """Test fragile pattern."""
        result = enrich(*chain_landscape)
        detector, peaks = _setup(result)
        pattern = detector.detect_fragile_pattern(peaks.peaks)

        assert pattern.type == PATTERN_FRAGILE
        assert len(pattern.data.fragilities) == 1
        link = pattern.data.fragilities[0]
        assert link.peak.id == 'c'
        assert link.weak_foundation.id == 'b'
        assert pattern.severity == SEVERITY_LOW

    def 
        """Test challenged pattern."""
        result = enrich(*contested_landscape)
        detector, peaks = _setup(result)
        pattern = detector.detect_challenged_pattern(peaks.peaks, peaks.floor)

        assert pattern.type == PATTERN_CHALLENGED
        assert [(c.challenger.id, c.target.id) for c in pattern.data.challenges] == [('ch1', 't'), ('ch2', 't')]
        assert pattern.severity == SEVERITY_MEDIUM

    def 
        """Test dissent explicit challengers."""
        result = enrich(*contested_landscape)
        detector, peaks = _setup(result)
        pattern = detector.detect_dissent_pattern(peaks.peaks)

        assert pattern.type == PATTERN_DISSENT
        assert [v.id for v in pattern.data.voices] == ['ch1', 'ch2']
        assert all(v.insight_type == INSIGHT_EXPLICIT_CHALLENGER for v in pattern.data.voices)
        assert pattern.data.voices[0].targets == ['t']
        strongest = pattern.data.strongest_voice
        assert strongest.id == 'ch1'
        assert strongest.why_it_matters.startswith('Directly challenges "Use Postgres"')
        assert pattern.severity == SEVERITY_MEDIUM

    def 
        """Test dissent ranks leverage inversions first."""
        result = enrich(*chain_landscape)
        detector, peaks = _setup(result)
        pattern = detector.detect_dissent_pattern(peaks.peaks)

        assert [v.id for v in pattern.data.voices] == ['b', 'd']
        assert pattern.data.voices[0].insight_type == INSIGHT_LEVERAGE_INVERSION
        assert pattern.data.voices[0].targets == ['c']
        assert 'reshapes the entire answer' in pattern.data.strongest_voice.why_it_matters

    def 
        """Test dissent unique perspective and edge case."""
        claims = [
            {'id': 'p', 'supporters': [0, 1]},
            {'id': 'outsider', 'supporters': [2], 'type': 'factual'},
            {'id': 'maybe', 'supporters': [0], 'type': 'conditional'},
        ]
        result = enrich(claims, model_count=3)
        detector, peaks = _setup(result)
        pattern = detector.detect_dissent_pattern(peaks.peaks)

        by_id = {v.id: v for v in pattern.data.voices}
        assert by_id['outsider'].insight_type == INSIGHT_UNIQUE_PERSPECTIVE
        assert by_id['maybe'].insight_type == INSIGHT_EDGE_CASE
        assert pattern.data.strongest_voice.id == 'outsider'
        assert pattern.data.suppressed_dimensions == ['factual', 'conditional']

    def 
        """Test dissent voice cap."""
        claims = [{'id': 'p', 'supporters': [0, 1]}] + [
            {'id': f'e{i}', 'supporters': [0], 'type': 'conditional'} for i in range(4)
        ]
        result = enrich(claims, model_count=3)
        detector, peaks = _setup(result, max_dissent_voices=2)
        pattern = detector.detect_dissent_pattern(peaks.peaks)
        assert len(pattern.data.voices) == 2
        assert pattern.severity == SEVERITY_HIGH

    def 
        """Test no dissent in unanimous landscape."""
        result = enrich([{'id': 'c1', 'supporters': [0, 1, 2]}])
        detector, peaks = _setup(result)
        assert detector.detect_dissent_pattern(peaks.peaks) is None

    def 
        """Test conditional pattern."""
        claims = [
            {'id': 'if_remote', 'type': 'conditional', 'supporters': [0]},
            {'id': 'if_onsite', 'type': 'conditional', 'supporters': [1]},
            {'id': 'async', 'supporters': [0]},
            {'id': 'standups', 'supporters': [1]},
        ]
        edges = [
            {'from': 'if_remote', 'to': 'async', 'type': 'prerequisite'},
            {'from': 'if_onsite', 'to': 'standups', 'type': 'prerequisite'},
        ]
        result = enrich(claims, edges)
        detector, _ = _setup(result)
        pattern = detector.detect_conditional_pattern()

        assert pattern.type == PATTERN_CONDITIONAL
        assert [c.id for c in pattern.data.conditions] == ['if_remote', 'if_onsite']
        assert pattern.data.conditions[0].branches == ['async']
        assert pattern.severity == SEVERITY_MEDIUM

    def 
        """Test orphaned pattern."""
        claims = [{'id': f'c{i}', 'supporters': [0, 1, 2]} for i in range(2)]
        result = enrich(claims)
        detector, peaks = _setup(result)
        pattern = detector.detect_orphaned_pattern(peaks.peaks)
        assert pattern.type == PATTERN_ORPHANED
        assert [o.id for o in pattern.data.orphans] == ['c0', 'c1']
        assert pattern.severity == SEVERITY_HIGH

    def 
        """Test run order."""
        result = enrich(*chain_landscape)
        detector, peaks = _setup(result)
        found = detector.run(peaks.peaks, peaks.floor, result.graph, result.patterns)
        assert [p.type for p in found] == [PATTERN_DISSENT, PATTERN_CHAIN, PATTERN_FRAGILE]
