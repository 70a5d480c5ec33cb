"""End-to-end tests for StructuralAnalysisOrchestrator."""
import copy
import json
import logging
from unittest.mock import patch

import pytest

from landscape.core.config import AppConfig, AnalysisConfig
from landscape.core.types import (
    PrimaryShape, StructuralAnalysis, ProblemStructure, CognitiveArtifact,
    SHAPE_SETTLED, SHAPE_CONTESTED, SHAPE_TRADEOFF, SHAPE_DIMENSIONAL, SHAPE_EXPLORATORY,
    PATTERN_ORPHANED, CLAIM_ROLES,
)
from landscape.orchestration.structural_analysis_orchestrator import (
    StructuralAnalysisOrchestrator,
    compute_structural_analysis,
    compute_problem_structure_from_artifact,
)
from landscape.structure_agents.conflict_analysis import ConflictAnalyzer
from landscape.structure_agents.shape_builders import (
    ShapeBuilder, OVERRIDE_NO_CONFLICTS, OVERRIDE_SINGLE_COMPONENT, OVERRIDE_BUILDER_FAILED,
)

TWO_PEAKS = [{'id': 'c1', 'supporters': [0, 1, 2]}, {'id': 'c2', 'supporters': [0, 1, 2]}]


@pytest.fixture
def orchestrator(app_config):
    return StructuralAnalysisOrchestrator(config=app_config)


class TestStructuralAnalysisOrchestrator:
    """Test suite for the full pipeline."""

    def test_initialization(self, orchestrator):
        """Test initialization."""
        assert orchestrator.analysis_config.top_support_ratio == 0.3
        assert orchestrator.analysis_config.strict_builders is False

    def test_invalid_direct_config_rejected(self):
        """Test that a directly passed config is validated before running."""
        config = AppConfig(analysis=AnalysisConfig(top_support_ratio=1.5))
        with pytest.raises(ValueError):
            StructuralAnalysisOrchestrator(config=config)

    def 
        """Test single peak is convergent."""
        analysis = orchestrator.run(make_artifact([{'id': 'c1', 'supporters': [0, 1, 2]}], model_count=3))

        assert isinstance(analysis, StructuralAnalysis)
        shape = analysis.shape
        assert shape.primary == PrimaryShape.CONVERGENT
        assert shape.confidence == pytest.approx(0.9)
        assert [p.id for p in shape.peaks] == ['c1']
        assert shape.data.pattern == SHAPE_SETTLED
        assert shape.classification_override is None
        assert shape.floor_assumptions == ['Assumes context-independence']

    def 
        """Test conflicting peaks are forked."""
        edges = [{'from': 'c1', 'to': 'c2', 'type': 'conflicts'}]
        shape = orchestrator.run(make_artifact(TWO_PEAKS, edges, model_count=3)).shape

        assert shape.primary == PrimaryShape.FORKED
        assert shape.confidence == pytest.approx(0.85)
        assert shape.data.pattern == SHAPE_CONTESTED
        assert shape.central_conflict == 'What matters more: c1 vs c2?'
        assert shape.transfer_question == 'Two valid paths exist: "c1" vs "c2". Which constraint matters more to you?'

    def 
        """Test tradeoff peaks are constrained."""
        edges = [{'from': 'c1', 'to': 'c2', 'type': 'tradeoff'}]
        shape = orchestrator.run(make_artifact(TWO_PEAKS, edges, model_count=3)).shape

        assert shape.primary == PrimaryShape.CONSTRAINED
        assert shape.confidence == pytest.approx(0.8)
        assert shape.data.pattern == SHAPE_TRADEOFF
        assert shape.tradeoffs == ['c1 vs c2']

    def 
        """Test isolated peaks are parallel."""
        claims = [{'id': f'c{i}', 'supporters': [0, 1, 2]} for i in range(3)]
        analysis = orchestrator.run(make_artifact(claims, model_count=3))
        shape = analysis.shape

        assert shape.primary == PrimaryShape.PARALLEL
        assert analysis.graph.component_count == 3
        assert shape.data.pattern == SHAPE_DIMENSIONAL
        assert shape.data.dimensions == []
        assert shape.data.transfer_question == 'Are there perspectives not represented in these dimensions?'
        assert PATTERN_ORPHANED in [p.type for p in shape.patterns]

    def 
        """Test lone minority claim is sparse."""
        analysis = orchestrator.run(make_artifact([{'id': 'c1', 'supporters': [0]}], model_count=4))

        assert analysis.claims_with_leverage[0].support_ratio == pytest.approx(0.25)
        assert analysis.shape.primary == PrimaryShape.SPARSE
        assert analysis.shape.confidence == pytest.approx(0.9)
        assert analysis.shape.data.pattern == SHAPE_EXPLORATORY

    def 
        """Test forked without enriched conflicts flags fallback."""
        edges = [{'from': 'c1', 'to': 'c2', 'type': 'conflicts'}]
        with patch.object(ConflictAnalyzer, 'detect_enriched_conflicts', return_value=[]):
            shape = orchestrator.run(make_artifact(TWO_PEAKS, edges, model_count=3)).shape

        assert shape.primary == PrimaryShape.FORKED
        assert shape.data.pattern == SHAPE_SETTLED
        assert shape.classification_override.reason == OVERRIDE_NO_CONFLICTS
        assert shape.classification_override.original_primary == PrimaryShape.FORKED
        assert shape.classification_override.built_pattern == SHAPE_SETTLED

    def 
        """Test fallback is logged."""
        claims, edges, model_count = chain_landscape
        with caplog.at_level(logging.WARNING):
            shape = orchestrator.run(make_artifact(claims, edges, model_count)).shape

        assert shape.primary == PrimaryShape.PARALLEL
        assert shape.classification_override.reason == OVERRIDE_SINGLE_COMPONENT
        assert 'Shape data for parallel built as settled' in [r.getMessage() for r in caplog.records]

    def 
        """Test builder failure falls back to exploratory."""
        edges = [{'from': 'c1', 'to': 'c2', 'type': 'conflicts'}]
        with patch.object(ShapeBuilder, 'build_forked_data', side_effect=ValueError('boom')):
            shape = orchestrator.run(make_artifact(TWO_PEAKS, edges, model_count=3)).shape

        assert shape.primary == PrimaryShape.FORKED
        assert shape.data.pattern == SHAPE_EXPLORATORY
        assert shape.classification_override.reason == OVERRIDE_BUILDER_FAILED
        assert shape.classification_override.original_primary == PrimaryShape.FORKED

    def 
        """Test that strict builders re-raise failures."""
        config = AppConfig(analysis=AnalysisConfig(strict_builders=True))
        edges = [{'from': 'c1', 'to': 'c2', 'type': 'conflicts'}]
        with patch.object(ShapeBuilder, 'build_forked_data', side_effect=ValueError('boom')):
            with pytest.raises(RuntimeError, match='Shape builder failed for forked'):
                StructuralAnalysisOrchestrator(config=config).run(make_artifact(TWO_PEAKS, edges, model_count=3))

    @pytest.mark.parametrize('artifact', [None, {'semantic': 'x'}, {'semantic': {'claims': 'nope'}}, []])
    def 
        """Test malformed input yields complete result."""
        analysis = orchestrator.run(artifact)

        assert analysis.claims_with_leverage == []
        assert analysis.shape.primary == PrimaryShape.SPARSE
        assert analysis.shape.data is not None
        assert analysis.graph.components == []

    def 
        """Test dangling and duplicate edges are dropped."""
        edges = [
            {'from': 'c1', 'to': 'c2', 'type': 'supports'},
            {'from': 'c1', 'to': 'c2', 'type': 'supports'},
            {'from': 'c1', 'to': 'ghost', 'type': 'prerequisite'},
            {'from': 'c1', 'to': 'c2', 'type': 'bogus'},
        ]
        analysis = orchestrator.run(make_artifact(TWO_PEAKS, edges, model_count=3))
        assert [(e.from_id, e.to_id, e.type) for e in analysis.edges] == [('c1', 'c2', 'supports')]

    def 
        """Test accepts parsed artifact."""
        artifact = CognitiveArtifact.from_dict(make_artifact(TWO_PEAKS, model_count=3))
        assert orchestrator.run(artifact).landscape.model_count == 3

    def 
        """Test JSON serialization of the result."""
        claims, edges, model_count = contested_landscape
        analysis = orchestrator.run(make_artifact(claims, edges, model_count, ghosts=['pricing']))
        payload = json.loads(json.dumps(analysis.to_dict()))
        assert payload['shape']['primary'] == 'forked'
        assert payload['shape']['data']['pattern'] == SHAPE_CONTESTED

    def test_deterministic(self, orchestrator, make_artifact, keystone_landscape):
        """Test deterministic."""
        artifact = make_artifact(*keystone_landscape)
        first = orchestrator.run(artifact).to_dict()
        second = orchestrator.run(copy.deepcopy(artifact)).to_dict()
        assert first == second

    def 
        """Test invariants hold."""
        analysis = orchestrator.run(make_artifact(*contested_landscape))

        ids = [c.id for c in analysis.claims_with_leverage]
        flattened = [cid for component in analysis.graph.components for cid in component]
        assert sorted(flattened) == sorted(ids)
        assert len(flattened) == len(set(flattened))
        for claim in analysis.claims_with_leverage:
            assert 0 <= claim.support_ratio <= 1
            assert claim.support_ratio == len(claim.supporters) / analysis.landscape.model_count
            assert claim.role in CLAIM_ROLES


class TestModuleFunctions:
    """Test suite for the functional entry points."""

    def 
        """Test compute structural analysis."""
        analysis = compute_structural_analysis(make_artifact([{'id': 'c1', 'supporters': [0, 1, 2]}], model_count=3))
        assert analysis.shape.primary == PrimaryShape.CONVERGENT

    def 
        """Test compute problem structure."""
        shape = compute_problem_structure_from_artifact(
            make_artifact([{'id': 'c1', 'supporters': [0]}], model_count=4),
        )
        assert isinstance(shape, ProblemStructure)
        assert shape.primary == PrimaryShape.SPARSE
