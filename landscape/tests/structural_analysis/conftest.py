"""Shared test fixtures for structural analysis tests."""
import pytest
from types import SimpleNamespace

from landscape.core.config import AppConfig, AnalysisConfig
from landscape.core.types import CognitiveArtifact
from landscape.calculators.calculator_base import sanitize_edges
from landscape.calculators.metrics_calculator import MetricsCalculator
from landscape.calculators.graph_calculator import GraphCalculator
from landscape.structure_agents.role_inference import apply_computed_roles
from landscape.structure_agents.conflict_analysis import ConflictAnalyzer, detect_cascade_risks

LANDSCAPE_ENV_VARS = (
    'LANDSCAPE_TOP_SUPPORT_RATIO',
    'TOP_SUPPORT_RATIO',
    'LANDSCAPE_MAX_DISSENT_VOICES',
    'LANDSCAPE_STRICT_BUILDERS',
    'LANDSCAPE_LOG_LEVEL',
    'LOG_LEVEL',
)


@pytest.fixture(autouse=True)
def clean_landscape_env(monkeypatch):
    """Keep developer .env overrides out of the tests."""
    for key in LANDSCAPE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def app_config():
    return AppConfig(analysis=AnalysisConfig())


@pytest.fixture
def make_artifact():
    """Factory for mapper-shaped payloads."""
    def _make(claims, edges=None, model_count=None, conditionals=None, ghosts=None):
        meta = {} if model_count is None else {'modelCount': model_count}
        return {
            'semantic': {
                'claims': claims,
                'edges': edges or [],
                'conditionals': conditionals or [],
                'ghosts': ghosts or [],
            },
            'meta': meta,
        }
    return _make


@pytest.fixture
def enrich(make_artifact):
    """Run every stage up to classification and expose the intermediate results."""
    def _enrich(claims, edges=None, model_count=3, conditionals=None, ghosts=None):
        artifact = CognitiveArtifact.from_dict(
            make_artifact(claims, edges, model_count, conditionals, ghosts)
        )
        roled = apply_computed_roles(artifact.claims, artifact.edges, artifact.conditionals, model_count)
        valid_edges = sanitize_edges([c.id for c in roled], artifact.edges)
        metrics = MetricsCalculator(roled, valid_edges, model_count)
        with_ratios = metrics.compute_all_claim_ratios()
        cascade_risks = detect_cascade_risks(valid_edges, with_ratios)
        top_claim_ids = metrics.select_top_claim_ids(with_ratios)
        flagged = metrics.assign_percentile_flags(with_ratios, cascade_risks, top_claim_ids)
        graph = GraphCalculator(flagged, valid_edges).analyze(flagged)
        patterns = ConflictAnalyzer(flagged, valid_edges, top_claim_ids).run(cascade_risks)
        return SimpleNamespace(
            artifact=artifact,
            claims=flagged,
            by_id={c.id: c for c in flagged},
            edges=valid_edges,
            graph=graph,
            patterns=patterns,
            top_claim_ids=top_claim_ids,
            model_count=model_count,
        )
    return _enrich


# --- Landscapes ---

@pytest.fixture
def chain_landscape():
    """a -> b -> c -> d prerequisite chain; b and d have a single supporter."""
    claims = [
        {'id': 'a', 'label': 'Define scope', 'supporters': [0, 1, 2]},
        {'id': 'b', 'label': 'Pick vendor', 'supporters': [0]},
        {'id': 'c', 'label': 'Run pilot', 'supporters': [0, 1]},
        {'id': 'd', 'label': 'Roll out', 'supporters': [0]},
    ]
    edges = [
        {'from': 'a', 'to': 'b', 'type': 'prerequisite'},
        {'from': 'b', 'to': 'c', 'type': 'prerequisite'},
        {'from': 'c', 'to': 'd', 'type': 'prerequisite'},
    ]
    return claims, edges, 3


@pytest.fixture
def keystone_landscape():
    """k enables x and y and supports z."""
    claims = [
        {'id': 'k', 'label': 'Budget approved', 'supporters': [0, 1, 2]},
        {'id': 'x', 'label': 'Hire team', 'supporters': [0, 1]},
        {'id': 'y', 'label': 'Buy tooling', 'supporters': [0, 1]},
        {'id': 'z', 'label': 'Train staff', 'supporters': [0]},
    ]
    edges = [
        {'from': 'k', 'to': 'x', 'type': 'prerequisite'},
        {'from': 'k', 'to': 'y', 'type': 'prerequisite'},
        {'from': 'k', 'to': 'z', 'type': 'supports'},
    ]
    return claims, edges, 3


@pytest.fixture
def contested_landscape():
    """Two peaks in conflict; t is also challenged by two single-model claims."""
    claims = [
        {'id': 't', 'label': 'Use Postgres', 'text': 'Postgres fits the workload', 'supporters': [0, 1, 2]},
        {'id': 'u', 'label': 'Use DynamoDB', 'text': 'DynamoDB scales better', 'supporters': [0, 1, 3]},
        {'id': 'ch1', 'label': 'Ops burden', 'supporters': [3]},
        {'id': 'ch2', 'label': 'Licensing risk', 'supporters': [3]},
    ]
    edges = [
        {'from': 'ch1', 'to': 't', 'type': 'conflicts'},
        {'from': 'ch2', 'to': 't', 'type': 'conflicts'},
        {'from': 't', 'to': 'u', 'type': 'conflicts'},
    ]
    return claims, edges, 4


@pytest.fixture
def dimensional_landscape():
    """Two unconnected peaks, each anchoring its own two-claim component."""
    claims = [
        {'id': 'p1', 'label': 'Latency', 'supporters': [0, 1, 2]},
        {'id': 'q1', 'label': 'Edge caching', 'supporters': [0]},
        {'id': 'p2', 'label': 'Cost', 'supporters': [0, 1, 2]},
        {'id': 'q2', 'label': 'Spot instances', 'supporters': [1]},
    ]
    edges = [
        {'from': 'p1', 'to': 'q1', 'type': 'supports'},
        {'from': 'p2', 'to': 'q2', 'type': 'supports'},
    ]
    return claims, edges, 3


@pytest.fixture
def sparse_landscape():
    claims = [
        {'id': 'c1', 'label': 'Maybe serverless', 'supporters': [0]},
        {'id': 'c2', 'label': 'Maybe containers', 'supporters': [1]},
    ]
    edges = [{'from': 'c1', 'to': 'c2', 'type': 'supports'}]
    return claims, edges, 4
