import logging
from typing import Any, List, Optional, Tuple

from landscape.core.config import AppConfig
from landscape.core.types import (
    CognitiveArtifact, StructuralAnalysis, ProblemStructure, CompositeShape, ShapeData,
    ClassificationOverride, SettledShapeData, ContestedShapeData, TradeoffShapeData,
)
from landscape.calculators.calculator_base import sanitize_edges
from landscape.calculators.scoring_utils import compute_signal_strength
from landscape.calculators.metrics_calculator import MetricsCalculator, compute_landscape_metrics
from landscape.calculators.graph_calculator import GraphCalculator
from landscape.structure_agents.role_inference import apply_computed_roles
from landscape.structure_agents.conflict_analysis import ConflictAnalyzer, detect_cascade_risks
from landscape.structure_agents.shape_classifier import ShapeClassifier
from landscape.structure_agents.shape_builders import (
    ShapeBuilder, generate_transfer_question, OVERRIDE_BUILDER_FAILED,
)

logger = logging.getLogger(__name__)


class StructuralAnalysisOrchestrator:
    """
    Orchestrates the claim-landscape structural analysis pipeline.

    Pipeline stages:
    1. Landscape: model count and type/role distributions
    2. Roles: topology-derived role override
    3. Metrics: per-claim ratios, cascades, percentile flags
    4. Graph: components, chain, hub, articulation points, core ratios
    5. Patterns: conflicts, tradeoffs, convergence, ghosts
    6. Shape: primary classification and secondary patterns
    7. Builder: shape-specific payload with fallback

    The pipeline is total: every artifact, however malformed, yields a
    complete StructuralAnalysis. A failing shape builder is logged and
    replaced by the exploratory payload.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig.from_env()
        self.analysis_config = self.config.analysis
        self.analysis_config.validate()
        logger.debug(
            "Initializing StructuralAnalysisOrchestrator",
            extra={
                "top_support_ratio": self.analysis_config.top_support_ratio,
                "strict_builders": self.analysis_config.strict_builders,
            },
        )

    def build_shape_data(
        self, builder: ShapeBuilder, composite: CompositeShape,
    ) -> Tuple[ShapeData, Optional[ClassificationOverride]]:
        try:
            return builder.build(composite.primary)
        except Exception as e:
            logger.exception(
                "Shape builder failed",
                extra={
                    "primary": composite.primary.value,
                    "claims_count": len(builder.claims),
                    "edges_count": len(builder.edges),
                    "ghosts_count": len(builder.ghosts),
                },
            )
            if self.analysis_config.strict_builders:
                raise RuntimeError(f"Shape builder failed for {composite.primary.value}: {e}") from e

        data = builder.build_sparse_data()
        override = ClassificationOverride(
            reason=OVERRIDE_BUILDER_FAILED,
            original_primary=composite.primary,
            built_pattern=data.pattern,
        )
        return data, override

    @staticmethod
    def hoist_fields(data: Optional[ShapeData]) -> Tuple[Optional[List[str]], Optional[str], Optional[List[str]]]:
        """Lift the fields renderers read directly off the shape payload."""
        floor_assumptions = central_conflict = tradeoffs = None
        if isinstance(data, SettledShapeData):
            floor_assumptions = data.floor_assumptions
        elif isinstance(data, ContestedShapeData):
            central_conflict = data.collapsing_question or None
        elif isinstance(data, TradeoffShapeData):
            tradeoffs = [
                t.governing_factor or f"{t.option_a.label} vs {t.option_b.label}"
                for t in data.tradeoffs
            ]
        return floor_assumptions, central_conflict, tradeoffs

    def run(self, artifact: Any) -> StructuralAnalysis:
        """
        Execute the full structural analysis.

        Args:
            artifact: CognitiveArtifact or mapper payload dict
                ({"semantic": {claims, edges, conditionals, ghosts}, "meta": {"modelCount": n}})

        Returns:
            StructuralAnalysis with enriched claims, graph, patterns and shape

        Raises:
            RuntimeError: Only when strict_builders is enabled and a shape builder fails
        """
        cfg = self.analysis_config
        artifact = CognitiveArtifact.from_dict(artifact)
        logger.info(
            "Running structural analysis",
            extra={"claims": len(artifact.claims), "edges": len(artifact.edges), "ghosts": len(artifact.ghosts)},
        )

        landscape = compute_landscape_metrics(artifact, top_support_ratio=cfg.top_support_ratio)
        model_count = landscape.model_count

        claims = apply_computed_roles(artifact.claims, artifact.edges, artifact.conditionals, model_count)
        edges = sanitize_edges([c.id for c in claims], artifact.edges)
        dropped = len(artifact.edges) - len(edges)
        if dropped:
            logger.debug("Dropped invalid or duplicate edges", extra={"dropped": dropped})

        metrics = MetricsCalculator(claims, edges, model_count, top_support_ratio=cfg.top_support_ratio)
        claims_with_ratios = metrics.compute_all_claim_ratios()
        cascade_risks = detect_cascade_risks(edges, claims_with_ratios)
        top_claim_ids = metrics.select_top_claim_ids(claims_with_ratios)
        claims_with_leverage = metrics.assign_percentile_flags(claims_with_ratios, cascade_risks, top_claim_ids)

        graph = GraphCalculator(claims_with_leverage, edges).analyze(claims_with_leverage)
        ratios = metrics.compute_core_ratios(claims_with_leverage, graph)

        analyzer = ConflictAnalyzer(claims_with_leverage, edges, top_claim_ids)
        patterns = analyzer.run(cascade_risks)
        ghost_analysis = analyzer.analyze_ghosts(artifact.ghosts)

        signal_strength = compute_signal_strength(
            len(claims_with_leverage),
            len(edges),
            model_count,
            [c.supporters for c in claims_with_leverage],
        )

        composite = ShapeClassifier(claims_with_leverage, edges).detect_composite_shape(
            graph, patterns, max_dissent_voices=cfg.max_dissent_voices,
        )

        builder = ShapeBuilder(
            claims_with_leverage,
            edges,
            graph,
            patterns,
            ghosts=artifact.ghosts,
            model_count=model_count,
            signal_strength=signal_strength,
            conditionals=artifact.conditionals,
        )
        data, override = self.build_shape_data(builder, composite)
        if override is not None and override.reason == OVERRIDE_BUILDER_FAILED:
            logger.warning(
                f"Classified as {composite.primary.value} but built {data.pattern} data",
                extra={"reason": override.reason},
            )

        floor_assumptions, central_conflict, tradeoffs = self.hoist_fields(data)
        shape = ProblemStructure(
            primary=composite.primary,
            confidence=composite.confidence,
            evidence=composite.evidence,
            patterns=composite.patterns,
            peaks=composite.peaks,
            peak_relationship=composite.peak_relationship,
            peak_pair_relations=composite.peak_pair_relations,
            data=data,
            signal_strength=signal_strength,
            transfer_question=generate_transfer_question(composite.primary, composite.patterns, composite.peaks),
            floor_assumptions=floor_assumptions,
            central_conflict=central_conflict,
            tradeoffs=tradeoffs,
            classification_override=override,
        )

        logger.info(
            "Structural analysis complete",
            extra={
                "primary": shape.primary.value,
                "confidence": shape.confidence,
                "pattern": data.pattern,
                "override": override.reason if override else None,
            },
        )
        return StructuralAnalysis(
            edges=edges,
            landscape=landscape,
            claims_with_leverage=claims_with_leverage,
            patterns=patterns,
            ghost_analysis=ghost_analysis,
            graph=graph,
            ratios=ratios,
            shape=shape,
        )


def compute_structural_analysis(artifact: Any, config: Optional[AppConfig] = None) -> StructuralAnalysis:
    return StructuralAnalysisOrchestrator(config=config).run(artifact)


def compute_problem_structure_from_artifact(artifact: Any, config: Optional[AppConfig] = None) -> ProblemStructure:
    return compute_structural_analysis(artifact, config=config).shape
