import logging
from typing import List, Dict, Optional, Tuple

from landscape.calculators.calculator_base import sanitize_edges
from landscape.core.types import (
    Edge, EnrichedClaim, GraphAnalysis, StructuralPatterns, PeakAnalysis, ShapeClassification,
    PeakSummary, PeakPairRelationship, CompositeShape, SecondaryPattern, PrimaryShape,
    KeystonePatternData, ChainPatternData,
    EDGE_CONFLICTS, EDGE_TRADEOFF, EDGE_SUPPORTS, EDGE_PREREQUISITE,
    PATTERN_DISSENT, PATTERN_CHALLENGED, PATTERN_KEYSTONE, PATTERN_CHAIN,
    PATTERN_FRAGILE, PATTERN_CONDITIONAL, PATTERN_ORPHANED,
)
from landscape.structure_agents.pattern_detectors import PatternDetector

logger = logging.getLogger(__name__)


class ShapeClassifier:
    """
    Assigns one of five primary shapes from peak/hill/floor support bands.

    Peaks are claims most models back; the edge types that connect peaks
    decide between fork, tradeoff, reinforcement and independence. Decision
    order is fixed and the first matching rule wins.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # SUPPORT BANDS
    # peak: > 50% of models and at least two supporters
    # hill: 25-50% (contested range)
    # floor: <= 25%
    # ═══════════════════════════════════════════════════════════════════════════
    PEAK_THRESHOLD: float = 0.5
    HILL_THRESHOLD: float = 0.25
    MIN_PEAK_SUPPORTERS: int = 2

    # Sparse confidence drops when enough hills suggest structure may still emerge
    SPARSE_HILL_RATIO_THRESHOLD: float = 0.3
    SPARSE_CONFIDENCE_EMERGING: float = 0.7
    SPARSE_CONFIDENCE_FRAGMENTED: float = 0.9

    SINGLE_PEAK_BASE_CONFIDENCE: float = 0.5
    SINGLE_PEAK_RATIO_WEIGHT: float = 0.4
    SINGLE_PEAK_MAX_CONFIDENCE: float = 0.9

    FORKED_CONFIDENCE: float = 0.85
    CONSTRAINED_CONFIDENCE: float = 0.8

    REINFORCING_BASE_CONFIDENCE: float = 0.5
    REINFORCING_RATIO_WEIGHT: float = 0.35
    REINFORCING_MAX_CONFIDENCE: float = 0.85

    PARALLEL_CONFIDENCE: float = 0.75
    DEFAULT_CONFIDENCE: float = 0.6

    # Support-ratio gap under which a peak conflict is evenly matched
    SYMMETRIC_CONFLICT_GAP: float = 0.15

    PATTERN_EVIDENCE: Dict[str, str] = {
        PATTERN_DISSENT: "⚡ Minority voice with potential insight",
        PATTERN_CHALLENGED: "⚠️ Dominant position under challenge",
        PATTERN_FRAGILE: "🧊 Peak(s) on weak foundations",
        PATTERN_CONDITIONAL: "🔀 Context-dependent branches",
        PATTERN_ORPHANED: "🏝️ Isolated high-support claim(s)",
    }

    def __init__(self, claims: List[EnrichedClaim], edges: List[Edge]):
        self.claims = list(claims)
        self.edges = sanitize_edges([c.id for c in self.claims], edges)

    def is_peak(self, claim: EnrichedClaim) -> bool:
        return claim.support_ratio > self.PEAK_THRESHOLD and len(claim.supporters) >= self.MIN_PEAK_SUPPORTERS

    def analyze_peaks(self) -> PeakAnalysis:
        peaks = [c for c in self.claims if self.is_peak(c)]
        hills = [c for c in self.claims if self.HILL_THRESHOLD < c.support_ratio <= self.PEAK_THRESHOLD]
        floor = [c for c in self.claims if c.support_ratio <= self.HILL_THRESHOLD]

        peak_ids = [p.id for p in peaks]
        peak_set = set(peak_ids)
        peak_edges = [
            e for e in self.edges
            if e.from_id in peak_set and e.to_id in peak_set and e.from_id != e.to_id
        ]
        return PeakAnalysis(
            peaks=peaks,
            hills=hills,
            floor=floor,
            peak_ids=peak_ids,
            peak_conflicts=[e for e in peak_edges if e.type == EDGE_CONFLICTS],
            peak_tradeoffs=[e for e in peak_edges if e.type == EDGE_TRADEOFF],
            peak_supports=[e for e in peak_edges if e.type in (EDGE_SUPPORTS, EDGE_PREREQUISITE)],
            peak_unconnected=len(peaks) > 1 and len(peak_edges) == 0,
        )

    def detect_primary_shape(self, peak_analysis: PeakAnalysis) -> ShapeClassification:
        peaks = peak_analysis.peaks
        hills = peak_analysis.hills

        if not peaks:
            hill_ratio = len(hills) / max(1, len(hills) + len(peak_analysis.floor))
            emerging = hill_ratio > self.SPARSE_HILL_RATIO_THRESHOLD
            return ShapeClassification(
                primary=PrimaryShape.SPARSE,
                confidence=self.SPARSE_CONFIDENCE_EMERGING if emerging else self.SPARSE_CONFIDENCE_FRAGMENTED,
                evidence=[
                    "No claims exceed 50% support threshold (0 peaks)",
                    f"{len(hills)} claim(s) in contested range (25-50% support)"
                    if hills else "No claims in contested range either",
                    "Insufficient signal to determine structure",
                    "Structure may emerge with additional perspectives"
                    if emerging else "Landscape appears genuinely fragmented",
                ],
            )

        if len(peaks) == 1:
            peak = peaks[0]
            return ShapeClassification(
                primary=PrimaryShape.CONVERGENT,
                confidence=min(
                    self.SINGLE_PEAK_MAX_CONFIDENCE,
                    self.SINGLE_PEAK_BASE_CONFIDENCE + peak.support_ratio * self.SINGLE_PEAK_RATIO_WEIGHT,
                ),
                evidence=[
                    f'Single dominant position: "{peak.label}" ({peak.support_ratio * 100:.0f}% support)',
                    "Narrative gravity toward consensus",
                ],
            )

        if peak_analysis.peak_conflicts:
            ratio_by_id = {p.id: p.support_ratio for p in peaks}
            symmetric = [
                e for e in peak_analysis.peak_conflicts
                if abs(ratio_by_id[e.from_id] - ratio_by_id[e.to_id]) < self.SYMMETRIC_CONFLICT_GAP
            ]
            return ShapeClassification(
                primary=PrimaryShape.FORKED,
                confidence=self.FORKED_CONFIDENCE,
                evidence=[
                    f"{len(peak_analysis.peak_conflicts)} conflict(s) between high-support positions",
                    f"{len(symmetric)} symmetric (evenly matched) conflict(s)"
                    if symmetric else "Asymmetric conflict: one position dominates",
                    "Mutually exclusive choices: cannot have both",
                    "This is a genuine fork, not noise",
                ],
            )

        if peak_analysis.peak_tradeoffs:
            return ShapeClassification(
                primary=PrimaryShape.CONSTRAINED,
                confidence=self.CONSTRAINED_CONFIDENCE,
                evidence=[
                    f"{len(peak_analysis.peak_tradeoffs)} tradeoff(s) between high-support positions",
                    "Can have both, but optimizing one hurts the other",
                    "Pareto frontier / engineering tradeoff",
                    "Choice requires accepting sacrifice",
                ],
            )

        if peak_analysis.peak_supports:
            avg_support = sum(p.support_ratio for p in peaks) / len(peaks)
            return ShapeClassification(
                primary=PrimaryShape.CONVERGENT,
                confidence=min(
                    self.REINFORCING_MAX_CONFIDENCE,
                    self.REINFORCING_BASE_CONFIDENCE + avg_support * self.REINFORCING_RATIO_WEIGHT,
                ),
                evidence=[
                    f"{len(peaks)} peaks with mutual reinforcement",
                    f"{len(peak_analysis.peak_supports)} supporting/prerequisite connection(s) between peaks",
                    "Peaks form cohesive consensus structure",
                ],
            )

        if peak_analysis.peak_unconnected:
            return ShapeClassification(
                primary=PrimaryShape.PARALLEL,
                confidence=self.PARALLEL_CONFIDENCE,
                evidence=[
                    f"{len(peaks)} independent high-support positions",
                    "No direct relationships between peaks",
                    "Orthogonal concerns: can pursue all simultaneously",
                    "May represent different dimensions of the problem",
                ],
            )

        return ShapeClassification(
            primary=PrimaryShape.CONVERGENT,
            confidence=self.DEFAULT_CONFIDENCE,
            evidence=[
                f"{len(peaks)} peaks with mixed/unclear relationships",
                "No major conflicts or tradeoffs detected",
                "Defaulting to convergent with lower confidence",
            ],
        )

    def compute_peak_pair_relationships(self, peaks: List[EnrichedClaim]) -> List[PeakPairRelationship]:
        by_pair: Dict[Tuple[str, str], List[Edge]] = {}
        for e in self.edges:
            by_pair.setdefault((e.from_id, e.to_id), []).append(e)

        relations: List[PeakPairRelationship] = []
        for i, a in enumerate(peaks):
            for b in peaks[i + 1:]:
                types = {e.type for e in by_pair.get((a.id, b.id), []) + by_pair.get((b.id, a.id), [])}
                relations.append(PeakPairRelationship(
                    a_id=a.id,
                    b_id=b.id,
                    conflicts=EDGE_CONFLICTS in types,
                    trades_off=EDGE_TRADEOFF in types,
                    supports=EDGE_SUPPORTS in types,
                    prerequisites=EDGE_PREREQUISITE in types,
                ))
        return relations

    @staticmethod
    def peak_relationship(peak_analysis: PeakAnalysis) -> str:
        if len(peak_analysis.peaks) <= 1:
            return "none"
        if peak_analysis.peak_conflicts:
            return "conflicting"
        if peak_analysis.peak_tradeoffs:
            return "trading-off"
        if peak_analysis.peak_supports:
            return "supporting"
        if peak_analysis.peak_unconnected:
            return "independent"
        return "none"

    def pattern_evidence(self, patterns: List[SecondaryPattern]) -> List[str]:
        lines: List[str] = []
        for p in patterns:
            if p.type == PATTERN_KEYSTONE and isinstance(p.data, KeystonePatternData):
                lines.append(f'🔑 Structure depends on "{p.data.keystone.label}"')
            elif p.type == PATTERN_CHAIN and isinstance(p.data, ChainPatternData):
                lines.append(f"⛓️ {p.data.length}-step dependency chain")
            elif p.type in self.PATTERN_EVIDENCE:
                lines.append(self.PATTERN_EVIDENCE[p.type])
        return lines

    def detect_composite_shape(
        self,
        graph: GraphAnalysis,
        patterns: StructuralPatterns,
        max_dissent_voices: Optional[int] = None,
    ) -> CompositeShape:
        """Primary shape plus secondary patterns, peak summaries and combined evidence."""
        peak_analysis = self.analyze_peaks()
        classification = self.detect_primary_shape(peak_analysis)

        detector = PatternDetector(self.claims, self.edges, max_dissent_voices=max_dissent_voices)
        secondary = detector.run(peak_analysis.peaks, peak_analysis.floor, graph, patterns)

        logger.info(
            f"Classified landscape as {classification.primary.value}",
            extra={
                "confidence": classification.confidence,
                "peaks": len(peak_analysis.peaks),
                "patterns": [p.type for p in secondary],
            },
        )
        return CompositeShape(
            primary=classification.primary,
            confidence=classification.confidence,
            patterns=secondary,
            peaks=[PeakSummary(id=p.id, label=p.label, support_ratio=p.support_ratio) for p in peak_analysis.peaks],
            peak_relationship=self.peak_relationship(peak_analysis),
            peak_pair_relations=self.compute_peak_pair_relationships(peak_analysis.peaks),
            evidence=classification.evidence + self.pattern_evidence(secondary),
        )
