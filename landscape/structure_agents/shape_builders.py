import logging
from collections import Counter
from typing import List, Dict, Optional, Tuple, Sequence, Any

import numpy as np

from landscape.calculators.calculator_base import sanitize_edges
from landscape.calculators.scoring_utils import is_hub_load_bearing
from landscape.core.types import (
    Edge, EnrichedClaim, GraphAnalysis, StructuralPatterns, ConflictInfo, ConflictCluster,
    TradeoffPair, ConditionalPruner, PrimaryShape, SecondaryPattern, DissentVoice,
    DissentPatternData, ClassificationOverride, ShapeData,
    FloorClaim, ClaimSummary, ChallengerInfo, StrongestOutlier, SettledShapeData,
    ChainStep, WeakLink, ChainFragility, LinearShapeData,
    KeystoneInfo, KeystoneDependency, CascadeConsequences, KeystoneShapeData,
    ConflictClaim, ConflictPosition, ChallengerGroup, CentralConflictIndividual,
    CentralConflictCluster, ContestedFloor, ContestedFragilities, ContestedShapeData,
    TradeoffOption, TradeoffEntry, DominatedOption, TradeoffShapeData,
    DimensionClaim, DimensionCluster, DimensionInteraction, DimensionalShapeData,
    SignalClaim, IsolatedClaimRef, OuterBoundary, ExploratoryShapeData,
    ContextualBranch, DefaultPath, ContextualShapeData,
    EDGE_CONFLICTS, EDGE_PREREQUISITE, EDGE_SUPPORTS,
    ROLE_CHALLENGER, CLAIM_TYPE_CONDITIONAL, PATTERN_DISSENT,
    INSIGHT_LEVERAGE_INVERSION, INSIGHT_EXPLICIT_CHALLENGER,
    INSIGHT_UNIQUE_PERSPECTIVE, INSIGHT_EDGE_CASE,
)

logger = logging.getLogger(__name__)

# Dominant claim type -> dimension theme
DIMENSION_THEMES = {
    "factual": "Evidence",
    "prescriptive": "Recommendations",
    "conditional": "Conditions",
    "contested": "Debates",
    "speculative": "Possibilities",
}

OVERRIDE_NO_CONFLICTS = "no_conflicts"
OVERRIDE_SINGLE_COMPONENT = "single_component"
OVERRIDE_NO_TRADEOFFS = "no_tradeoffs"
OVERRIDE_BUILDER_FAILED = "builder_failed"


def generate_why_it_matters(voice: DissentVoice, peaks: Sequence[Any]) -> str:
    if voice.insight_type == INSIGHT_LEVERAGE_INVERSION:
        return (f'Low support but high structural importance: if "{voice.label}" is right, '
                f'it reshapes the entire answer.')
    if voice.insight_type == INSIGHT_EXPLICIT_CHALLENGER:
        labels = {p.id: p.label for p in peaks}
        target_labels = [labels[t] for t in voice.targets if t in labels]
        if target_labels:
            return f'Directly challenges "{target_labels[0]}": the consensus may be missing something.'
        return "Explicitly contests the dominant view."
    if voice.insight_type == INSIGHT_UNIQUE_PERSPECTIVE:
        return "Comes from model(s) that don't support any consensus position: a genuinely different angle."
    if voice.insight_type == INSIGHT_EDGE_CASE:
        return "Conditional insight that may apply to your specific situation."
    return "Minority position that warrants consideration."


def generate_transfer_question(primary: PrimaryShape, patterns: List[SecondaryPattern],
                               peaks: Sequence[Any]) -> str:
    """User-facing question that turns the landscape shape into a decision prompt."""
    dissent = next((p for p in patterns if p.type == PATTERN_DISSENT), None)
    strongest = None
    if dissent is not None and isinstance(dissent.data, DissentPatternData):
        strongest = dissent.data.strongest_voice

    if primary == PrimaryShape.CONVERGENT:
        if strongest is not None:
            return (f'The consensus may be missing something. '
                    f'Is "{strongest.label}" onto something the majority missed?')
        return "For the consensus to hold, what assumption must be true? Is it true in your situation?"
    if primary == PrimaryShape.FORKED:
        peak_labels = " vs ".join(f'"{p.label}"' for p in list(peaks)[:2])
        return f"Two valid paths exist: {peak_labels}. Which constraint matters more to you?"
    if primary == PrimaryShape.CONSTRAINED:
        return "You can't maximize both. Which matters more to you?"
    if primary == PrimaryShape.PARALLEL:
        return "Which dimension is most relevant to your situation?"
    if strongest is not None:
        return (f'Signal is weak, but "{strongest.label}" may be the answer despite low support. '
                f"What's your context?")
    return "What specific question or constraint would clarify this?"


def _floor_claim(claim: EnrichedClaim, contested_by: Optional[List[str]] = None) -> FloorClaim:
    contested_by = contested_by or []
    return FloorClaim(
        id=claim.id,
        label=claim.label,
        text=claim.text,
        support_count=len(claim.supporters),
        support_ratio=claim.support_ratio,
        is_contested=len(contested_by) > 0,
        contested_by=contested_by,
    )


def _summary(claim: EnrichedClaim) -> ClaimSummary:
    return ClaimSummary(
        id=claim.id, label=claim.label, text=claim.text,
        support_count=len(claim.supporters), support_ratio=claim.support_ratio,
    )


def _conflict_claim(claim: EnrichedClaim) -> ConflictClaim:
    return ConflictClaim(
        id=claim.id, label=claim.label, text=claim.text,
        support_count=len(claim.supporters), support_ratio=claim.support_ratio,
        role=claim.role, is_high_support=claim.is_high_support, challenges=claim.challenges,
    )


class ShapeBuilder:
    """
    Builds the shape-specific payload for a classified landscape.

    `build(primary)` dispatches over PrimaryShape and applies the fallback
    rules; any fallback is reported as a ClassificationOverride next to the
    data so the label/data mismatch stays observable.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # THRESHOLDS
    # ═══════════════════════════════════════════════════════════════════════════
    FLOOR_STRONG_AVG_SUPPORT: float = 0.6
    FLOOR_MODERATE_AVG_SUPPORT: float = 0.4
    # Floor backed by fewer than half the models relies on a subset of perspectives
    FLOOR_MODEL_COVERAGE: float = 0.5
    CONTESTED_FLOOR_STRONG_COUNT: int = 2
    # Support gap beyond which one tradeoff option dominates the other
    DOMINATION_SUPPORT_GAP: float = 0.3
    LOOSE_CLUSTER_MIN_SIZE: int = 2
    LOOSE_CLUSTER_MAX_SIZE: int = 4
    SPARSE_ISLAND_SHARE: float = 0.5
    SPARSE_LOW_AVG_SUPPORT: float = 0.3
    SPARSE_GHOST_SHARE: float = 0.3
    SPARSE_MIN_STRONG_DEGREE: int = 2
    # Divisor turning degree into a support-comparable term for the outer boundary
    BOUNDARY_DEGREE_SCALE: float = 10.0

    BUILDERS: Dict[PrimaryShape, str] = {
        PrimaryShape.CONVERGENT: "_build_for_convergent",
        PrimaryShape.FORKED: "_build_for_forked",
        PrimaryShape.CONSTRAINED: "_build_for_constrained",
        PrimaryShape.PARALLEL: "_build_for_parallel",
        PrimaryShape.SPARSE: "_build_for_sparse",
    }

    def __init__(
        self,
        claims: List[EnrichedClaim],
        edges: List[Edge],
        graph: GraphAnalysis,
        patterns: StructuralPatterns,
        ghosts: Optional[List[str]] = None,
        model_count: int = 1,
        signal_strength: float = 0.0,
        conditionals: Optional[List[ConditionalPruner]] = None,
    ):
        self.claims = list(claims)
        self.claim_map: Dict[str, EnrichedClaim] = {c.id: c for c in self.claims}
        self.edges = sanitize_edges(self.claim_map.keys(), edges)
        self.graph = graph
        self.patterns = patterns
        self.ghosts = list(ghosts or [])
        self.model_count = max(model_count or 0, 1)
        self.signal_strength = signal_strength
        self.conditionals = list(conditionals or [])

    def _cascade_size(self, claim_id: str) -> Optional[int]:
        for risk in self.patterns.cascade_risks:
            if risk.source_id == claim_id:
                return len(risk.dependent_ids)
        return None

    # --- Dispatch ---
    def build(self, primary: PrimaryShape) -> Tuple[ShapeData, Optional[ClassificationOverride]]:
        method = getattr(self, self.BUILDERS[PrimaryShape(primary)])
        return method()

    def _override(self, reason: str, primary: PrimaryShape, data: ShapeData) -> ClassificationOverride:
        logger.warning(
            f"Shape data for {primary.value} built as {data.pattern}",
            extra={"reason": reason, "primary": primary.value, "built_pattern": data.pattern},
        )
        return ClassificationOverride(reason=reason, original_primary=primary, built_pattern=data.pattern)

    def _build_for_convergent(self):
        return self.build_convergent_data(), None

    def _build_for_forked(self):
        if not self.patterns.conflict_infos and not self.patterns.conflict_clusters:
            data = self.build_convergent_data()
            return data, self._override(OVERRIDE_NO_CONFLICTS, PrimaryShape.FORKED, data)
        return self.build_forked_data(), None

    def _build_for_constrained(self):
        if not self.patterns.tradeoffs:
            if self.patterns.conflict_infos:
                data = self.build_forked_data()
            else:
                data = self.build_sparse_data()
            return data, self._override(OVERRIDE_NO_TRADEOFFS, PrimaryShape.CONSTRAINED, data)
        return self.build_constrained_data(), None

    def _build_for_parallel(self):
        if self.graph.component_count < 2:
            data = self.build_convergent_data()
            return data, self._override(OVERRIDE_SINGLE_COMPONENT, PrimaryShape.PARALLEL, data)
        return self.build_parallel_data(), None

    def _build_for_sparse(self):
        return self.build_sparse_data(), None

    # --- Settled (convergent) ---
    def _infer_what_outlier_questions(self, outlier: EnrichedClaim, floor_claims: List[EnrichedClaim]) -> str:
        if outlier.challenges:
            target = self.claim_map.get(outlier.challenges)
            return f'the validity of "{target.label}"' if target else outlier.challenges
        if outlier.role == ROLE_CHALLENGER:
            most_supported = sorted(floor_claims, key=lambda c: -len(c.supporters))
            return f'the validity of "{most_supported[0].label}"' if most_supported else "the floor consensus"
        return "assumptions underlying the consensus"

    def build_convergent_data(self) -> SettledShapeData:
        floor_claims = [c for c in self.claims if c.is_high_support]
        floor_ids = {c.id for c in floor_claims}
        conflicts = [e for e in self.edges if e.type == EDGE_CONFLICTS]

        floor: List[FloorClaim] = []
        for c in floor_claims:
            contested_by = [
                e.to_id if e.from_id == c.id else e.from_id
                for e in conflicts if c.id in (e.from_id, e.to_id)
            ]
            floor.append(_floor_claim(c, contested_by))

        avg_support = float(np.mean([f.support_ratio for f in floor])) if floor else 0.0
        if avg_support > self.FLOOR_STRONG_AVG_SUPPORT:
            floor_strength = "strong"
        elif avg_support > self.FLOOR_MODERATE_AVG_SUPPORT:
            floor_strength = "moderate"
        else:
            floor_strength = "weak"

        challengers = [c for c in self.claims if c.role == ROLE_CHALLENGER or c.is_challenger]
        challenger_infos = []
        for c in challengers:
            target = self.claim_map.get(c.challenges) if c.challenges else None
            challenger_infos.append(ChallengerInfo(
                id=c.id, label=c.label, text=c.text, support_count=len(c.supporters),
                challenges=target.text if target else None,
                targets_claim=c.challenges,
            ))

        strongest_outlier: Optional[StrongestOutlier] = None
        outside = [c for c in self.claims if c.id not in floor_ids]
        if outside:
            inversion = next((c for c in self.claims if c.is_leverage_inversion), None)
            if inversion is not None:
                strongest_outlier = StrongestOutlier(
                    claim=_summary(inversion),
                    reason="leverage_inversion",
                    structural_role="Leverage inversion claim with high structural importance and low support",
                    what_it_questions=self._infer_what_outlier_questions(inversion, floor_claims),
                )
            elif challenger_infos:
                top = sorted(challenger_infos, key=lambda ci: -ci.support_count)[0]
                strongest_outlier = StrongestOutlier(
                    claim=_summary(self.claim_map[top.id]),
                    reason="explicit_challenger",
                    structural_role="Direct challenger to the floor",
                    what_it_questions=top.challenges or "the consensus position",
                )
            else:
                top_outside = sorted(outside, key=lambda c: -len(c.supporters))[0]
                strongest_outlier = StrongestOutlier(
                    claim=_summary(top_outside),
                    reason="minority_voice",
                    structural_role="Strongest claim outside consensus",
                    what_it_questions=self._infer_what_outlier_questions(top_outside, floor_claims),
                )

        floor_assumptions: List[str] = []
        floor_supporters = {s for c in floor_claims for s in c.supporters}
        if len(floor_supporters) < self.model_count * self.FLOOR_MODEL_COVERAGE:
            floor_assumptions.append("Relies on a subset of model perspectives")
        if not any(c.type == CLAIM_TYPE_CONDITIONAL for c in floor_claims):
            floor_assumptions.append("Assumes context-independence")
        contested_count = sum(1 for f in floor if f.is_contested)
        if contested_count:
            floor_assumptions.append(f"{contested_count} floor claim(s) are under active challenge")

        if strongest_outlier is not None:
            transfer_question = (f"For the consensus to hold, {strongest_outlier.what_it_questions} "
                                 f"must be wrong. Is it?")
        else:
            transfer_question = "For the consensus to hold, what assumption must be true? Is it true in your situation?"

        return SettledShapeData(
            floor=floor,
            floor_strength=floor_strength,
            challengers=challenger_infos,
            blind_spots=list(self.ghosts),
            confidence=avg_support,
            strongest_outlier=strongest_outlier,
            floor_assumptions=floor_assumptions,
            transfer_question=transfer_question,
        )

    # --- Contested (forked) ---
    def build_forked_data(self) -> ContestedShapeData:
        """Raises ValueError when there is neither a conflict cluster nor an individual conflict."""
        conflict_infos: List[ConflictInfo] = self.patterns.conflict_infos
        clusters: List[ConflictCluster] = self.patterns.conflict_clusters
        central = None

        if clusters:
            top_cluster = sorted(clusters, key=lambda cl: -len(cl.challenger_ids))[0]
            target = self.claim_map.get(top_cluster.target_id)
            if target is not None:
                challenger_claims = [c for c in self.claims if c.id in top_cluster.challenger_ids]
                central = CentralConflictCluster(
                    axis=top_cluster.axis,
                    target=ConflictPosition(claim=_conflict_claim(target), support_rationale=target.text),
                    challengers=ChallengerGroup(
                        claims=[_conflict_claim(c) for c in challenger_claims],
                        common_theme=top_cluster.theme,
                    ),
                    stakes={
                        "accepting_target": f"Accepting {target.label} means accepting the established position",
                        "accepting_challengers": "Accepting challengers means reconsidering the established position",
                    },
                )

        if central is None and conflict_infos:
            top = sorted(conflict_infos, key=lambda ci: -ci.significance)[0]
            central = CentralConflictIndividual(
                axis=top.axis.resolved,
                position_a=ConflictPosition(claim=top.claim_a, support_rationale=top.claim_a.text),
                position_b=ConflictPosition(claim=top.claim_b, support_rationale=top.claim_b.text),
                dynamics=top.dynamics,
                stakes=dict(top.stakes),
            )

        if central is None:
            raise ValueError("Forked shape requires at least one conflict")

        if isinstance(central, CentralConflictIndividual):
            used = {central.position_a.claim.id, central.position_b.claim.id}
        else:
            used = {central.target.claim.id} | {c.id for c in central.challengers.claims}

        secondary = [ci for ci in conflict_infos if ci.claim_a.id not in used or ci.claim_b.id not in used]
        floor_claims = [c for c in self.claims if c.is_high_support and c.id not in used]
        if len(floor_claims) > self.CONTESTED_FLOOR_STRONG_COUNT:
            strength = "strong"
        elif floor_claims:
            strength = "weak"
        else:
            strength = "absent"

        return ContestedShapeData(
            central_conflict=central,
            secondary_conflicts=secondary,
            floor=ContestedFloor(
                exists=len(floor_claims) > 0,
                claims=[_floor_claim(c) for c in floor_claims],
                strength=strength,
            ),
            fragilities=ContestedFragilities(
                leverage_inversions=list(self.patterns.leverage_inversions),
                articulation_points=list(self.graph.articulation_points),
            ),
            collapsing_question=f"What matters more: {central.axis}?",
        )

    # --- Tradeoff (constrained) ---
    def _option(self, pair_claim) -> TradeoffOption:
        claim = self.claim_map.get(pair_claim.id)
        return TradeoffOption(
            id=pair_claim.id,
            label=pair_claim.label,
            text=claim.text if claim else "",
            support_count=pair_claim.supporter_count,
            support_ratio=claim.support_ratio if claim else 0.0,
        )

    def build_constrained_data(self) -> TradeoffShapeData:
        symmetry_map = {"both_consensus": "both_high", "both_singular": "both_low"}
        pairs: List[TradeoffPair] = self.patterns.tradeoffs
        tradeoffs = [
            TradeoffEntry(
                id=f"tradeoff_{idx}",
                option_a=self._option(t.claim_a),
                option_b=self._option(t.claim_b),
                symmetry=symmetry_map.get(t.symmetry, "asymmetric"),
            )
            for idx, t in enumerate(pairs)
        ]

        dominated: List[DominatedOption] = []
        for t in tradeoffs:
            if abs(t.option_a.support_ratio - t.option_b.support_ratio) > self.DOMINATION_SUPPORT_GAP:
                if t.option_a.support_ratio > t.option_b.support_ratio:
                    higher, lower = t.option_a, t.option_b
                else:
                    higher, lower = t.option_b, t.option_a
                dominated.append(DominatedOption(
                    dominated=lower.id,
                    dominated_by=higher.id,
                    reason=f"{higher.label} has significantly higher support with no unique tradeoff benefit",
                ))

        in_tradeoff = {o.id for t in tradeoffs for o in (t.option_a, t.option_b)}
        return TradeoffShapeData(
            tradeoffs=tradeoffs,
            dominated_options=dominated,
            floor=[_floor_claim(c) for c in self.claims if c.is_high_support and c.id not in in_tradeoff],
        )

    # --- Dimensional (parallel) ---
    @staticmethod
    def infer_dimension_theme(claims: List[EnrichedClaim]) -> str:
        if not claims:
            return "Cluster (0 claims)"
        dominant_type = Counter(c.type for c in claims).most_common(1)[0][0]
        return DIMENSION_THEMES.get(dominant_type, f"Cluster ({len(claims)} claims)")

    def _component_claims(self, component: List[str]) -> List[EnrichedClaim]:
        members = set(component)
        return [c for c in self.claims if c.id in members]

    def build_parallel_data(self) -> DimensionalShapeData:
        dimensions: List[DimensionCluster] = []
        for component in self.graph.components:
            if len(component) < 2:
                continue
            members = self._component_claims(component)
            member_ids = {c.id for c in members}
            internal = sum(1 for e in self.edges if e.from_id in member_ids and e.to_id in member_ids)
            possible = len(members) * (len(members) - 1)
            dimensions.append(DimensionCluster(
                id=f"dim_{len(dimensions)}",
                theme=self.infer_dimension_theme(members),
                claims=[DimensionClaim(id=c.id, label=c.label, text=c.text, support_count=len(c.supporters))
                        for c in members],
                cohesion=internal / possible if possible > 0 else 0.0,
                avg_support=float(np.mean([c.support_ratio for c in members])) if members else 0.0,
            ))
        dimensions.sort(key=lambda d: -len(d.claims))

        member_of: Dict[str, str] = {c.id: d.id for d in dimensions for c in d.claims}
        interactions: List[DimensionInteraction] = []
        for i, dim_a in enumerate(dimensions):
            for dim_b in dimensions[i + 1:]:
                cross = [
                    e for e in self.edges
                    if {member_of.get(e.from_id), member_of.get(e.to_id)} == {dim_a.id, dim_b.id}
                ]
                if any(e.type == EDGE_CONFLICTS for e in cross):
                    relationship = "conflicting"
                elif any(e.type in (EDGE_SUPPORTS, EDGE_PREREQUISITE) for e in cross):
                    relationship = "overlapping"
                else:
                    relationship = "independent"
                interactions.append(DimensionInteraction(
                    dimension_a=dim_a.id, dimension_b=dim_b.id, relationship=relationship,
                ))

        dominant = dimensions[0] if dimensions else None
        hidden = dimensions[-1] if len(dimensions) > 1 else None
        blind_spots: List[str] = []
        if hidden is not None:
            blind_spots.append(f'"{hidden.theme}" perspective with {len(hidden.claims)} claim(s)')
        themes = {d.id: d.theme for d in dimensions}
        conflicting = [
            themes[i.dimension_b] if dominant is not None and i.dimension_a == dominant.id else themes[i.dimension_a]
            for i in interactions if i.relationship == "conflicting"
        ]
        if conflicting:
            blind_spots.append(f"Conflicts with: {', '.join(conflicting)}")

        if len(dimensions) > 1:
            transfer_question = f'Which dimension is most relevant: "{dominant.theme}" or "{hidden.theme}"?'
        else:
            transfer_question = "Are there perspectives not represented in these dimensions?"

        return DimensionalShapeData(
            dimensions=dimensions,
            interactions=interactions,
            gaps=list(self.ghosts),
            governing_conditions=[c.text for c in self.claims if c.type == CLAIM_TYPE_CONDITIONAL],
            dominant_dimension=dominant,
            hidden_dimension=hidden,
            dominant_blind_spots=blind_spots,
            transfer_question=transfer_question,
        )

    # --- Exploratory (sparse) ---
    def build_sparse_data(self) -> ExploratoryShapeData:
        claims = self.claims
        by_support = sorted(claims, key=lambda c: -len(c.supporters))
        by_degree = sorted(claims, key=lambda c: -(c.in_degree + c.out_degree))

        signals: List[SignalClaim] = []
        if by_support:
            top = by_support[0]
            signals.append(SignalClaim(id=top.id, label=top.label, text=top.text,
                                       support_count=len(top.supporters), reason="Highest support"))
            if by_degree[0].id != top.id:
                hub = by_degree[0]
                signals.append(SignalClaim(id=hub.id, label=hub.label, text=hub.text,
                                           support_count=len(hub.supporters), reason="Most connected"))

        loose: List[DimensionCluster] = []
        for component in self.graph.components:
            if not self.LOOSE_CLUSTER_MIN_SIZE <= len(component) <= self.LOOSE_CLUSTER_MAX_SIZE:
                continue
            members = self._component_claims(component)
            loose.append(DimensionCluster(
                id=f"cluster_{len(loose)}",
                theme=f"Cluster {len(loose) + 1}",
                claims=[DimensionClaim(id=c.id, label=c.label, text=c.text, support_count=len(c.supporters))
                        for c in members],
                cohesion=0.0,
                avg_support=float(np.mean([c.support_ratio for c in members])) if members else 0.0,
            ))

        isolated = [IsolatedClaimRef(id=c.id, label=c.label, text=c.text) for c in claims if c.is_isolated]

        supported = [c for c in claims if c.supporters]
        boundary = min(
            supported,
            key=lambda c: c.support_ratio + (c.in_degree + c.out_degree) / self.BOUNDARY_DEGREE_SCALE,
            default=None,
        )

        reasons: List[str] = []
        if self.graph.component_count > len(claims) * self.SPARSE_ISLAND_SHARE:
            reasons.append("Claims form many disconnected islands")
        avg_support = float(np.mean([c.support_ratio for c in claims])) if claims else 0.0
        if avg_support < self.SPARSE_LOW_AVG_SUPPORT:
            reasons.append("Low support concentration (models diverge)")
        if len(self.ghosts) > len(claims) * self.SPARSE_GHOST_SHARE:
            reasons.append("Many gaps identified (unexplored territory)")
        if all(c.in_degree + c.out_degree < self.SPARSE_MIN_STRONG_DEGREE for c in claims):
            reasons.append("No claims strongly connected (flat structure)")

        questions: List[str] = []
        if self.ghosts:
            questions.append(f"What about: {self.ghosts[0]}?")
        if isolated:
            questions.append(f'How does "{isolated[0].label}" relate to your situation?')
        if any(c.type == CLAIM_TYPE_CONDITIONAL for c in claims):
            questions.append("What is your specific context or constraints?")
        if not questions:
            questions.append("What outcome are you optimizing for?")

        return ExploratoryShapeData(
            strongest_signals=signals,
            loose_clusters=loose,
            isolated_claims=isolated,
            clarifying_questions=questions,
            signal_strength=self.signal_strength,
            outer_boundary=OuterBoundary(
                id=boundary.id, label=boundary.label, text=boundary.text,
                support_count=len(boundary.supporters),
                distance_reason="Lowest combined support and connectivity",
            ) if boundary is not None else None,
            sparsity_reasons=reasons,
            transfer_question="What specific question would help collapse this ambiguity?",
        )

    # --- Keystone ---
    def build_keystone_pattern_data(self) -> KeystoneShapeData:
        keystone_id = self.graph.hub_claim
        keystone = self.claim_map.get(keystone_id) if keystone_id else None
        if keystone is None:
            raise ValueError("Keystone pattern requires a hub claim")

        dependencies = [
            KeystoneDependency(
                id=e.to_id,
                label=self.claim_map[e.to_id].label,
                relationship=e.type,
            )
            for e in self.edges
            if e.from_id == keystone_id and e.type in (EDGE_PREREQUISITE, EDGE_SUPPORTS)
        ]
        cascade = self._cascade_size(keystone_id)
        cascade_size = cascade or len(dependencies)

        challenger_ids = set()
        for e in self.edges:
            if e.type == EDGE_CONFLICTS and keystone_id in (e.from_id, e.to_id):
                challenger_ids.add(e.to_id if e.from_id == keystone_id else e.from_id)
        challengers = [
            ChallengerInfo(
                id=c.id, label=c.label, text=c.text, support_count=len(c.supporters),
                challenges=c.challenges, targets_claim=keystone_id,
            )
            for c in self.claims if c.role == ROLE_CHALLENGER and c.id in challenger_ids
        ]

        supporter_count = len(keystone.supporters)
        if supporter_count <= 1:
            transfer_question = (f"The keystone has only {supporter_count} supporter(s). "
                                 f'Is "{keystone.label}" actually true in your situation?')
        else:
            transfer_question = f'Everything flows from "{keystone.label}". Have you validated this foundation?'

        return KeystoneShapeData(
            keystone=KeystoneInfo(
                id=keystone.id, label=keystone.label, text=keystone.text,
                support_count=supporter_count, support_ratio=keystone.support_ratio,
                dominance=self.graph.hub_dominance,
                is_fragile=supporter_count <= 1,
                is_load_bearing=is_hub_load_bearing(keystone_id, self.edges),
            ),
            dependencies=dependencies,
            cascade_size=cascade_size,
            challengers=challengers,
            cascade_consequences=CascadeConsequences(
                directly_affected=len(dependencies),
                transitively_affected=cascade_size,
                survives=0,
            ),
            transfer_question=transfer_question,
        )

    # --- Linear (chain) ---
    def build_chain_pattern_data(self) -> LinearShapeData:
        steps: List[ChainStep] = []
        for position, claim_id in enumerate(self.graph.longest_chain):
            claim = self.claim_map.get(claim_id)
            if claim is None:
                continue
            is_weak = len(claim.supporters) == 1
            steps.append(ChainStep(
                id=claim.id,
                label=claim.label,
                text=claim.text,
                support_count=len(claim.supporters),
                support_ratio=claim.support_ratio,
                position=position,
                enables=[e.to_id for e in self.edges if e.from_id == claim_id and e.type == EDGE_PREREQUISITE],
                is_weak_link=is_weak,
                weak_reason=(f"Only 1 supporter - cascade affects {self._cascade_size(claim_id) or 0} claims"
                             if is_weak else None),
            ))

        weak_links = [WeakLink(step=s, cascade_size=self._cascade_size(s.id) or 0) for s in steps if s.is_weak_link]
        most_vulnerable = sorted(weak_links, key=lambda w: -w.cascade_size)[0] if weak_links else None

        if weak_links:
            transfer_question = f'Step "{weak_links[0].step.label}" is a weak link. Is it actually required?'
        else:
            transfer_question = "Where are you in this sequence? Have you validated the early steps?"

        return LinearShapeData(
            chain=steps,
            chain_length=len(steps),
            weak_links=weak_links,
            terminal_claim=steps[-1] if steps else None,
            chain_fragility=ChainFragility(
                weak_link_count=len(weak_links),
                total_steps=len(steps),
                fragility_ratio=len(weak_links) / len(steps) if steps else 0.0,
                most_vulnerable_step=most_vulnerable,
            ),
            transfer_question=transfer_question,
        )

    # --- Contextual ---
    def build_contextual_data(self) -> ContextualShapeData:
        """
        Branches keyed by the conditions that gate them.

        Conditional pruners are preferred; without them, conditional-typed
        claims and their prerequisite children form the branches. Raises
        ValueError when the landscape has no conditions at all.
        """
        branches: List[ContextualBranch] = []
        missing: List[str] = []

        if self.conditionals:
            for pruner in self.conditionals:
                members = [self.claim_map[cid] for cid in pruner.affected_claims if cid in self.claim_map]
                if members:
                    branches.append(ContextualBranch(
                        condition=pruner.question or pruner.id,
                        claims=[_floor_claim(c) for c in members],
                    ))
                elif pruner.question:
                    missing.append(pruner.question)
        else:
            for claim in self.claims:
                if claim.type != CLAIM_TYPE_CONDITIONAL:
                    continue
                children = [
                    self.claim_map[e.to_id] for e in self.edges
                    if e.from_id == claim.id and e.type == EDGE_PREREQUISITE
                ]
                if children:
                    branches.append(ContextualBranch(
                        condition=claim.text or claim.label,
                        claims=[_floor_claim(c) for c in children],
                    ))

        if not branches and not missing:
            raise ValueError("Contextual shape requires at least one condition")

        branched = {fc.id for b in branches for fc in b.claims}
        default_claims = [c for c in self.claims if c.is_high_support and c.id not in branched]
        missing.extend(self.ghosts)

        return ContextualShapeData(
            governing_condition=branches[0].condition if branches else missing[0],
            branches=branches,
            default_path=DefaultPath(
                exists=len(default_claims) > 0,
                claims=[_floor_claim(c) for c in default_claims],
            ),
            missing_context=missing,
        )


_unmapped = set(PrimaryShape) - set(ShapeBuilder.BUILDERS)
if _unmapped:
    raise RuntimeError(f"No shape builder registered for {sorted(s.value for s in _unmapped)}")
