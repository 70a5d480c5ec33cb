import logging
from collections import deque
from dataclasses import replace
from typing import List, Dict, Set, Optional, Iterable

from landscape.calculators.calculator_base import sanitize_edges
from landscape.calculators.scoring_utils import determine_tension_dynamics
from landscape.core.types import (
    Claim, Edge, EnrichedClaim, CascadeRisk, ClaimCount, ConflictPair, TradeoffPair,
    ConvergencePoint, ConflictClaim, ConflictAxis, ConflictInfo, ConflictCluster,
    LeverageInversion, GhostAnalysis, StructuralPatterns,
    EDGE_CONFLICTS, EDGE_TRADEOFF, EDGE_PREREQUISITE, EDGE_SUPPORTS,
    ROLE_CHALLENGER, ROLE_ANCHOR,
)

logger = logging.getLogger(__name__)


def _cascade_depth(source_id: str, children: Dict[str, List[str]]) -> int:
    """Deepest preorder DFS level reachable from source; each claim is visited once."""
    visited: Set[str] = set()
    max_depth = 0
    stack = [(source_id, 0)]
    while stack:
        node, depth = stack.pop()
        if node in visited:
            continue
        visited.add(node)
        max_depth = max(max_depth, depth)
        for child in reversed(children.get(node, [])):
            stack.append((child, depth + 1))
    return max_depth


def detect_cascade_risks(edges: List[Edge], claims: Iterable[Claim]) -> List[CascadeRisk]:
    """For every claim that is a prerequisite of something, the transitive set of dependents."""
    claim_list = list(claims)
    labels = {c.id: c.label for c in claim_list}
    prereqs = [e for e in sanitize_edges(labels.keys(), edges) if e.type == EDGE_PREREQUISITE]

    by_source: Dict[str, List[str]] = {}
    for e in prereqs:
        by_source.setdefault(e.from_id, []).append(e.to_id)

    risks: List[CascadeRisk] = []
    for source_id, direct in by_source.items():
        dependents: List[str] = []
        seen: Set[str] = set()
        queue = deque(direct)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            dependents.append(current)
            queue.extend(by_source.get(current, []))

        risks.append(CascadeRisk(
            source_id=source_id,
            source_label=labels.get(source_id) or source_id,
            dependent_ids=dependents,
            dependent_labels=[labels[d] for d in dependents if d in labels],
            depth=_cascade_depth(source_id, by_source),
        ))
    return risks


def _claim_count(claim: EnrichedClaim) -> ClaimCount:
    return ClaimCount(id=claim.id, label=claim.label, supporter_count=len(claim.supporters))


def _conflict_claim(claim: EnrichedClaim) -> ConflictClaim:
    return ConflictClaim(
        id=claim.id,
        label=claim.label,
        text=claim.text,
        support_count=len(claim.supporters),
        support_ratio=claim.support_ratio,
        role=claim.role,
        is_high_support=claim.is_high_support,
        challenges=claim.challenges,
    )


class ConflictAnalyzer:
    """
    Relationship-level patterns over enriched claims: conflicts, tradeoffs,
    convergence points, leverage inversions and conflict clusters.
    """

    # Conflicts involving a challenger weigh more when ranking significance
    CHALLENGER_SIGNIFICANCE_MULTIPLIER: float = 1.5
    MIN_CLUSTER_CHALLENGERS: int = 2
    MIN_CONVERGENCE_SOURCES: int = 2
    # Connectivity above this share of leverage marks a high-connectivity inversion
    INVERSION_CONNECTIVITY_SHARE: float = 0.4

    def __init__(self, claims: List[EnrichedClaim], edges: List[Edge], top_claim_ids: Optional[Set[str]] = None):
        self.claims = list(claims)
        self.claim_map: Dict[str, EnrichedClaim] = {c.id: c for c in self.claims}
        self.edges = sanitize_edges(self.claim_map.keys(), edges)
        self.top_claim_ids = set(top_claim_ids) if top_claim_ids is not None else {
            c.id for c in self.claims if c.is_high_support
        }

    def _pairs(self, edge_type: str):
        for e in self.edges:
            if e.type == edge_type:
                yield self.claim_map[e.from_id], self.claim_map[e.to_id]

    def detect_leverage_inversions(self) -> List[LeverageInversion]:
        inversions: List[LeverageInversion] = []
        for claim in self.claims:
            if not claim.is_leverage_inversion:
                continue
            prereq_to = [e.to_id for e in self.edges if e.type == EDGE_PREREQUISITE and e.from_id == claim.id]
            high_support_targets = [t for t in prereq_to if t in self.top_claim_ids]

            if claim.role == ROLE_CHALLENGER and high_support_targets:
                reason, affected = "challenger_prerequisite_to_consensus", high_support_targets
            elif prereq_to:
                reason, affected = "singular_foundation", prereq_to
            elif claim.leverage_factors.connectivity_weight > claim.leverage * self.INVERSION_CONNECTIVITY_SHARE:
                reason, affected = "high_connectivity_low_support", []
            else:
                continue
            inversions.append(LeverageInversion(
                claim_id=claim.id,
                claim_label=claim.label,
                supporter_count=len(claim.supporters),
                reason=reason,
                affected_claims=list(affected),
            ))
        return inversions

    def detect_conflicts(self) -> List[ConflictPair]:
        return [
            ConflictPair(
                claim_a=_claim_count(a),
                claim_b=_claim_count(b),
                is_both_consensus=a.id in self.top_claim_ids and b.id in self.top_claim_ids,
                dynamics=determine_tension_dynamics(a, b),
            )
            for a, b in self._pairs(EDGE_CONFLICTS)
        ]

    def detect_tradeoffs(self) -> List[TradeoffPair]:
        pairs: List[TradeoffPair] = []
        for a, b in self._pairs(EDGE_TRADEOFF):
            a_top = a.id in self.top_claim_ids
            b_top = b.id in self.top_claim_ids
            if a_top and b_top:
                symmetry = "both_consensus"
            elif not a_top and not b_top:
                symmetry = "both_singular"
            else:
                symmetry = "asymmetric"
            pairs.append(TradeoffPair(claim_a=_claim_count(a), claim_b=_claim_count(b), symmetry=symmetry))
        return pairs

    def detect_convergence_points(self) -> List[ConvergencePoint]:
        """Targets reached by at least two sources over the same reinforcing edge type."""
        grouped: Dict[tuple, List[str]] = {}
        for e in self.edges:
            if e.type in (EDGE_PREREQUISITE, EDGE_SUPPORTS):
                grouped.setdefault((e.to_id, e.type), []).append(e.from_id)

        points: List[ConvergencePoint] = []
        for (target_id, edge_type), sources in grouped.items():
            if len(sources) < self.MIN_CONVERGENCE_SOURCES:
                continue
            points.append(ConvergencePoint(
                target_id=target_id,
                target_label=self.claim_map[target_id].label,
                source_ids=list(sources),
                source_labels=[self.claim_map[s].label for s in sources],
                edge_type=edge_type,
            ))
        return points

    def detect_isolated_claims(self) -> List[str]:
        return [c.id for c in self.claims if c.is_isolated]

    def detect_enriched_conflicts(self) -> List[ConflictInfo]:
        """Rich conflict records, most significant first (stable on ties)."""
        infos: List[ConflictInfo] = []
        for a, b in self._pairs(EDGE_CONFLICTS):
            inferred_axis = f"{a.label} vs {b.label}"
            if a.challenges == b.id:
                explicit = b.text
            elif b.challenges == a.id:
                explicit = a.text
            else:
                explicit = None
            involves_challenger = a.role == ROLE_CHALLENGER or b.role == ROLE_CHALLENGER
            multiplier = self.CHALLENGER_SIGNIFICANCE_MULTIPLIER if involves_challenger else 1.0

            infos.append(ConflictInfo(
                id=f"{a.id}_vs_{b.id}",
                claim_a=_conflict_claim(a),
                claim_b=_conflict_claim(b),
                axis=ConflictAxis(
                    explicit=explicit,
                    inferred=inferred_axis,
                    resolved=explicit if explicit is not None else inferred_axis,
                ),
                combined_support=len(a.supporters) + len(b.supporters),
                support_delta=abs(len(a.supporters) - len(b.supporters)),
                dynamics=determine_tension_dynamics(a, b),
                is_both_high_support=a.is_high_support and b.is_high_support,
                is_high_vs_low=a.is_high_support != b.is_high_support,
                involves_challenger=involves_challenger,
                involves_anchor=a.role == ROLE_ANCHOR or b.role == ROLE_ANCHOR,
                involves_keystone=a.is_keystone or b.is_keystone,
                stakes={
                    "choosing_a": f"Prioritizing {a.label}",
                    "choosing_b": f"Prioritizing {b.label}",
                },
                significance=(a.support_ratio + b.support_ratio) * multiplier,
            ))
        return sorted(infos, key=lambda info: -info.significance)

    def detect_conflict_clusters(self, conflicts: List[ConflictInfo]) -> List[ConflictCluster]:
        """Targets facing at least two challengers, by explicit `challenges` or high-vs-low support."""
        challengers_by_target: Dict[str, List[str]] = {}
        for c in conflicts:
            a, b = c.claim_a, c.claim_b
            if a.challenges == b.id:
                target, challenger = b.id, a.id
            elif b.challenges == a.id:
                target, challenger = a.id, b.id
            elif b.is_high_support and not a.is_high_support:
                target, challenger = b.id, a.id
            elif a.is_high_support and not b.is_high_support:
                target, challenger = a.id, b.id
            else:
                continue
            challengers_by_target.setdefault(target, []).append(challenger)

        clusters: List[ConflictCluster] = []
        for target_id, challengers in challengers_by_target.items():
            if len(challengers) < self.MIN_CLUSTER_CHALLENGERS:
                continue
            target = self.claim_map.get(target_id)
            clusters.append(ConflictCluster(
                id=f"cluster_{len(clusters)}",
                axis=f"Multiple challenges to {target.label if target else target_id}",
                target_id=target_id,
                challenger_ids=challengers,
                theme="Dissent against consensus",
            ))
        return clusters

    def analyze_ghosts(self, ghosts: List[str]) -> GhostAnalysis:
        challenger_ids = [c.id for c in self.claims if c.role == ROLE_CHALLENGER or c.is_challenger]
        return GhostAnalysis(
            count=len(ghosts),
            may_extend_challenger=len(ghosts) > 0 and len(challenger_ids) > 0,
            challenger_ids=challenger_ids,
        )

    def run(self, cascade_risks: List[CascadeRisk]) -> StructuralPatterns:
        conflict_infos = self.detect_enriched_conflicts()
        clusters = self.detect_conflict_clusters(conflict_infos)

        cluster_by_pair: Dict[frozenset, str] = {}
        for cluster in clusters:
            for challenger_id in cluster.challenger_ids:
                cluster_by_pair[frozenset((cluster.target_id, challenger_id))] = cluster.id
        conflict_infos = [
            replace(info, cluster_id=cluster_by_pair.get(frozenset((info.claim_a.id, info.claim_b.id))))
            for info in conflict_infos
        ]

        patterns = StructuralPatterns(
            leverage_inversions=self.detect_leverage_inversions(),
            cascade_risks=list(cascade_risks),
            conflicts=self.detect_conflicts(),
            conflict_infos=conflict_infos,
            conflict_clusters=clusters,
            tradeoffs=self.detect_tradeoffs(),
            convergence_points=self.detect_convergence_points(),
            isolated_claims=self.detect_isolated_claims(),
        )
        logger.debug(
            "Relationship patterns detected",
            extra={
                "conflicts": len(patterns.conflicts),
                "clusters": len(clusters),
                "tradeoffs": len(patterns.tradeoffs),
                "inversions": len(patterns.leverage_inversions),
            },
        )
        return patterns
