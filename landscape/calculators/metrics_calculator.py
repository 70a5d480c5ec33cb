import logging
import pandas as pd
from dataclasses import replace
from typing import Dict, Optional, List, Any, Set, Iterable, Tuple

from landscape.calculators.calculator_base import CalculatorBase
from landscape.calculators.scoring_utils import get_top_n_count, is_in_top_percentile
from landscape.core.types import (
    Claim, Edge, EnrichedClaim, LeverageFactors, LandscapeMetrics, CoreRatios,
    GraphAnalysis, CascadeRisk, CognitiveArtifact,
    EDGE_SUPPORTS, EDGE_CONFLICTS, EDGE_TRADEOFF, EDGE_PREREQUISITE,
    ROLE_ANCHOR, ROLE_BRANCH, ROLE_CHALLENGER, ROLE_SUPPLEMENT, ROLE_UNSPECIFIED,
    CLAIM_TYPE_CONDITIONAL, CLAIM_TYPE_PRESCRIPTIVE,
)

logger = logging.getLogger(__name__)


class MetricsCalculator(CalculatorBase):
    """
    Per-claim structural scores and landscape-level ratios.

    Works on a claim list whose roles have already been recomputed from
    topology. All edges are filtered to known claims before scoring.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # LEVERAGE WEIGHTS
    # Design heuristics, not learned. Preserved exactly for behavioral parity.
    # A challenger carries the most structural weight because it is the claim
    # most likely to reshape the answer if correct.
    # ═══════════════════════════════════════════════════════════════════════════
    SUPPORT_RATIO_WEIGHT: float = 2.0
    ROLE_WEIGHTS: Dict[str, float] = {
        ROLE_CHALLENGER: 4.0,
        ROLE_ANCHOR: 2.0,
        ROLE_BRANCH: 1.0,
        ROLE_SUPPLEMENT: 0.5,
    }
    # Enabling other claims counts double; being enabled counts once
    PREREQ_OUT_WEIGHT: float = 2.0
    PREREQ_IN_WEIGHT: float = 1.0
    CONFLICT_EDGE_WEIGHT: float = 1.5
    GENERAL_DEGREE_WEIGHT: float = 0.25
    # Roots of prerequisite chains get a flat bonus
    CHAIN_ROOT_POSITION_WEIGHT: float = 2.0

    # ═══════════════════════════════════════════════════════════════════════════
    # PERCENTILE COHORTS
    # ═══════════════════════════════════════════════════════════════════════════
    TOP_SUPPORT_RATIO: float = 0.3  # Top 30% by support form the high-support cohort
    OUTLIER_PERCENTILE: float = 0.2  # Top quintile of support skew
    OUTLIER_MIN_SUPPORTERS: int = 2
    KEYSTONE_PERCENTILE: float = 0.2
    KEYSTONE_MIN_OUT_DEGREE: int = 2
    # Connectivity above this share of total leverage marks a low-support claim as inverted
    INVERSION_CONNECTIVITY_SHARE: float = 0.4

    def __init__(self, claims: List[Claim], edges: List[Edge], model_count: int,
                 top_support_ratio: Optional[float] = None):
        self.claims = list(claims)
        self.edges = list(edges)
        self.model_count = model_count
        self.top_support_ratio = top_support_ratio if top_support_ratio is not None else self.TOP_SUPPORT_RATIO
        self.calculations: Dict[str, Any] = {}

    @property
    def safe_model_count(self) -> int:
        return max(self.model_count or 0, 1)

    # --- Per-claim ratios ---
    def compute_claim_ratios(self, claim: Claim) -> EnrichedClaim:
        """Support ratio, leverage breakdown, degrees and chain position for one claim.

        Percentile flags are left at their defaults; see assign_percentile_flags.
        """
        out_edges = self.outgoing.get(claim.id, [])
        in_edges = self.incoming.get(claim.id, [])
        touching = {e.key: e for e in out_edges + in_edges}

        prereq_out = sum(1 for e in out_edges if e.type == EDGE_PREREQUISITE)
        prereq_in = sum(1 for e in in_edges if e.type == EDGE_PREREQUISITE)
        conflict_edges = sum(1 for e in touching.values() if e.type == EDGE_CONFLICTS)
        # A self-loop appears in both lists but is one edge
        general_degree = len(touching)

        is_chain_root = prereq_out > 0 and prereq_in == 0
        is_chain_terminal = prereq_in > 0 and prereq_out == 0

        support_ratio = len(claim.supporters) / self.safe_model_count
        factors = LeverageFactors(
            support_weight=support_ratio * self.SUPPORT_RATIO_WEIGHT,
            role_weight=self.ROLE_WEIGHTS.get(claim.role, self.ROLE_WEIGHTS[ROLE_SUPPLEMENT]),
            connectivity_weight=(
                prereq_out * self.PREREQ_OUT_WEIGHT
                + prereq_in * self.PREREQ_IN_WEIGHT
                + conflict_edges * self.CONFLICT_EDGE_WEIGHT
                + general_degree * self.GENERAL_DEGREE_WEIGHT
            ),
            position_weight=self.CHAIN_ROOT_POSITION_WEIGHT if is_chain_root else 0.0,
        )
        leverage = (
            factors.support_weight + factors.role_weight
            + factors.connectivity_weight + factors.position_weight
        )
        # Structural weight relative to what support alone would predict
        support_skew = leverage / (support_ratio * self.SUPPORT_RATIO_WEIGHT + 1)

        return EnrichedClaim(
            id=claim.id,
            label=claim.label,
            text=claim.text,
            supporters=list(claim.supporters),
            type=claim.type,
            role=claim.role,
            challenges=claim.challenges,
            role_as_provided=claim.role_as_provided,
            role_computed=claim.role,
            support_ratio=support_ratio,
            leverage=leverage,
            leverage_factors=factors,
            keystone_score=float(len(out_edges) * len(claim.supporters)),
            support_skew=support_skew,
            in_degree=len(in_edges),
            out_degree=len(out_edges),
            is_chain_root=is_chain_root,
            is_chain_terminal=is_chain_terminal,
        )

    def compute_all_claim_ratios(self) -> List[EnrichedClaim]:
        return [self.compute_claim_ratios(c) for c in self.claims]

    def select_top_claim_ids(self, claims: List[EnrichedClaim]) -> Set[str]:
        """High-support cohort: the top `top_support_ratio` share by support ratio (stable on ties)."""
        if not claims:
            return set()
        top_count = get_top_n_count(len(claims), self.top_support_ratio)
        ranked = sorted(claims, key=lambda c: -c.support_ratio)
        return {c.id for c in ranked[:top_count]}

    # --- Percentile flags ---
    def assign_percentile_flags(
        self,
        claims: List[EnrichedClaim],
        cascade_risks: List[CascadeRisk],
        top_claim_ids: Set[str],
    ) -> List[EnrichedClaim]:
        """Return new claims with cohort flags set. Inputs are not mutated."""
        valid_edges = self.valid_edges
        connected = {e.from_id for e in valid_edges} | {e.to_id for e in valid_edges}
        contested = {
            cid for e in valid_edges if e.type == EDGE_CONFLICTS for cid in (e.from_id, e.to_id)
        }
        prereq_targets: Dict[str, List[str]] = {}
        for e in valid_edges:
            if e.type == EDGE_PREREQUISITE:
                prereq_targets.setdefault(e.from_id, []).append(e.to_id)
        depth_by_source = {r.source_id: r.depth for r in cascade_risks}

        skews = [c.support_skew for c in claims]
        keystone_cohort: Set[str] = set()
        if claims:
            ks_count = get_top_n_count(len(claims), self.KEYSTONE_PERCENTILE)
            ranked = sorted(claims, key=lambda c: -c.keystone_score)
            keystone_cohort = {c.id for c in ranked[:ks_count]}

        flagged: List[EnrichedClaim] = []
        for claim in claims:
            is_high_support = claim.id in top_claim_ids
            targets = prereq_targets.get(claim.id, [])

            challenger_into_top = claim.role == ROLE_CHALLENGER and any(t in top_claim_ids for t in targets)
            is_leverage_inversion = not is_high_support and (
                challenger_into_top
                or len(targets) > 0
                or claim.leverage_factors.connectivity_weight > self.INVERSION_CONNECTIVITY_SHARE * claim.leverage
            )

            flagged.append(replace(
                claim,
                is_high_support=is_high_support,
                is_leverage_inversion=is_leverage_inversion,
                is_outlier=(
                    is_in_top_percentile(claim.support_skew, skews, self.OUTLIER_PERCENTILE)
                    and len(claim.supporters) >= self.OUTLIER_MIN_SUPPORTERS
                ),
                is_keystone=(
                    claim.id in keystone_cohort
                    and claim.keystone_score > 0
                    and claim.out_degree >= self.KEYSTONE_MIN_OUT_DEGREE
                ),
                is_contested=claim.id in contested,
                is_conditional=claim.type == CLAIM_TYPE_CONDITIONAL,
                is_challenger=claim.role == ROLE_CHALLENGER,
                is_isolated=claim.id not in connected,
                chain_depth=depth_by_source.get(claim.id, 0),
            ))
        return flagged

    # --- Landscape ratios ---
    def calculate_concentration(self, claims: List[EnrichedClaim]) -> Optional[float]:
        if not claims:
            return self._store_result('concentration', 0.0)
        max_supporters = max(len(c.supporters) for c in claims)
        return self._store_result('concentration', max_supporters / self.safe_model_count)

    def calculate_alignment(self, claims: List[EnrichedClaim]) -> Optional[float]:
        """Share of reinforcing edges among high-support claims. None when they share no edges."""
        high = {c.id for c in claims if c.is_high_support}
        among = [e for e in self.valid_edges if e.from_id in high and e.to_id in high]
        if not among:
            return None
        reinforcing = sum(1 for e in among if e.type in (EDGE_SUPPORTS, EDGE_PREREQUISITE))
        return self._store_result('alignment', reinforcing / len(among))

    def calculate_tension(self) -> Optional[float]:
        total = len(self.valid_edges)
        if total == 0:
            return self._store_result('tension', 0.0)
        tense = sum(1 for e in self.valid_edges if e.type in (EDGE_CONFLICTS, EDGE_TRADEOFF))
        return self._store_result('tension', tense / total)

    def calculate_fragmentation(self, claims: List[EnrichedClaim], graph: GraphAnalysis) -> Optional[float]:
        extra_components = max(graph.component_count - 1, 0)
        return self._store_result('fragmentation', extra_components / max(1, len(claims) - 1))

    def calculate_depth(self, claims: List[EnrichedClaim], graph: GraphAnalysis) -> Optional[float]:
        if not claims:
            return self._store_result('depth', 0.0)
        return self._store_result('depth', len(graph.longest_chain) / len(claims))

    def compute_core_ratios(self, claims: List[EnrichedClaim], graph: GraphAnalysis) -> CoreRatios:
        """Informational aggregates; no flag reads these."""
        self.calculations.pop('alignment', None)
        self._collect_new_results([
            lambda: self.calculate_concentration(claims),
            lambda: self.calculate_alignment(claims),
            self.calculate_tension,
            lambda: self.calculate_fragmentation(claims, graph),
            lambda: self.calculate_depth(claims, graph),
        ])
        return CoreRatios(
            concentration=self.calculations.get('concentration', 0.0),
            alignment=self.calculations.get('alignment'),
            tension=self.calculations.get('tension', 0.0),
            fragmentation=self.calculations.get('fragmentation', 0.0),
            depth=self.calculations.get('depth', 0.0),
        )


def _dominant(values: List[str], default: str) -> Tuple[str, Dict[str, int]]:
    if not values:
        return default, {}
    # sort=False keeps first-appearance order so idxmax breaks ties deterministically
    counts = pd.Series(values, dtype=object).value_counts(sort=False)
    distribution = {str(k): int(v) for k, v in counts.items()}
    return str(counts.idxmax()), distribution


def resolve_model_count(claims: Iterable[Claim], explicit: Optional[int]) -> int:
    """Explicit positive count, raised to cover every distinct supporter; else the distinct count; else 1."""
    distinct = {s for c in claims for s in c.supporters}
    if explicit is not None and explicit > 0:
        return max(int(explicit), len(distinct))
    return len(distinct) if distinct else 1


def compute_landscape_metrics(artifact: CognitiveArtifact, top_support_ratio: float = 0.3) -> LandscapeMetrics:
    """Type/role distributions, model count and the share of claims at or above the top support level.

    Distributions use the roles as provided upstream, before topology override.
    """
    claims = artifact.claims
    dominant_type, type_distribution = _dominant([c.type for c in claims], CLAIM_TYPE_PRESCRIPTIVE)
    dominant_role, _ = _dominant([c.role_as_provided for c in claims if c.role_as_provided], ROLE_ANCHOR)
    _, role_distribution = _dominant([c.role_as_provided or ROLE_UNSPECIFIED for c in claims], ROLE_ANCHOR)
    model_count = resolve_model_count(claims, artifact.model_count)

    convergence_ratio = 0.0
    if claims:
        top_threshold = min(get_top_n_count(len(claims), top_support_ratio), len(claims))
        by_support = sorted(claims, key=lambda c: -len(c.supporters))
        top_level = len(by_support[top_threshold - 1].supporters) or 1
        convergent = [c for c in claims if len(c.supporters) >= top_level]
        convergence_ratio = len(convergent) / len(claims)

    logger.debug(
        "Computed landscape metrics",
        extra={"claims": len(claims), "model_count": model_count, "dominant_type": dominant_type},
    )
    return LandscapeMetrics(
        dominant_type=dominant_type,
        type_distribution=type_distribution,
        dominant_role=dominant_role,
        role_distribution=role_distribution,
        claim_count=len(claims),
        model_count=model_count,
        convergence_ratio=convergence_ratio,
    )
