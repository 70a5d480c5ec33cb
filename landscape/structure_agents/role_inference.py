import logging
from dataclasses import replace
from typing import List, Dict, Set, Optional, Iterable

from landscape.calculators.calculator_base import sanitize_edges
from landscape.core.types import (
    Claim, Edge, ConditionalPruner,
    EDGE_CONFLICTS, EDGE_PREREQUISITE, EDGE_SUPPORTS,
    ROLE_ANCHOR, ROLE_BRANCH, ROLE_CHALLENGER, ROLE_SUPPLEMENT,
    CLAIM_TYPE_CONDITIONAL,
)

logger = logging.getLogger(__name__)


class RoleInference:
    """
    Recomputes claim roles from graph topology, ignoring the upstream role.

    Precedence: challenger, then branch, then anchor, else supplement. The
    upstream role survives on `role_as_provided`; `role` carries the computed
    value so every consumer reads the topology-derived role by default.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # ROLE THRESHOLDS
    # Documented design decisions, not defaults to recalibrate.
    # ═══════════════════════════════════════════════════════════════════════════
    # Relative support at or above which a claim counts as consensus
    CONSENSUS_RATIO: float = 0.5
    # Anchor score components
    ANCHOR_PREREQ_OUT_WEIGHT: float = 2.0
    ANCHOR_SUPPORT_IN_WEIGHT: float = 1.0
    ANCHOR_CHALLENGER_NEIGHBOR_WEIGHT: float = 1.5
    ANCHOR_CHAINED_DEPENDENT_WEIGHT: float = 1.5
    ANCHOR_MIN_SCORE: float = 2.0

    def __init__(self, claims: List[Claim], edges: List[Edge],
                 conditionals: Optional[Iterable[ConditionalPruner]] = None, model_count: int = 1):
        self.claims = list(claims)
        self.edges = sanitize_edges([c.id for c in self.claims], edges)
        self.conditionals = list(conditionals or [])
        self.model_count = max(model_count or 0, 1)

    def _support_ratios(self) -> Dict[str, float]:
        return {c.id: len(c.supporters) / self.model_count for c in self.claims}

    def find_challenger_targets(self, ratios: Dict[str, float]) -> Dict[str, str]:
        """Challenger id -> highest-support consensus claim it conflicts with."""
        consensus = {cid for cid, r in ratios.items() if r >= self.CONSENSUS_RATIO}
        best: Dict[str, str] = {}
        for e in self.edges:
            if e.type != EDGE_CONFLICTS:
                continue
            from_consensus = e.from_id in consensus
            to_consensus = e.to_id in consensus
            if from_consensus == to_consensus:
                continue
            challenger_id, target_id = (e.to_id, e.from_id) if from_consensus else (e.from_id, e.to_id)
            previous = best.get(challenger_id)
            if previous is None or ratios.get(target_id, 0.0) > ratios.get(previous, 0.0):
                best[challenger_id] = target_id
        return best

    def find_branch_ids(self) -> Set[str]:
        """Claims gated by a conditional pruner or downstream of a conditional-typed claim."""
        branch_ids: Set[str] = set()
        for conditional in self.conditionals:
            branch_ids.update(conditional.affected_claims)
        conditional_ids = {c.id for c in self.claims if c.type == CLAIM_TYPE_CONDITIONAL}
        for e in self.edges:
            if e.type == EDGE_PREREQUISITE and e.from_id in conditional_ids:
                branch_ids.add(e.to_id)
        return branch_ids

    def compute_anchor_scores(self, challenger_ids: Set[str]) -> Dict[str, float]:
        prereq_out: Dict[str, int] = {}
        support_in: Dict[str, int] = {}
        dependents: Dict[str, List[str]] = {}
        for e in self.edges:
            if e.type == EDGE_PREREQUISITE:
                prereq_out[e.from_id] = prereq_out.get(e.from_id, 0) + 1
                dependents.setdefault(e.from_id, []).append(e.to_id)
            elif e.type == EDGE_SUPPORTS:
                support_in[e.to_id] = support_in.get(e.to_id, 0) + 1

        challenger_neighbors: Dict[str, Set[str]] = {}
        for e in self.edges:
            if e.type != EDGE_CONFLICTS:
                continue
            a_is = e.from_id in challenger_ids
            b_is = e.to_id in challenger_ids
            if a_is == b_is:
                continue
            target_id, challenger_id = (e.to_id, e.from_id) if a_is else (e.from_id, e.to_id)
            challenger_neighbors.setdefault(target_id, set()).add(challenger_id)

        scores: Dict[str, float] = {}
        for c in self.claims:
            chained = sum(1 for dep in dependents.get(c.id, []) if prereq_out.get(dep, 0) > 0)
            scores[c.id] = (
                prereq_out.get(c.id, 0) * self.ANCHOR_PREREQ_OUT_WEIGHT
                + support_in.get(c.id, 0) * self.ANCHOR_SUPPORT_IN_WEIGHT
                + len(challenger_neighbors.get(c.id, ())) * self.ANCHOR_CHALLENGER_NEIGHBOR_WEIGHT
                + chained * self.ANCHOR_CHAINED_DEPENDENT_WEIGHT
            )
        return scores

    def run(self) -> List[Claim]:
        """Return new Claim objects with computed roles; the inputs are left untouched."""
        ratios = self._support_ratios()
        challenger_targets = self.find_challenger_targets(ratios)
        branch_ids = self.find_branch_ids()
        anchor_scores = self.compute_anchor_scores(set(challenger_targets))

        result: List[Claim] = []
        for c in self.claims:
            if c.id in challenger_targets:
                role, challenges = ROLE_CHALLENGER, challenger_targets[c.id]
            elif c.id in branch_ids:
                role, challenges = ROLE_BRANCH, c.challenges or None
            elif anchor_scores[c.id] >= self.ANCHOR_MIN_SCORE:
                role, challenges = ROLE_ANCHOR, c.challenges or None
            else:
                role, challenges = ROLE_SUPPLEMENT, c.challenges or None
            result.append(replace(c, role=role, challenges=challenges))

        overridden = sum(1 for before, after in zip(self.claims, result) if before.role != after.role)
        logger.debug(
            "Computed claim roles",
            extra={
                "claims": len(result),
                "challengers": len(challenger_targets),
                "branches": len(branch_ids),
                "overridden": overridden,
            },
        )
        return result


def apply_computed_roles(claims: List[Claim], edges: List[Edge],
                         conditionals: Optional[Iterable[ConditionalPruner]] = None,
                         model_count: int = 1) -> List[Claim]:
    return RoleInference(claims, edges, conditionals, model_count).run()
