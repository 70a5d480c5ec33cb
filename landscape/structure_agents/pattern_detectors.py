import logging
from typing import List, Dict, Set, Optional

from landscape.calculators.calculator_base import sanitize_edges
from landscape.core.types import (
    Edge, EnrichedClaim, GraphAnalysis, StructuralPatterns, SecondaryPattern,
    DissentVoice, StrongestVoice, DissentPatternData, ChallengedPatternData, ChallengePair,
    KeystonePatternData, ChainPatternData, FragilePatternData, FragilityLink,
    ConditionalPatternData, ConditionBranches, OrphanedPatternData, OrphanedClaim, ClaimRef,
    EDGE_CONFLICTS, EDGE_PREREQUISITE, EDGE_SUPPORTS,
    ROLE_CHALLENGER, CLAIM_TYPE_CONDITIONAL,
    SEVERITY_HIGH, SEVERITY_MEDIUM, SEVERITY_LOW,
    PATTERN_DISSENT, PATTERN_CHALLENGED, PATTERN_KEYSTONE, PATTERN_CHAIN,
    PATTERN_FRAGILE, PATTERN_CONDITIONAL, PATTERN_ORPHANED,
    INSIGHT_LEVERAGE_INVERSION, INSIGHT_EXPLICIT_CHALLENGER,
    INSIGHT_UNIQUE_PERSPECTIVE, INSIGHT_EDGE_CASE,
)
from landscape.structure_agents.shape_builders import ShapeBuilder, generate_why_it_matters

logger = logging.getLogger(__name__)


def _severity(count: int, high_above: int, medium_above: int) -> str:
    if count > high_above:
        return SEVERITY_HIGH
    if count > medium_above:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


class PatternDetector:
    """
    Secondary structural signatures layered on top of the primary shape.

    Each detector is independent and returns a SecondaryPattern or None.
    Keystone and chain only run when the graph has a hub / a long enough chain.
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # DISSENT INSIGHT SCORING
    # Heuristic ranking of minority voices. Leverage inversions rank first:
    # structurally important claims with little support are the most likely to
    # reshape the answer.
    # ═══════════════════════════════════════════════════════════════════════════
    INVERSION_INSIGHT_MULTIPLIER: float = 2.0
    CHALLENGER_INSIGHT_MULTIPLIER: float = 1.5
    UNIQUE_PERSPECTIVE_PER_SUPPORTER: float = 0.5
    EDGE_CASE_INSIGHT_SCORE: float = 0.3
    # A claim is an outsider voice when most of its supporters back no peak
    OUTSIDER_SUPPORT_SHARE: float = 0.5
    EDGE_CASE_MAX_SUPPORT_RATIO: float = 0.4
    MAX_DISSENT_VOICES: int = 5

    MIN_CHAIN_LENGTH: int = 3
    MIN_KEYSTONE_DEPENDENTS: int = 2
    WEAK_FOUNDATION_RATIO: float = 0.4
    MIN_CONDITIONAL_CLAIMS: int = 2

    def __init__(self, claims: List[EnrichedClaim], edges: List[Edge], max_dissent_voices: Optional[int] = None):
        self.claims = list(claims)
        self.claim_map: Dict[str, EnrichedClaim] = {c.id: c for c in self.claims}
        self.edges = sanitize_edges(self.claim_map.keys(), edges)
        self.max_dissent_voices = max_dissent_voices or self.MAX_DISSENT_VOICES

    # --- Dissent ---
    def _collect_dissent_voices(self, peaks: List[EnrichedClaim]) -> List[DissentVoice]:
        peak_ids = {p.id for p in peaks}
        voices: List[DissentVoice] = []
        voiced: Set[str] = set()

        def add(voice: DissentVoice):
            voices.append(voice)
            voiced.add(voice.id)

        for claim in self.claims:
            if not claim.is_leverage_inversion:
                continue
            targets = [
                e.to_id for e in self.edges
                if e.from_id == claim.id and e.type in (EDGE_PREREQUISITE, EDGE_SUPPORTS) and e.to_id in peak_ids
            ]
            add(DissentVoice(
                id=claim.id, label=claim.label, text=claim.text, support_ratio=claim.support_ratio,
                insight_type=INSIGHT_LEVERAGE_INVERSION, targets=targets,
                insight_score=claim.leverage * (1 - claim.support_ratio) * self.INVERSION_INSIGHT_MULTIPLIER,
            ))

        for claim in self.claims:
            if claim.id in voiced:
                continue
            if claim.role != ROLE_CHALLENGER and claim.challenges not in peak_ids:
                continue
            if claim.challenges in peak_ids:
                targets = [claim.challenges]
            else:
                targets = [
                    e.to_id for e in self.edges
                    if e.from_id == claim.id and e.type == EDGE_CONFLICTS and e.to_id in peak_ids
                ]
            if not targets and not claim.challenges:
                continue
            add(DissentVoice(
                id=claim.id, label=claim.label, text=claim.text, support_ratio=claim.support_ratio,
                insight_type=INSIGHT_EXPLICIT_CHALLENGER, targets=targets,
                insight_score=len(targets) * (1 - claim.support_ratio) * self.CHALLENGER_INSIGHT_MULTIPLIER,
            ))

        peak_supporters = {s for p in peaks for s in p.supporters}
        outsider_models = {s for c in self.claims for s in c.supporters if s not in peak_supporters}
        if outsider_models:
            for claim in self.claims:
                if claim.id in voiced or claim.id in peak_ids:
                    continue
                outsider_support = sum(1 for s in claim.supporters if s in outsider_models)
                if outsider_support <= len(claim.supporters) * self.OUTSIDER_SUPPORT_SHARE:
                    continue
                add(DissentVoice(
                    id=claim.id, label=claim.label, text=claim.text, support_ratio=claim.support_ratio,
                    insight_type=INSIGHT_UNIQUE_PERSPECTIVE, targets=[],
                    insight_score=len(claim.supporters) * self.UNIQUE_PERSPECTIVE_PER_SUPPORTER,
                ))

        for claim in self.claims:
            if claim.id in voiced:
                continue
            if claim.type == CLAIM_TYPE_CONDITIONAL and claim.support_ratio < self.EDGE_CASE_MAX_SUPPORT_RATIO:
                add(DissentVoice(
                    id=claim.id, label=claim.label, text=claim.text, support_ratio=claim.support_ratio,
                    insight_type=INSIGHT_EDGE_CASE, targets=[], insight_score=self.EDGE_CASE_INSIGHT_SCORE,
                ))
        return voices

    def detect_dissent_pattern(self, peaks: List[EnrichedClaim]) -> Optional[SecondaryPattern]:
        voices = self._collect_dissent_voices(peaks)
        if not voices:
            return None
        ranked = sorted(voices, key=lambda v: -v.insight_score)

        peak_types = {p.type for p in peaks}
        suppressed: List[str] = []
        for voice in ranked:
            claim_type = self.claim_map[voice.id].type
            if claim_type and claim_type not in peak_types and claim_type not in suppressed:
                suppressed.append(claim_type)

        top = ranked[0]
        return SecondaryPattern(
            type=PATTERN_DISSENT,
            severity=_severity(len(ranked), high_above=3, medium_above=1),
            data=DissentPatternData(
                voices=ranked[:self.max_dissent_voices],
                strongest_voice=StrongestVoice(
                    id=top.id,
                    label=top.label,
                    text=top.text,
                    support_ratio=top.support_ratio,
                    why_it_matters=generate_why_it_matters(top, peaks),
                    insight_type=top.insight_type,
                ),
                suppressed_dimensions=suppressed,
            ),
        )

    # --- Challenged ---
    def detect_challenged_pattern(self, peaks: List[EnrichedClaim], floor: List[EnrichedClaim]) -> Optional[SecondaryPattern]:
        peak_ids = {p.id for p in peaks}
        floor_ids = {f.id for f in floor}
        challenges = [
            ChallengePair(
                challenger=ClaimRef(id=e.from_id, label=self.claim_map[e.from_id].label,
                                    support_ratio=self.claim_map[e.from_id].support_ratio),
                target=ClaimRef(id=e.to_id, label=self.claim_map[e.to_id].label,
                                support_ratio=self.claim_map[e.to_id].support_ratio),
            )
            for e in self.edges
            if e.type == EDGE_CONFLICTS and e.from_id in floor_ids and e.to_id in peak_ids
        ]
        if not challenges:
            return None
        return SecondaryPattern(
            type=PATTERN_CHALLENGED,
            severity=_severity(len(challenges), high_above=2, medium_above=1),
            data=ChallengedPatternData(challenges=challenges),
        )

    # --- Keystone ---
    def detect_keystone_pattern(self, graph: GraphAnalysis, patterns: StructuralPatterns) -> Optional[SecondaryPattern]:
        if not graph.hub_claim or graph.hub_claim not in self.claim_map:
            return None
        keystone = ShapeBuilder(self.claims, self.edges, graph, patterns).build_keystone_pattern_data()
        if len(keystone.dependencies) < self.MIN_KEYSTONE_DEPENDENTS:
            return None
        return SecondaryPattern(
            type=PATTERN_KEYSTONE,
            severity=SEVERITY_HIGH,
            data=KeystonePatternData(
                keystone=ClaimRef(
                    id=keystone.keystone.id,
                    label=keystone.keystone.label,
                    support_ratio=keystone.keystone.support_ratio,
                ),
                dependents=[d.id for d in keystone.dependencies],
                cascade_size=keystone.cascade_size,
            ),
        )

    # --- Chain ---
    def detect_chain_pattern(self, graph: GraphAnalysis, patterns: StructuralPatterns) -> Optional[SecondaryPattern]:
        if len(graph.longest_chain) < self.MIN_CHAIN_LENGTH:
            return None
        chain = ShapeBuilder(self.claims, self.edges, graph, patterns).build_chain_pattern_data()
        weak_links = [w.step.id for w in chain.weak_links]
        return SecondaryPattern(
            type=PATTERN_CHAIN,
            severity=_severity(len(weak_links), high_above=1, medium_above=0),
            data=ChainPatternData(
                chain=[step.id for step in chain.chain],
                length=chain.chain_length,
                weak_links=weak_links,
            ),
        )

    # --- Fragile ---
    def detect_fragile_pattern(self, peaks: List[EnrichedClaim]) -> Optional[SecondaryPattern]:
        fragilities: List[FragilityLink] = []
        for peak in peaks:
            for e in self.edges:
                if e.to_id != peak.id or e.type != EDGE_PREREQUISITE:
                    continue
                foundation = self.claim_map[e.from_id]
                if foundation.support_ratio < self.WEAK_FOUNDATION_RATIO:
                    fragilities.append(FragilityLink(
                        peak=ClaimRef(id=peak.id, label=peak.label),
                        weak_foundation=ClaimRef(
                            id=foundation.id, label=foundation.label, support_ratio=foundation.support_ratio,
                        ),
                    ))
        if not fragilities:
            return None
        return SecondaryPattern(
            type=PATTERN_FRAGILE,
            severity=_severity(len(fragilities), high_above=2, medium_above=1),
            data=FragilePatternData(fragilities=fragilities),
        )

    # --- Conditional ---
    def detect_conditional_pattern(self) -> Optional[SecondaryPattern]:
        conditional_claims = [c for c in self.claims if c.type == CLAIM_TYPE_CONDITIONAL]
        if len(conditional_claims) < self.MIN_CONDITIONAL_CLAIMS:
            return None
        conditions: List[ConditionBranches] = []
        for c in conditional_claims:
            branches = [e.to_id for e in self.edges if e.from_id == c.id and e.type == EDGE_PREREQUISITE]
            if branches:
                conditions.append(ConditionBranches(id=c.id, label=c.label, branches=branches))
        if not conditions:
            return None
        return SecondaryPattern(
            type=PATTERN_CONDITIONAL,
            severity=SEVERITY_HIGH if len(conditions) > 2 else SEVERITY_MEDIUM,
            data=ConditionalPatternData(conditions=conditions),
        )

    # --- Orphaned ---
    def detect_orphaned_pattern(self, peaks: List[EnrichedClaim]) -> Optional[SecondaryPattern]:
        # No renderer is known to read this pattern yet; emitted for completeness of the pattern set
        connected = {e.from_id for e in self.edges} | {e.to_id for e in self.edges}
        orphans = [
            OrphanedClaim(
                id=p.id, label=p.label, support_ratio=p.support_ratio,
                reason="High support but no structural connections",
            )
            for p in peaks if p.id not in connected
        ]
        if not orphans:
            return None
        return SecondaryPattern(
            type=PATTERN_ORPHANED,
            severity=SEVERITY_HIGH if len(orphans) > 1 else SEVERITY_MEDIUM,
            data=OrphanedPatternData(orphans=orphans),
        )

    def run(
        self,
        peaks: List[EnrichedClaim],
        floor: List[EnrichedClaim],
        graph: GraphAnalysis,
        patterns: StructuralPatterns,
    ) -> List[SecondaryPattern]:
        """Run every detector in a fixed order and keep the ones that fire."""
        detected = [
            self.detect_dissent_pattern(peaks),
            self.detect_keystone_pattern(graph, patterns),
            self.detect_chain_pattern(graph, patterns),
            self.detect_fragile_pattern(peaks),
            self.detect_challenged_pattern(peaks, floor),
            self.detect_conditional_pattern(),
            self.detect_orphaned_pattern(peaks),
        ]
        found = [p for p in detected if p is not None]
        logger.debug("Secondary patterns detected", extra={"patterns": [p.type for p in found]})
        return found
