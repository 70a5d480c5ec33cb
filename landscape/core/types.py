from enum import Enum
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Optional, List, Dict, Any, Union, Mapping

# Centralized edge-type constants for reuse across calculators and agents
EDGE_SUPPORTS = "supports"
EDGE_CONFLICTS = "conflicts"
EDGE_TRADEOFF = "tradeoff"
EDGE_PREREQUISITE = "prerequisite"
EDGE_TYPES = (EDGE_SUPPORTS, EDGE_CONFLICTS, EDGE_TRADEOFF, EDGE_PREREQUISITE)

# Claim roles (upstream-provided, then recomputed from topology)
ROLE_ANCHOR = "anchor"
ROLE_BRANCH = "branch"
ROLE_CHALLENGER = "challenger"
ROLE_SUPPLEMENT = "supplement"
CLAIM_ROLES = (ROLE_ANCHOR, ROLE_BRANCH, ROLE_CHALLENGER, ROLE_SUPPLEMENT)
# Distribution key for claims that arrive without an upstream role
ROLE_UNSPECIFIED = "unspecified"

# Claim types
CLAIM_TYPE_FACTUAL = "factual"
CLAIM_TYPE_PRESCRIPTIVE = "prescriptive"
CLAIM_TYPE_CAUTIONARY = "cautionary"
CLAIM_TYPE_ASSERTIVE = "assertive"
CLAIM_TYPE_UNCERTAIN = "uncertain"
CLAIM_TYPE_CONDITIONAL = "conditional"
CLAIM_TYPE_CONTESTED = "contested"
CLAIM_TYPE_SPECULATIVE = "speculative"

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

# Secondary pattern types
PATTERN_DISSENT = "dissent"
PATTERN_CHALLENGED = "challenged"
PATTERN_KEYSTONE = "keystone"
PATTERN_CHAIN = "chain"
PATTERN_FRAGILE = "fragile"
PATTERN_CONDITIONAL = "conditional"
PATTERN_ORPHANED = "orphaned"

# Dissent voice insight types
INSIGHT_LEVERAGE_INVERSION = "leverage_inversion"
INSIGHT_EXPLICIT_CHALLENGER = "explicit_challenger"
INSIGHT_UNIQUE_PERSPECTIVE = "unique_perspective"
INSIGHT_EDGE_CASE = "edge_case"

# ShapeData discriminators
SHAPE_SETTLED = "settled"
SHAPE_LINEAR = "linear"
SHAPE_KEYSTONE = "keystone"
SHAPE_CONTESTED = "contested"
SHAPE_TRADEOFF = "tradeoff"
SHAPE_DIMENSIONAL = "dimensional"
SHAPE_EXPLORATORY = "exploratory"
SHAPE_CONTEXTUAL = "contextual"


class PrimaryShape(str, Enum):
    """Coarse landscape classification. str Enum so values compare and serialize as plain strings."""
    CONVERGENT = "convergent"
    FORKED = "forked"
    PARALLEL = "parallel"
    CONSTRAINED = "constrained"
    SPARSE = "sparse"


def to_serializable(obj: Any) -> Any:
    """Recursively convert dataclasses/enums to plain JSON-compatible values."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_serializable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    if isinstance(obj, set):
        return sorted(to_serializable(v) for v in obj)
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    return obj


# --- Input entities ---
@dataclass
class Claim:
    """Atomic proposition extracted from model output"""
    id: str
    label: str = ""
    text: str = ""
    supporters: List[int] = field(default_factory=list)  # Model indices, unique
    type: str = CLAIM_TYPE_PRESCRIPTIVE
    role: str = ROLE_SUPPLEMENT  # "anchor" | "branch" | "challenger" | "supplement"
    challenges: Optional[str] = None  # Claim id this claim challenges
    role_as_provided: Optional[str] = None  # Upstream role, kept after topology override

    @classmethod
    def from_dict(cls, data: Any) -> Optional['Claim']:
        """Build a Claim from a loosely-typed mapping. Returns None when no usable id exists."""
        if isinstance(data, Claim):
            return data
        if not isinstance(data, Mapping):
            return None
        claim_id = data.get('id')
        if claim_id is None or claim_id == "":
            return None

        supporters: List[int] = []
        raw_supporters = data.get('supporters')
        if isinstance(raw_supporters, (list, tuple)):
            for s in raw_supporters:
                # bool is an int subclass; a True supporter index is never meaningful
                if isinstance(s, int) and not isinstance(s, bool) and s not in supporters:
                    supporters.append(s)

        role = data.get('role')
        challenges = data.get('challenges')
        # Only scalar ids can name a claim
        if isinstance(challenges, bool) or not isinstance(challenges, (str, int)) or challenges == "":
            challenges = None
        return cls(
            id=str(claim_id),
            label=str(data.get('label') or claim_id),
            text=str(data.get('text') or ""),
            supporters=supporters,
            type=str(data.get('type') or CLAIM_TYPE_PRESCRIPTIVE),
            role=role if role in CLAIM_ROLES else ROLE_SUPPLEMENT,
            challenges=str(challenges) if challenges is not None else None,
            role_as_provided=role if isinstance(role, str) else None,
        )


@dataclass
class Edge:
    """Directed typed relationship between two claims"""
    from_id: str
    to_id: str
    type: str  # "supports" | "conflicts" | "tradeoff" | "prerequisite"

    @property
    def key(self) -> tuple:
        return (self.from_id, self.to_id, self.type)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['Edge']:
        if isinstance(data, Edge):
            return data
        if not isinstance(data, Mapping):
            return None
        source = data.get('from', data.get('from_id'))
        target = data.get('to', data.get('to_id'))
        edge_type = data.get('type')
        if source is None or target is None or edge_type not in EDGE_TYPES:
            return None
        return cls(from_id=str(source), to_id=str(target), type=edge_type)


@dataclass
class ConditionalPruner:
    """Upstream conditional gate listing the claims it governs"""
    id: str
    question: str = ""
    affected_claims: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ConditionalPruner']:
        if isinstance(data, ConditionalPruner):
            return data
        if not isinstance(data, Mapping):
            return None
        affected = data.get('affectedClaims', data.get('affected_claims'))
        affected = [str(a) for a in affected] if isinstance(affected, (list, tuple)) else []
        return cls(
            id=str(data.get('id') or ""),
            question=str(data.get('question') or ""),
            affected_claims=affected,
        )


@dataclass
class CognitiveArtifact:
    """Mapper output consumed by the structural analysis engine"""
    claims: List[Claim] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    conditionals: List[ConditionalPruner] = field(default_factory=list)
    ghosts: List[str] = field(default_factory=list)  # Gaps/unexplored angles named by the mapper
    model_count: Optional[int] = None  # Explicit meta.modelCount when provided

    @classmethod
    def from_dict(cls, data: Any) -> 'CognitiveArtifact':
        """Tolerant parse: non-list collections default to empty, malformed items are skipped."""
        if isinstance(data, CognitiveArtifact):
            return data
        data = data if isinstance(data, Mapping) else {}
        semantic = data.get('semantic')
        semantic = semantic if isinstance(semantic, Mapping) else {}
        meta = data.get('meta')
        meta = meta if isinstance(meta, Mapping) else {}

        def _items(key: str) -> list:
            value = semantic.get(key)
            return list(value) if isinstance(value, (list, tuple)) else []

        claims = [c for c in (Claim.from_dict(item) for item in _items('claims')) if c is not None]
        edges = [e for e in (Edge.from_dict(item) for item in _items('edges')) if e is not None]
        conditionals = [
            c for c in (ConditionalPruner.from_dict(item) for item in _items('conditionals')) if c is not None
        ]
        ghosts = [str(g) for g in _items('ghosts') if g]

        model_count = meta.get('modelCount', meta.get('model_count'))
        if isinstance(model_count, bool) or not isinstance(model_count, (int, float)):
            model_count = None
        return cls(
            claims=claims,
            edges=edges,
            conditionals=conditionals,
            ghosts=ghosts,
            model_count=int(model_count) if model_count is not None else None,
        )


# --- Enriched claims & landscape metrics ---
@dataclass
class LeverageFactors:
    """Component breakdown of the composite leverage score"""
    support_weight: float = 0.0
    role_weight: float = 0.0
    connectivity_weight: float = 0.0
    position_weight: float = 0.0


@dataclass
class EnrichedClaim(Claim):
    """Claim annotated with structural scores and percentile flags"""
    support_ratio: float = 0.0  # |supporters| / modelCount
    leverage: float = 0.0
    leverage_factors: LeverageFactors = field(default_factory=LeverageFactors)
    keystone_score: float = 0.0  # outDegree × |supporters|
    support_skew: float = 0.0  # leverage relative to support
    in_degree: int = 0
    out_degree: int = 0
    is_chain_root: bool = False
    is_chain_terminal: bool = False
    chain_depth: int = 0
    role_computed: Optional[str] = None

    is_high_support: bool = False
    is_leverage_inversion: bool = False
    is_keystone: bool = False
    is_outlier: bool = False
    is_contested: bool = False
    is_conditional: bool = False
    is_challenger: bool = False
    is_isolated: bool = False


@dataclass
class LandscapeMetrics:
    """Landscape-level counts and distributions"""
    dominant_type: str
    type_distribution: Dict[str, int]
    dominant_role: str
    role_distribution: Dict[str, int]
    claim_count: int
    model_count: int
    convergence_ratio: float


@dataclass
class CoreRatios:
    """Informational landscape aggregates; no flag depends on these"""
    concentration: float  # Max supporters / modelCount
    alignment: Optional[float]  # Reinforcing share of edges among high-support claims
    tension: float  # Conflict + tradeoff share of all edges
    fragmentation: float  # Extra components relative to claim count
    depth: float  # Longest prerequisite chain relative to claim count


@dataclass
class GraphAnalysis:
    """Topology of the claim graph"""
    component_count: int
    components: List[List[str]]  # Partition of claim ids, descending size
    longest_chain: List[str]
    chain_count: int
    hub_claim: Optional[str]
    hub_dominance: float
    articulation_points: List[str]
    cluster_cohesion: float
    local_coherence: float


# --- Relationship patterns ---
@dataclass
class LeverageInversion:
    claim_id: str
    claim_label: str
    supporter_count: int
    reason: str  # "challenger_prerequisite_to_consensus" | "singular_foundation" | "high_connectivity_low_support"
    affected_claims: List[str] = field(default_factory=list)


@dataclass
class CascadeRisk:
    source_id: str
    source_label: str
    dependent_ids: List[str]
    dependent_labels: List[str]
    depth: int


@dataclass
class ClaimCount:
    id: str
    label: str
    supporter_count: int


@dataclass
class ConflictPair:
    claim_a: ClaimCount
    claim_b: ClaimCount
    is_both_consensus: bool
    dynamics: str  # "symmetric" | "asymmetric"


@dataclass
class TradeoffPair:
    claim_a: ClaimCount
    claim_b: ClaimCount
    symmetry: str  # "both_consensus" | "both_singular" | "asymmetric"


@dataclass
class ConvergencePoint:
    target_id: str
    target_label: str
    source_ids: List[str]
    source_labels: List[str]
    edge_type: str  # "prerequisite" | "supports"


@dataclass
class ConflictClaim:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: float
    role: str
    is_high_support: bool
    challenges: Optional[str]


@dataclass
class ConflictAxis:
    explicit: Optional[str]
    inferred: Optional[str]
    resolved: str


@dataclass
class ConflictInfo:
    """Rich record for a single conflicts edge"""
    id: str
    claim_a: ConflictClaim
    claim_b: ConflictClaim
    axis: ConflictAxis
    combined_support: int
    support_delta: int
    dynamics: str
    is_both_high_support: bool
    is_high_vs_low: bool
    involves_challenger: bool
    involves_anchor: bool
    involves_keystone: bool
    stakes: Dict[str, str]  # {"choosing_a": ..., "choosing_b": ...}
    significance: float
    cluster_id: Optional[str] = None


@dataclass
class ConflictCluster:
    id: str
    axis: str
    target_id: str
    challenger_ids: List[str]
    theme: str


@dataclass
class GhostAnalysis:
    count: int
    may_extend_challenger: bool
    challenger_ids: List[str]


@dataclass
class StructuralPatterns:
    leverage_inversions: List[LeverageInversion] = field(default_factory=list)
    cascade_risks: List[CascadeRisk] = field(default_factory=list)
    conflicts: List[ConflictPair] = field(default_factory=list)
    conflict_infos: List[ConflictInfo] = field(default_factory=list)
    conflict_clusters: List[ConflictCluster] = field(default_factory=list)
    tradeoffs: List[TradeoffPair] = field(default_factory=list)
    convergence_points: List[ConvergencePoint] = field(default_factory=list)
    isolated_claims: List[str] = field(default_factory=list)


# --- Peak analysis & classification ---
@dataclass
class PeakAnalysis:
    peaks: List[EnrichedClaim]
    hills: List[EnrichedClaim]
    floor: List[EnrichedClaim]
    peak_ids: List[str]
    peak_conflicts: List[Edge] = field(default_factory=list)
    peak_tradeoffs: List[Edge] = field(default_factory=list)
    peak_supports: List[Edge] = field(default_factory=list)
    peak_unconnected: bool = False


@dataclass
class ShapeClassification:
    primary: PrimaryShape
    confidence: float
    evidence: List[str]


@dataclass
class PeakSummary:
    id: str
    label: str
    support_ratio: float


@dataclass
class PeakPairRelationship:
    a_id: str
    b_id: str
    conflicts: bool
    trades_off: bool
    supports: bool
    prerequisites: bool


# --- Secondary pattern payloads ---
@dataclass
class ClaimRef:
    id: str
    label: str
    support_ratio: Optional[float] = None


@dataclass
class DissentVoice:
    id: str
    label: str
    text: str
    support_ratio: float
    insight_type: str
    targets: List[str] = field(default_factory=list)
    insight_score: float = 0.0


@dataclass
class StrongestVoice:
    id: str
    label: str
    text: str
    support_ratio: float
    why_it_matters: str
    insight_type: Optional[str] = None


@dataclass
class DissentPatternData:
    voices: List[DissentVoice]
    strongest_voice: Optional[StrongestVoice]
    suppressed_dimensions: List[str]


@dataclass
class ChallengePair:
    challenger: ClaimRef
    target: ClaimRef


@dataclass
class ChallengedPatternData:
    challenges: List[ChallengePair]


@dataclass
class KeystonePatternData:
    keystone: ClaimRef
    dependents: List[str]
    cascade_size: int


@dataclass
class ChainPatternData:
    chain: List[str]
    length: int
    weak_links: List[str]


@dataclass
class FragilityLink:
    peak: ClaimRef
    weak_foundation: ClaimRef


@dataclass
class FragilePatternData:
    fragilities: List[FragilityLink]


@dataclass
class ConditionBranches:
    id: str
    label: str
    branches: List[str]


@dataclass
class ConditionalPatternData:
    conditions: List[ConditionBranches]


@dataclass
class OrphanedClaim:
    id: str
    label: str
    support_ratio: float
    reason: str


@dataclass
class OrphanedPatternData:
    orphans: List[OrphanedClaim]


PatternData = Union[
    DissentPatternData, ChallengedPatternData, KeystonePatternData, ChainPatternData,
    FragilePatternData, ConditionalPatternData, OrphanedPatternData,
]


@dataclass
class SecondaryPattern:
    type: str  # One of the PATTERN_* constants
    severity: str  # "high" | "medium" | "low"
    data: PatternData


# --- Shape data: shared pieces ---
@dataclass
class FloorClaim:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: float
    is_contested: bool = False
    contested_by: List[str] = field(default_factory=list)


@dataclass
class ClaimSummary:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: Optional[float] = None


@dataclass
class ChallengerInfo:
    id: str
    label: str
    text: str
    support_count: int
    challenges: Optional[str]  # Text of the challenged claim
    targets_claim: Optional[str]


# --- Shape data: settled (convergent) ---
@dataclass
class StrongestOutlier:
    claim: ClaimSummary
    reason: str  # "leverage_inversion" | "explicit_challenger" | "minority_voice"
    structural_role: str
    what_it_questions: str


@dataclass
class SettledShapeData:
    floor: List[FloorClaim]
    floor_strength: str  # "strong" | "moderate" | "weak"
    challengers: List[ChallengerInfo]
    blind_spots: List[str]
    confidence: float
    strongest_outlier: Optional[StrongestOutlier]
    floor_assumptions: List[str]
    transfer_question: str
    pattern: str = SHAPE_SETTLED


# --- Shape data: linear (chain) ---
@dataclass
class ChainStep:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: float
    position: int
    enables: List[str]
    is_weak_link: bool
    weak_reason: Optional[str]


@dataclass
class WeakLink:
    step: ChainStep
    cascade_size: int


@dataclass
class ChainFragility:
    weak_link_count: int
    total_steps: int
    fragility_ratio: float
    most_vulnerable_step: Optional[WeakLink]


@dataclass
class LinearShapeData:
    chain: List[ChainStep]
    chain_length: int
    weak_links: List[WeakLink]
    terminal_claim: Optional[ChainStep]
    chain_fragility: ChainFragility
    transfer_question: str
    alternative_chains: List[List[ChainStep]] = field(default_factory=list)
    shortcuts: List[Dict[str, Any]] = field(default_factory=list)
    pattern: str = SHAPE_LINEAR


# --- Shape data: keystone ---
@dataclass
class KeystoneInfo:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: float
    dominance: float
    is_fragile: bool  # At most one supporter
    is_load_bearing: bool = False  # At least two outgoing prerequisites


@dataclass
class KeystoneDependency:
    id: str
    label: str
    relationship: str  # "prerequisite" | "supports"


@dataclass
class CascadeConsequences:
    directly_affected: int
    transitively_affected: int
    survives: int


@dataclass
class KeystoneShapeData:
    keystone: KeystoneInfo
    dependencies: List[KeystoneDependency]
    cascade_size: int
    challengers: List[ChallengerInfo]
    cascade_consequences: CascadeConsequences
    transfer_question: str
    decoupled_claims: List[Dict[str, Any]] = field(default_factory=list)
    pattern: str = SHAPE_KEYSTONE


# --- Shape data: contested (forked) ---
@dataclass
class ConflictPosition:
    claim: ConflictClaim
    support_rationale: str
    supporting_claims: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class ChallengerGroup:
    claims: List[ConflictClaim]
    common_theme: str
    supporting_claims: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class CentralConflictIndividual:
    axis: str
    position_a: ConflictPosition
    position_b: ConflictPosition
    dynamics: str
    stakes: Dict[str, str]
    type: str = "individual"


@dataclass
class CentralConflictCluster:
    axis: str
    target: ConflictPosition
    challengers: ChallengerGroup
    stakes: Dict[str, str]
    dynamics: str = "one_vs_many"
    type: str = "cluster"


CentralConflict = Union[CentralConflictIndividual, CentralConflictCluster]


@dataclass
class ContestedFloor:
    exists: bool
    claims: List[FloorClaim]
    strength: str  # "strong" | "weak" | "absent"
    is_contradictory: bool = False


@dataclass
class ContestedFragilities:
    leverage_inversions: List[LeverageInversion]
    articulation_points: List[str]


@dataclass
class ContestedShapeData:
    central_conflict: CentralConflict
    secondary_conflicts: List[ConflictInfo]
    floor: ContestedFloor
    fragilities: ContestedFragilities
    collapsing_question: Optional[str]
    pattern: str = SHAPE_CONTESTED


# --- Shape data: tradeoff (constrained) ---
@dataclass
class TradeoffOption:
    id: str
    label: str
    text: str
    support_count: int
    support_ratio: float


@dataclass
class TradeoffEntry:
    id: str
    option_a: TradeoffOption
    option_b: TradeoffOption
    symmetry: str  # "both_high" | "both_low" | "asymmetric"
    governing_factor: Optional[str] = None


@dataclass
class DominatedOption:
    dominated: str
    dominated_by: str
    reason: str


@dataclass
class TradeoffShapeData:
    tradeoffs: List[TradeoffEntry]
    dominated_options: List[DominatedOption]
    floor: List[FloorClaim]
    pattern: str = SHAPE_TRADEOFF


# --- Shape data: dimensional (parallel) ---
@dataclass
class DimensionClaim:
    id: str
    label: str
    text: str
    support_count: int


@dataclass
class DimensionCluster:
    id: str
    theme: str
    claims: List[DimensionClaim]
    cohesion: float
    avg_support: float


@dataclass
class DimensionInteraction:
    dimension_a: str
    dimension_b: str
    relationship: str  # "independent" | "overlapping" | "conflicting"


@dataclass
class DimensionalShapeData:
    dimensions: List[DimensionCluster]
    interactions: List[DimensionInteraction]
    gaps: List[str]
    governing_conditions: List[str]
    dominant_dimension: Optional[DimensionCluster]
    hidden_dimension: Optional[DimensionCluster]
    dominant_blind_spots: List[str]
    transfer_question: str
    pattern: str = SHAPE_DIMENSIONAL


# --- Shape data: exploratory (sparse) ---
@dataclass
class SignalClaim:
    id: str
    label: str
    text: str
    support_count: int
    reason: str


@dataclass
class IsolatedClaimRef:
    id: str
    label: str
    text: str


@dataclass
class OuterBoundary:
    id: str
    label: str
    text: str
    support_count: int
    distance_reason: str


@dataclass
class ExploratoryShapeData:
    strongest_signals: List[SignalClaim]
    loose_clusters: List[DimensionCluster]
    isolated_claims: List[IsolatedClaimRef]
    clarifying_questions: List[str]
    signal_strength: float
    outer_boundary: Optional[OuterBoundary]
    sparsity_reasons: List[str]
    transfer_question: str
    pattern: str = SHAPE_EXPLORATORY


# --- Shape data: contextual ---
@dataclass
class ContextualBranch:
    condition: str
    claims: List[FloorClaim]


@dataclass
class DefaultPath:
    exists: bool
    claims: List[FloorClaim]


@dataclass
class ContextualShapeData:
    governing_condition: str
    branches: List[ContextualBranch]
    default_path: Optional[DefaultPath]
    missing_context: List[str]
    pattern: str = SHAPE_CONTEXTUAL


ShapeData = Union[
    SettledShapeData, LinearShapeData, KeystoneShapeData, ContestedShapeData,
    TradeoffShapeData, DimensionalShapeData, ExploratoryShapeData, ContextualShapeData,
]


# --- Final analysis ---
@dataclass
class ClassificationOverride:
    """Records that the built shape data does not match the classified primary shape"""
    reason: str  # "no_conflicts" | "single_component" | "no_tradeoffs" | "builder_failed"
    original_primary: PrimaryShape
    built_pattern: str


@dataclass
class CompositeShape:
    primary: PrimaryShape
    confidence: float
    patterns: List[SecondaryPattern]
    peaks: List[PeakSummary]
    peak_relationship: str  # "conflicting" | "trading-off" | "supporting" | "independent" | "none"
    peak_pair_relations: List[PeakPairRelationship]
    evidence: List[str]


@dataclass
class ProblemStructure:
    primary: PrimaryShape
    confidence: float
    evidence: List[str]
    patterns: List[SecondaryPattern] = field(default_factory=list)
    peaks: List[PeakSummary] = field(default_factory=list)
    peak_relationship: str = "none"
    peak_pair_relations: List[PeakPairRelationship] = field(default_factory=list)
    data: Optional[ShapeData] = None
    signal_strength: float = 0.0
    transfer_question: Optional[str] = None
    floor_assumptions: Optional[List[str]] = None
    central_conflict: Optional[str] = None
    tradeoffs: Optional[List[str]] = None
    classification_override: Optional[ClassificationOverride] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


@dataclass
class StructuralAnalysis:
    """Complete output of the structural analysis engine"""
    edges: List[Edge]
    landscape: LandscapeMetrics
    claims_with_leverage: List[EnrichedClaim]
    patterns: StructuralPatterns
    ghost_analysis: GhostAnalysis
    graph: GraphAnalysis
    ratios: CoreRatios
    shape: ProblemStructure

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for JSON serialization"""
        return to_serializable(self)
