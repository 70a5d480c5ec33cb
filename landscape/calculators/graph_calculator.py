import logging
import numpy as np
from typing import Dict, Optional, List, Any, Tuple

from landscape.calculators.calculator_base import CalculatorBase
from landscape.core.types import (
    Claim, Edge, EnrichedClaim, GraphAnalysis,
    EDGE_SUPPORTS, EDGE_PREREQUISITE,
)

logger = logging.getLogger(__name__)


class GraphCalculator(CalculatorBase):
    """
    Topology of the claim graph.

    Vertices are claims; edges are the typed relations, treated as undirected
    for components and cut vertices and as directed for prerequisite chains.
    Every traversal is iterative and runs over deduplicated edges, so
    self-references and repeated edges cannot loop.
    """

    def __init__(self, claims: List[Claim], edges: List[Edge]):
        self.claims = list(claims)
        self.edges = list(edges)
        self.calculations: Dict[str, Any] = {}

    # --- Components ---
    def compute_connected_components(self) -> List[List[str]]:
        """Partition of claim ids, largest first. Equal sizes keep discovery order."""
        adjacency = self.adjacency
        visited = set()
        components: List[List[str]] = []

        for start in self.claim_ids:
            if start in visited:
                continue
            component: List[str] = []
            stack = [start]
            visited.add(start)
            while stack:
                node = stack.pop()
                component.append(node)
                for neighbor in reversed(adjacency[node]):
                    if neighbor not in visited:
                        visited.add(neighbor)
                        stack.append(neighbor)
            components.append(component)

        return sorted(components, key=len, reverse=True)

    # --- Prerequisite chains ---
    def _prereq_children(self) -> Dict[str, List[str]]:
        children: Dict[str, List[str]] = {cid: [] for cid in self.claim_ids}
        for e in self._edges_of_type(EDGE_PREREQUISITE):
            if e.from_id != e.to_id:
                children[e.from_id].append(e.to_id)
        return children

    def _longest_path_from(self, root: str, children: Dict[str, List[str]]) -> List[str]:
        """Longest simple directed path starting at root; first discovered wins ties."""
        best: List[str] = [root]
        # Each frame: (node, index of next child to visit); path mirrors the frames
        path = [root]
        on_path = {root}
        frames: List[Tuple[str, int]] = [(root, 0)]
        while frames:
            node, idx = frames[-1]
            kids = children[node]
            if idx < len(kids):
                frames[-1] = (node, idx + 1)
                child = kids[idx]
                if child in on_path:
                    continue
                path.append(child)
                on_path.add(child)
                frames.append((child, 0))
                if len(path) > len(best):
                    best = list(path)
            else:
                frames.pop()
                on_path.discard(path.pop())
        return best

    def compute_longest_chain(self) -> List[str]:
        """Longest simple path over prerequisite edges, searched from chain roots in input order."""
        children = self._prereq_children()
        has_incoming = {e.to_id for e in self._edges_of_type(EDGE_PREREQUISITE) if e.from_id != e.to_id}
        roots = [cid for cid in self.claim_ids if cid not in has_incoming]

        longest: List[str] = []
        for start in roots:
            chain = self._longest_path_from(start, children)
            if len(chain) > len(longest):
                longest = chain

        # Every claim sits on a prerequisite cycle
        if not longest:
            for start in self.claim_ids:
                chain = self._longest_path_from(start, children)
                if len(chain) > len(longest):
                    longest = chain
        return longest

    def compute_chain_count(self) -> int:
        prereqs = self._edges_of_type(EDGE_PREREQUISITE)
        has_incoming = {e.to_id for e in prereqs}
        has_outgoing = {e.from_id for e in prereqs}
        return sum(1 for cid in self.claim_ids if cid in has_outgoing and cid not in has_incoming)

    # --- Hub ---
    def compute_hub(self) -> Tuple[Optional[str], float]:
        """Claim with the highest total degree and its share of all edges."""
        edges = [e for e in self.valid_edges if e.from_id != e.to_id]
        if not edges:
            return None, 0.0
        degree = {cid: 0 for cid in self.claim_ids}
        for e in edges:
            degree[e.from_id] += 1
            degree[e.to_id] += 1
        hub_id = max(self.claim_ids, key=lambda cid: degree[cid])
        dominance = self._store_result('hub_dominance', degree[hub_id] / len(edges))
        return hub_id, dominance or 0.0

    # --- Articulation points ---
    def find_articulation_points(self) -> List[str]:
        """Cut vertices via iterative Tarjan low-link DFS, returned in claim input order."""
        adjacency = self.adjacency
        discovery: Dict[str, int] = {}
        low: Dict[str, int] = {}
        points = set()
        timer = 0

        for root in self.claim_ids:
            if root in discovery:
                continue
            timer += 1
            discovery[root] = low[root] = timer
            root_children = 0
            # Each frame: (node, parent, iterator position)
            stack: List[List[Any]] = [[root, None, 0]]
            while stack:
                frame = stack[-1]
                node, parent, idx = frame
                neighbors = adjacency[node]
                if idx < len(neighbors):
                    frame[2] += 1
                    nxt = neighbors[idx]
                    if nxt not in discovery:
                        timer += 1
                        discovery[nxt] = low[nxt] = timer
                        if node == root:
                            root_children += 1
                        stack.append([nxt, node, 0])
                    elif nxt != parent:
                        low[node] = min(low[node], discovery[nxt])
                else:
                    stack.pop()
                    if parent is not None:
                        low[parent] = min(low[parent], low[node])
                        if parent != root and low[node] >= discovery[parent]:
                            points.add(parent)
            if root_children > 1:
                points.add(root)

        return [cid for cid in self.claim_ids if cid in points]

    # --- Cohesion ---
    def compute_cluster_cohesion(self, claims: List[EnrichedClaim]) -> float:
        """Directed reinforcing-edge density among high-support claims; 1.0 when fewer than two."""
        high = {c.id for c in claims if c.is_high_support}
        n = len(high)
        if n <= 1:
            return 1.0
        actual = sum(
            1 for e in self._edges_of_type(EDGE_SUPPORTS, EDGE_PREREQUISITE)
            if e.from_id in high and e.to_id in high
        )
        return self._store_result('cluster_cohesion', actual / (n * (n - 1))) or 0.0

    def compute_local_coherence(self, claims: List[EnrichedClaim], components: List[List[str]]) -> float:
        """Size-weighted mean of (edge density x average support) over multi-claim components."""
        ratio_by_id = {c.id: c.support_ratio for c in claims}
        weighted: List[float] = []
        sizes: List[int] = []
        for component in components:
            if len(component) < 2:
                continue
            members = set(component)
            internal = sum(1 for e in self.valid_edges if e.from_id in members and e.to_id in members)
            density = internal / (len(component) * (len(component) - 1))
            avg_support = float(np.mean([ratio_by_id.get(cid, 0.0) for cid in component]))
            weighted.append(density * avg_support * len(component))
            sizes.append(len(component))
        if not sizes:
            return 0.0
        return self._store_result('local_coherence', sum(weighted) / sum(sizes)) or 0.0

    def analyze(self, enriched_claims: List[EnrichedClaim]) -> GraphAnalysis:
        components = self.compute_connected_components()
        longest_chain = self.compute_longest_chain()
        hub_claim, hub_dominance = self.compute_hub()
        articulation_points = self.find_articulation_points()

        analysis = GraphAnalysis(
            component_count=len(components),
            components=components,
            longest_chain=longest_chain,
            chain_count=self.compute_chain_count(),
            hub_claim=hub_claim,
            hub_dominance=hub_dominance,
            articulation_points=articulation_points,
            cluster_cohesion=self.compute_cluster_cohesion(enriched_claims),
            local_coherence=self.compute_local_coherence(enriched_claims, components),
        )
        logger.debug(
            "Graph analysis complete",
            extra={
                "components": analysis.component_count,
                "longest_chain": len(longest_chain),
                "hub": hub_claim,
                "articulation_points": len(articulation_points),
            },
        )
        return analysis
