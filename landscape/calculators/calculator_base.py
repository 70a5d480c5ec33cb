import logging
import numpy as np
import pandas as pd
from typing import Optional, List, Any, Dict, Iterable

from landscape.core.types import Edge, EDGE_TYPES

logger = logging.getLogger(__name__)


def sanitize_edges(claim_ids: Iterable[str], edges: Iterable[Edge]) -> List[Edge]:
    """Drop edges with unknown type or dangling endpoints and dedupe by (from, to, type).

    Input order is preserved for the first occurrence of each edge.
    """
    known = set(claim_ids)
    seen = set()
    valid: List[Edge] = []
    for e in edges:
        if e is None or e.type not in EDGE_TYPES:
            continue
        if e.from_id not in known or e.to_id not in known:
            continue
        if e.key in seen:
            continue
        seen.add(e.key)
        valid.append(e)
    return valid


class CalculatorBase:
    """Base class providing cached claim-graph indices and result helpers.

    Requires subclass to have `claims` (list of claims with `id`) and `edges`.
    """

    @property
    def claim_ids(self) -> List[str]:
        """Claim ids in input order."""
        cache = getattr(self, "_claim_ids_cache", None)
        if cache is not None:
            return cache
        ids = [c.id for c in getattr(self, "claims", None) or []]
        setattr(self, "_claim_ids_cache", ids)
        return ids

    @property
    def claim_map(self) -> Dict[str, Any]:
        """Claim lookup by id."""
        cache = getattr(self, "_claim_map_cache", None)
        if cache is not None:
            return cache
        mapping = {c.id: c for c in getattr(self, "claims", None) or []}
        setattr(self, "_claim_map_cache", mapping)
        return mapping

    @property
    def valid_edges(self) -> List[Edge]:
        """Edges restricted to known claims, deduplicated."""
        cache = getattr(self, "_valid_edges_cache", None)
        if cache is not None:
            return cache
        edges = sanitize_edges(self.claim_ids, getattr(self, "edges", None) or [])
        setattr(self, "_valid_edges_cache", edges)
        return edges

    @property
    def outgoing(self) -> Dict[str, List[Edge]]:
        """Outgoing edges per claim id."""
        cache = getattr(self, "_outgoing_cache", None)
        if cache is not None:
            return cache
        index: Dict[str, List[Edge]] = {cid: [] for cid in self.claim_ids}
        for e in self.valid_edges:
            index[e.from_id].append(e)
        setattr(self, "_outgoing_cache", index)
        return index

    @property
    def incoming(self) -> Dict[str, List[Edge]]:
        """Incoming edges per claim id."""
        cache = getattr(self, "_incoming_cache", None)
        if cache is not None:
            return cache
        index: Dict[str, List[Edge]] = {cid: [] for cid in self.claim_ids}
        for e in self.valid_edges:
            index[e.to_id].append(e)
        setattr(self, "_incoming_cache", index)
        return index

    @property
    def adjacency(self) -> Dict[str, List[str]]:
        """Undirected neighbor lists (self-loops and parallel edges collapsed)."""
        cache = getattr(self, "_adjacency_cache", None)
        if cache is not None:
            return cache
        adj: Dict[str, List[str]] = {cid: [] for cid in self.claim_ids}
        for e in self.valid_edges:
            if e.from_id == e.to_id:
                continue
            if e.to_id not in adj[e.from_id]:
                adj[e.from_id].append(e.to_id)
            if e.from_id not in adj[e.to_id]:
                adj[e.to_id].append(e.from_id)
        setattr(self, "_adjacency_cache", adj)
        return adj

    def _edges_of_type(self, *edge_types: str) -> List[Edge]:
        return [e for e in self.valid_edges if e.type in edge_types]

    def _clean_result(self, value: Any) -> Optional[float]:
        """Clean result (None/NaN/inf -> None)."""
        if value is None or pd.isna(value) or not np.isfinite(value):
            return None
        return float(value)

    def _store_result(self, key: str, value: Any) -> Optional[float]:
        """Store cleaned result in calculations dict."""
        cleaned = self._clean_result(value)
        if cleaned is not None:
            if not hasattr(self, 'calculations'):
                self.calculations = {}
            self.calculations[key] = cleaned
        return cleaned

    def _collect_new_results(self, callables: List[Any]) -> Dict[str, Any]:
        """Execute callables and return newly-added calculations."""
        if not hasattr(self, 'calculations'):
            self.calculations = {}
        before = set(self.calculations.keys())
        for fn in callables:
            try:
                fn()
            except (ValueError, ZeroDivisionError, TypeError):
                logger.debug(f"Calculation {getattr(fn, '__name__', fn)} failed", exc_info=True)
        after = set(self.calculations.keys())
        new_keys = after - before
        return {k: self.calculations[k] for k in new_keys}
