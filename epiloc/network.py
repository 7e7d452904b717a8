"""Contact graph: fixed undirected adjacency between agents.

Graphs are generated by networkx and frozen into CSR arrays
(``indptr``, ``indices``). Each agent's neighbor order is the order in
which networkx reports it; the update rules scan neighbors in exactly
that order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import networkx as nx
import numpy as np

from epiloc.errors import ConfigurationError


@dataclass(frozen=True)
class ContactGraph:
    """Immutable ordered adjacency lists in CSR form."""
    indptr: np.ndarray    # (n+1,) int64, neighbor slice bounds per agent
    indices: np.ndarray   # (n_edges*2,) int32, neighbor ids

    @property
    def n_agents(self) -> int:
        return len(self.indptr) - 1

    @property
    def n_edges(self) -> int:
        """Undirected edge count."""
        return len(self.indices) // 2

    def neighbors(self, agent_id: int) -> np.ndarray:
        """Neighbor ids of one agent, in graph order. Read-only view."""
        return self.indices[self.indptr[agent_id]:self.indptr[agent_id + 1]]

    def degree(self, agent_id: int) -> int:
        return int(self.indptr[agent_id + 1] - self.indptr[agent_id])

    def degrees(self) -> np.ndarray:
        return np.diff(self.indptr)

    @property
    def mean_degree(self) -> float:
        n = self.n_agents
        return float(len(self.indices) / n) if n > 0 else 0.0


def from_networkx(graph: nx.Graph) -> ContactGraph:
    """Freeze a networkx graph whose nodes are 0..n-1.

    Raises:
        ConfigurationError: If the graph is directed or its nodes are not
            exactly the integers 0..n-1.
    """
    if graph.is_directed():
        raise ConfigurationError("contact graph must be undirected")
    n = graph.number_of_nodes()
    if set(graph.nodes) != set(range(n)):
        raise ConfigurationError("contact graph nodes must be the integers 0..n-1")

    indptr = np.zeros(n + 1, dtype=np.int64)
    neighbor_lists = []
    for i in range(n):
        nbrs = [int(j) for j in graph.adj[i] if j != i]
        neighbor_lists.append(nbrs)
        indptr[i + 1] = indptr[i] + len(nbrs)

    indices = np.fromiter(
        (j for nbrs in neighbor_lists for j in nbrs),
        dtype=np.int32,
        count=int(indptr[-1]),
    )
    indptr.setflags(write=False)
    indices.setflags(write=False)
    return ContactGraph(indptr=indptr, indices=indices)


def small_world_graph(
    n_agents: int,
    mean_degree: int = 4,
    rewire_prob: float = 0.1,
    seed: Optional[int] = None,
) -> ContactGraph:
    """Watts–Strogatz small-world contact graph.

    Args:
        n_agents: Number of agents.
        mean_degree: Ring neighbors per agent before rewiring (even).
        rewire_prob: Probability of rewiring each ring edge.
        seed: Seed for networkx's generator.
    """
    g = nx.watts_strogatz_graph(n_agents, mean_degree, rewire_prob, seed=seed)
    return from_networkx(g)


def ring_graph(n_agents: int) -> ContactGraph:
    """Cycle graph: agent i is linked to i-1 and i+1 (mod n)."""
    return from_networkx(nx.cycle_graph(n_agents))
