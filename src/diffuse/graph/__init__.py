"""Usage graph of cross-file imports."""

from diffuse.graph.builder import ModuleResolver, UsageGraph, UsageGraphBuilder
from diffuse.graph.query import blast_radius, subsystem_spread
from diffuse.graph.scoring import score_graph

__all__ = [
    "ModuleResolver",
    "UsageGraph",
    "UsageGraphBuilder",
    "blast_radius",
    "score_graph",
    "subsystem_spread",
]
