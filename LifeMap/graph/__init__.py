from LifeMap.graph.forces import ForceConfig, GraphEdge, GraphNode, active_edges, step
from LifeMap.graph.simulation import (
    LayoutFrame,
    LayoutSimulation,
    SimulationStateError,
    SimulationStatus,
)

__all__ = [
    "ForceConfig",
    "GraphEdge",
    "GraphNode",
    "LayoutFrame",
    "LayoutSimulation",
    "SimulationStateError",
    "SimulationStatus",
    "active_edges",
    "step",
]
