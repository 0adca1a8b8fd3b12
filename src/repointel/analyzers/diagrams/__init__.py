"""Diagram generators over already-extracted facts."""

from repointel.analyzers.diagrams.mermaid import GraphEdge, ServiceMapGenerator

__all__ = ["GraphEdge", "ServiceMapGenerator"]
