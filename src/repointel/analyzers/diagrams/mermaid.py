"""Mermaid service map generation.

Draws the organization-level graph: one node per inventoried repository and
one labelled edge per internal interaction whose target names another
repository.
"""

import logging
from typing import NamedTuple

from repointel.models.facts import DependenciesInternal
from repointel.models.inventory import Inventory
from repointel.utils.text import slugify

logger = logging.getLogger(__name__)

FALLBACK_NODE_ID = "repo_unknown"


class GraphEdge(NamedTuple):
    """A directed, labelled edge between two repositories."""

    source: str
    target: str
    label: str


class ServiceMapGenerator:
    """Generates a ``graph LR`` Mermaid diagram from internal dependencies."""

    @staticmethod
    def node_id(name: str) -> str:
        """Mermaid-safe node id for a repository name.

        Examples:
            >>> ServiceMapGenerator.node_id("@acme/billing-api")
            'acme_billing_api'
        """
        return slugify(name).replace("-", "_") or FALLBACK_NODE_ID

    @staticmethod
    def target_candidates(target: str) -> list[str]:
        """Repository names an interaction target may refer to, most specific first.

        The target as written, then the target with a leading ``@`` and any
        ``/suffix`` removed (the scope of a scoped package), then the part
        after the scope.
        """
        candidates = [target]
        unscoped = target.removeprefix("@")
        scope = unscoped.split("/", 1)[0]
        if scope:
            candidates.append(scope)
        if "/" in unscoped:
            candidates.append(unscoped.split("/", 1)[1])
        return list(dict.fromkeys(candidates))

    def build_edges(
        self,
        inventory: Inventory,
        deps_by_repo: dict[str, DependenciesInternal],
    ) -> list[GraphEdge]:
        """Resolve interactions to repository edges.

        Args:
            inventory: Current inventory (node set)
            deps_by_repo: Internal dependencies keyed by repository name;
                repositories without data are skipped

        Returns:
            Unique edges in inventory then interaction order
        """
        known = set(inventory.repo_names)
        edges: dict[GraphEdge, None] = {}

        for repo in inventory.repos:
            deps = deps_by_repo.get(repo.name)
            if deps is None:
                continue
            for interaction in deps.interactions:
                match = next(
                    (name for name in self.target_candidates(interaction.target) if name in known),
                    None,
                )
                if match is not None:
                    edges.setdefault(GraphEdge(repo.name, match, interaction.kind.value), None)

        logger.debug("Service map: %d repos, %d edges", len(known), len(edges))
        return list(edges)

    def render(self, inventory: Inventory, edges: list[GraphEdge]) -> str:
        """Render nodes and edges as Mermaid text with a trailing newline."""
        lines = ["graph LR"]
        for repo in inventory.repos:
            label = repo.name.replace('"', "#quot;")
            lines.append(f'  {self.node_id(repo.name)}["{label}"]')
        for edge in edges:
            lines.append(
                f'  {self.node_id(edge.source)} -- "{edge.label}" --> {self.node_id(edge.target)}'
            )
        return "\n".join(lines) + "\n"

    def generate(self, inventory: Inventory, deps_by_repo: dict[str, DependenciesInternal]) -> str:
        """Build edges and render the service map."""
        return self.render(inventory, self.build_edges(inventory, deps_by_repo))
