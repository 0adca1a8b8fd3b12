"""Template renderer for generated markdown.

Renders facts to markdown using the Jinja2 templates shipped in this package.
"""

import logging

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from repointel.models.diff import DiffReport
from repointel.models.inventory import Inventory
from repointel.renderers.filters import markdown_list, or_dash, or_placeholder
from repointel.renderers.summary import RepoDocumentInputs, build_document_context

logger = logging.getLogger(__name__)

# Output file name -> template, in write order
REPO_DOCUMENTS: dict[str, str] = {
    "HANDOVER.md": "HANDOVER.md.j2",
    "ARCHITECTURE.md": "ARCHITECTURE.md.j2",
    "RUNBOOK.md": "RUNBOOK.md.j2",
    "NEW_DEV.md": "NEW_DEV.md.j2",
    "HEALTH.md": "HEALTH.md.j2",
    "api_surface.md": "api_surface.md.j2",
    "domain_glossary.md": "domain_glossary.md.j2",
}

INVENTORY_TEMPLATE = "inventory.md.j2"
DIFF_TEMPLATE = "diff.md.j2"


class DocumentRenderer:
    """Renders repointel artifacts to markdown.

    Usage:
        renderer = DocumentRenderer()
        table = renderer.render_inventory(inventory)
        documents = renderer.render_repo_documents(inputs)
    """

    def __init__(self) -> None:
        """Set up the Jinja2 environment with package templates."""
        self._env = Environment(
            loader=PackageLoader("repointel", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

        self._env.filters["markdown_list"] = markdown_list
        self._env.filters["or_dash"] = or_dash
        self._env.filters["or_placeholder"] = or_placeholder

    def render(self, template_name: str, **context: object) -> str:
        """Render one template.

        Args:
            template_name: Template file name
            **context: Template variables

        Returns:
            Rendered markdown

        Raises:
            ValueError: If the template is missing or fails to render
        """
        try:
            template = self._env.get_template(template_name)
            return template.render(**context)
        except TemplateError as e:
            logger.error("Template rendering failed for %s: %s", template_name, e)
            raise ValueError(f"Template rendering failed for {template_name}: {e}") from e

    def render_inventory(self, inventory: Inventory) -> str:
        """Render the inventory table."""
        return self.render(INVENTORY_TEMPLATE, inventory=inventory)

    def render_diff(self, report: DiffReport) -> str:
        """Render a diff report with Added/Removed/Changed lists per section."""
        return self.render(DIFF_TEMPLATE, report=report)

    def render_repo_documents(self, inputs: RepoDocumentInputs) -> dict[str, str]:
        """Render every per-repository document.

        Args:
            inputs: Loaded facts of one repository

        Returns:
            Output file name to rendered markdown
        """
        context = build_document_context(inputs)
        documents = {
            filename: self.render(template, **context)
            for filename, template in REPO_DOCUMENTS.items()
        }
        logger.debug("Rendered %d documents for %s", len(documents), inputs.metadata.name)
        return documents
