"""repointel template rendering.

Jinja2-based rendering of the inventory table, the diff report and the
per-repository handover documents. Output is deterministic: the same facts
always render to the same text.
"""

from repointel.templates.renderer import REPO_DOCUMENTS, DocumentRenderer

__all__ = ["REPO_DOCUMENTS", "DocumentRenderer"]
