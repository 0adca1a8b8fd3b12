"""repointel - Repository intelligence snapshots for multi-repo workspaces.

repointel walks a workspace of source repositories and captures a
point-in-time knowledge snapshot for each of them: inventory metadata, API
surface, data model, dependency edges, domain vocabulary and quality signals.
Two snapshots can be compared deterministically to see what moved.

Core principles:
- Deterministic: identical file trees produce byte-identical facts
- Evidence-based: heuristic pattern matching, never a full parse
- Immutable snapshots: a named snapshot is never rewritten
- Degrade, don't fail: one broken manifest never aborts a scan
"""

__version__ = "0.1.0"
__author__ = "repointel Contributors"
