"""Version-control revision lookup for snapshot identifiers."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# Revision tag used when the scan root has no usable git metadata
NO_REVISION = "nogit"


def detect_revision(root: Path, length: int = 12) -> str:
    """Return the abbreviated HEAD commit of the repository at ``root``.

    Args:
        root: Directory to query
        length: Abbreviation length passed to ``--short``

    Returns:
        Short commit SHA, or ``NO_REVISION`` if git is unavailable, the
        directory is not a work tree, or HEAD has no commits yet
    """
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "rev-parse", f"--short={length}", "HEAD"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        logger.debug("git revision lookup failed in %s: %s", root, e)
        return NO_REVISION

    revision = result.stdout.strip()
    if result.returncode != 0 or not revision:
        logger.debug("No git revision for %s", root)
        return NO_REVISION
    return revision
