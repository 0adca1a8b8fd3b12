"""repointel utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- fs: Repository discovery and file survey
- git: Workspace revision detection
- text: Identifier splitting and slugs
"""

from repointel.utils.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
