"""Dependency vulnerability patrol for GitLab and GitHub projects."""

import logging

from .app.main import patrol

__all__ = ["patrol"]

# library default; the CLI installs real handlers through PatrolLogger
logging.getLogger(__name__).addHandler(logging.NullHandler())
