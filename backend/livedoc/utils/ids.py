"""Module names for re-importing the embeds package."""

from __future__ import annotations

import uuid


def fresh_module_name(package: str = "livedoc_embeds") -> str:
    """Return ``<package>_<hex>``, a name never seen in ``sys.modules`` before.

    Each reload imports the embeds package under a new name so that cached
    submodules from the previous import are not reused.
    """
    return f"{package}_{uuid.uuid4().hex}"
