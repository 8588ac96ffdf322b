# rs_platform/__init__.py
# ReelSync platform: identifiers, technical profiles, library model and the sync orchestrator.
from __future__ import annotations

__version__ = "0.4.0"
