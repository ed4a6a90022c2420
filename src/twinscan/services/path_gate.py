"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/path_gate.py
Sandbox check applied by a calling layer before a root is handed to the engine.
The engine itself trusts whatever root it is given.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from twinscan.core.models import ScanConfigurationError

logger = logging.getLogger(__name__)


class SandboxPathGate:
    """
    Accepts only paths that resolve inside one of the allowed roots.

    Relative inputs are resolved against `base_dir` (defaults to the first
    allowed root). Any input containing a '..' component is rejected outright,
    even if it would resolve inside a root.
    """

    def __init__(self, allowed_roots: Sequence[str], base_dir: Optional[str] = None):
        if not allowed_roots:
            raise ValueError("At least one allowed root is required")
        self.allowed_roots: List[Path] = [Path(r).resolve() for r in allowed_roots]
        self.base_dir = Path(base_dir).resolve() if base_dir else self.allowed_roots[0]

    def resolve(self, requested: Optional[str]) -> str:
        """
        Return the absolute, resolved form of `requested` if it is allowed.

        Raises:
            ScanConfigurationError: If the path escapes the sandbox
        """
        requested = requested or "."
        if ".." in Path(requested).parts:
            raise self._denied(requested)

        candidate = Path(requested).expanduser()
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        resolved = candidate.resolve()

        if not self.is_allowed(resolved):
            raise self._denied(requested)

        logger.debug(f"Path gate accepted {resolved}")
        return str(resolved)

    def is_allowed(self, path: Path) -> bool:
        for root in self.allowed_roots:
            if path == root or root in path.parents:
                return True
        return False

    def _denied(self, requested: str) -> ScanConfigurationError:
        allowed = ", ".join(str(r) for r in self.allowed_roots)
        logger.info(f"Path gate rejected {requested}")
        return ScanConfigurationError(
            f'Path "{requested}" is outside allowed sandbox roots. Allowed: {allowed}')
