"""
TwinScan: bounded, read-only duplicate file finder.

Core features:
- Five-stage grouping: size → partial digest → full SHA-256 (exact) → name+size (metadata) → name distance (fuzzy)
- Hard-link aware: two names for one file are never reported as duplicates
- Depth, file-count and wall-clock limits with cooperative cancellation and partial results
- CLI interface for headless/server usage
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("twinscan")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli

    from pathlib import Path as _Path
    try:
        with open(_Path(__file__).resolve().parents[2] / "pyproject.toml", "rb") as f:
            __version__ = tomllib.load(f)["project"]["version"]
    except OSError:
        __version__ = "0.0.0"

# Public API, only what users should import directly
from twinscan.commands import ScanCommand, scan_duplicates
from twinscan.core import (
    CancellationToken, DuplicateGroup, FileRecord, MatchType, ScanConfigurationError,
    ScanRequest, ScanResult, ScanStats,
)
from twinscan.services import SandboxPathGate, ScanRegistry
from twinscan.utils.convert_utils import ConvertUtils

__all__ = [
    "ScanCommand",
    "scan_duplicates",
    "CancellationToken",
    "DuplicateGroup",
    "FileRecord",
    "MatchType",
    "ScanConfigurationError",
    "ScanRequest",
    "ScanResult",
    "ScanStats",
    "SandboxPathGate",
    "ScanRegistry",
    "ConvertUtils",
    "__version__",
]
