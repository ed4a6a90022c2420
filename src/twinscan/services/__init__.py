"""Calling-layer services: sandbox path gate and scan-id registry."""

from .path_gate import SandboxPathGate
from .scan_registry import ScanRegistry

__all__ = ["SandboxPathGate", "ScanRegistry"]
