"""
Tests for the calling-layer services: SandboxPathGate and ScanRegistry.
"""
import pytest
from twinscan.core.models import ScanConfigurationError
from twinscan.services import SandboxPathGate, ScanRegistry


class TestSandboxPathGate:
    def test_accepts_root_and_children(self, temp_dir):
        (temp_dir / "docs").mkdir()
        gate = SandboxPathGate([str(temp_dir)])

        assert gate.resolve(str(temp_dir)) == str(temp_dir)
        assert gate.resolve("docs") == str(temp_dir / "docs")
        assert gate.resolve(None) == str(temp_dir)

    def test_rejects_parent_components(self, temp_dir):
        (temp_dir / "docs").mkdir()
        gate = SandboxPathGate([str(temp_dir)])

        with pytest.raises(ScanConfigurationError, match="outside allowed sandbox roots"):
            gate.resolve("docs/../docs")

    def test_rejects_paths_outside_roots(self, temp_dir):
        inside = temp_dir / "inside"
        inside.mkdir()
        gate = SandboxPathGate([str(inside)])

        with pytest.raises(ScanConfigurationError):
            gate.resolve(str(temp_dir))

    def test_sibling_with_common_prefix_is_outside(self, temp_dir):
        (temp_dir / "data").mkdir()
        (temp_dir / "data-private").mkdir()
        gate = SandboxPathGate([str(temp_dir / "data")])

        with pytest.raises(ScanConfigurationError):
            gate.resolve(str(temp_dir / "data-private"))

    def test_symlink_escape_is_rejected(self, temp_dir):
        inside = temp_dir / "inside"
        inside.mkdir()
        outside = temp_dir / "outside"
        outside.mkdir()
        try:
            (inside / "escape").symlink_to(outside, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("Symlinks not supported on this platform")
        gate = SandboxPathGate([str(inside)])

        with pytest.raises(ScanConfigurationError):
            gate.resolve("escape")

    def test_multiple_roots(self, temp_dir):
        first = temp_dir / "first"
        second = temp_dir / "second"
        first.mkdir()
        second.mkdir()
        gate = SandboxPathGate([str(first), str(second)])

        assert gate.resolve(str(second)) == str(second)

    def test_requires_a_root(self):
        with pytest.raises(ValueError):
            SandboxPathGate([])


class TestScanRegistry:
    def test_start_returns_unique_ids(self):
        registry = ScanRegistry()

        ids = {registry.start()[0] for _ in range(20)}

        assert len(ids) == 20
        assert all(i.isalnum() and i == i.lower() for i in ids)

    def test_cancel_sets_token_and_forgets_scan(self):
        registry = ScanRegistry()
        scan_id, token = registry.start()

        assert scan_id in registry
        assert registry.cancel(scan_id) is True
        assert token.is_cancelled()
        assert scan_id not in registry
        assert registry.cancel(scan_id) is False

    def test_finish_removes_without_cancelling(self):
        registry = ScanRegistry()
        scan_id, token = registry.start()

        registry.finish(scan_id)

        assert registry.active_ids() == []
        assert not token.is_cancelled()
        assert registry.cancel(scan_id) is False

    def test_unknown_id(self):
        assert ScanRegistry().cancel("doesnotexist") is False
