"""
Tests for configuration.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestConfig:
    """Test get_config."""

    def test_defaults(self, monkeypatch):
        from scanbinder.config import get_config

        for name in ("SCANBINDER_DEBUG", "SCANBINDER_DPI", "SCANBINDER_WORKERS", "SCANBINDER_MAX_HISTORY"):
            monkeypatch.delenv(name, raising=False)

        config = get_config()

        assert config.skew.step == 0.25
        assert config.region.click_black_threshold == 100
        assert config.io.blank_page_size == (595, 842)
        assert config.store.max_history is None
        assert not config.debug_mode

    def test_environment_overrides(self, monkeypatch):
        from scanbinder.config import get_config

        monkeypatch.setenv("SCANBINDER_DPI", "150")
        monkeypatch.setenv("SCANBINDER_WORKERS", "0")
        monkeypatch.setenv("SCANBINDER_MAX_HISTORY", "50")

        config = get_config()

        assert config.io.dpi == 150
        assert config.store.workers == 1
        assert config.store.max_history == 50

    def test_sections_independent(self):
        from scanbinder.config import BinderConfig

        a, b = BinderConfig(), BinderConfig()
        a.region.min_size = 1

        assert b.region.min_size == 25


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
