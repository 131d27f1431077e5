"""Unit tests for SourceManager."""

from unittest.mock import patch

from gas_oracle.src.SourceManager import SourceManager, SourceStatus


class TestSourceManagerInit:
    """Test SourceManager initialization."""

    def test_init_with_sources(self) -> None:
        """Sources should be tracked from init."""
        manager = SourceManager(["a", "b", "c"])
        assert manager.sources == ["a", "b", "c"]
        assert len(manager.get_all_status()) == 3

    def test_init_empty_sources(self) -> None:
        """Empty sources list should work."""
        manager = SourceManager([])
        assert manager.sources == []
        assert manager.total_failures == 0

    def test_initial_status(self) -> None:
        """Initial status should have zero counters."""
        manager = SourceManager(["a"])
        assert manager.get_source_status("a") == SourceStatus()


class TestSourceManagerFailures:
    """Test failure recording."""

    def test_consecutive_failures(self) -> None:
        """Each failure should return the consecutive count."""
        manager = SourceManager(["a"])
        assert manager.record_failure("a", "timeout") == 1
        assert manager.record_failure("a", "HTTP 502") == 2

        status = manager.get_source_status("a")
        assert status.total_failures == 2
        assert status.last_error == "HTTP 502"

    def test_failure_unknown_source(self) -> None:
        """Recording failure for unknown source should create it."""
        manager = SourceManager(["a"])
        manager.record_failure("unknown", "x")

        assert "unknown" in manager.sources
        assert manager.get_source_status("unknown").consecutive_failures == 1

    def test_total_failures_across_sources(self) -> None:
        """total_failures should sum every chain."""
        manager = SourceManager(["a", "b"])
        manager.record_failure("a", "x")
        manager.record_failure("b", "y")
        manager.record_failure("b", "y")
        assert manager.total_failures == 3

    def test_failing_sources(self) -> None:
        """Only chains whose last fetch failed should be listed."""
        manager = SourceManager(["a", "b", "c"])
        manager.record_failure("a", "x")
        manager.record_failure("b", "x")
        manager.record_success("b")
        assert manager.get_failing_sources() == ["a"]


class TestSourceManagerSuccess:
    """Test success recording."""

    def test_success_resets_consecutive_failures(self) -> None:
        """Success should reset consecutive failures but keep totals."""
        manager = SourceManager(["a"])
        manager.record_failure("a", "x")
        manager.record_failure("a", "x")
        manager.record_success("a")

        status = manager.get_source_status("a")
        assert status.consecutive_failures == 0
        assert status.total_failures == 2
        assert status.total_successes == 1

    def test_success_timestamp(self) -> None:
        """Success should record when it happened."""
        manager = SourceManager(["a"])
        with patch("gas_oracle.src.SourceManager.time.time", return_value=1234.0):
            manager.record_success("a")
        assert manager.get_source_status("a").last_success_at == 1234.0

    def test_success_unknown_source(self) -> None:
        """Recording success for unknown source should create it."""
        manager = SourceManager(["a"])
        manager.record_success("unknown")
        assert manager.get_source_status("unknown").total_successes == 1

    def test_get_status_unknown(self) -> None:
        assert SourceManager(["a"]).get_source_status("zzz") is None
