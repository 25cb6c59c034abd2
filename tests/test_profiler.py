"""Tests for performance reporting utilities."""

import pytest
import torch

from voice_search.profiler import PerformanceProfiler, cuda_memory_manager


class TestPerformanceProfiler:
    """Tests for PerformanceProfiler."""

    def test_calculate_stats(self):
        """Test performance stats calculation."""
        stats = PerformanceProfiler.calculate_stats(
            audio_duration=60.0,
            processing_time=10.0,
            num_windows=2,
            device="cuda",
        )

        assert stats.audio_duration == 60.0
        assert stats.processing_time == 10.0
        assert stats.rtf == pytest.approx(10.0 / 60.0)
        assert stats.throughput == pytest.approx(60.0 / 10.0)
        assert stats.num_windows == 2
        assert stats.device == "cuda"

    def test_calculate_stats_zero_duration(self):
        """Test stats calculation with zero duration."""
        stats = PerformanceProfiler.calculate_stats(
            audio_duration=0.0,
            processing_time=1.0,
            num_windows=0,
            device="cpu",
        )

        assert stats.rtf == 0.0

    def test_calculate_stats_zero_time(self):
        """Test stats calculation with zero processing time."""
        stats = PerformanceProfiler.calculate_stats(
            audio_duration=60.0,
            processing_time=0.0,
            num_windows=2,
            device="cpu",
        )

        assert stats.throughput == 0.0

    def test_str(self):
        """Test the one-line summary used in logs."""
        stats = PerformanceProfiler.calculate_stats(
            audio_duration=30.0,
            processing_time=3.0,
            num_windows=1,
            device="cpu",
        )

        assert str(stats) == (
            "Performance: 30.0s audio in 3.00s "
            "(RTF: 0.100, throughput: 10.0x, windows: 1, device: cpu)"
        )


class TestCudaMemoryManager:
    """Tests for cuda_memory_manager context manager."""

    @pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available")
    def test_cuda_memory_manager(self):
        """Test CUDA memory manager clears cache."""
        with cuda_memory_manager("cuda"):
            tensor = torch.randn(1000, 1000, device="cuda")
            assert torch.cuda.memory_allocated() > 0

        del tensor
        torch.cuda.empty_cache()

    def test_cpu_device_skips_cache(self, monkeypatch):
        """Test that a CPU device never touches the CUDA cache."""
        calls = []
        monkeypatch.setattr(torch.cuda, "empty_cache", lambda: calls.append(True))

        with cuda_memory_manager("cpu"):
            tensor = torch.randn(100, 100)
            assert tensor is not None

        assert calls == []

    def test_releases_on_error(self, monkeypatch):
        """Test that the cache is emptied even when the body raises."""
        calls = []
        monkeypatch.setattr(torch.cuda, "is_available", lambda: True)
        monkeypatch.setattr(torch.cuda, "empty_cache", lambda: calls.append(True))

        with pytest.raises(RuntimeError, match="window failed"):
            with cuda_memory_manager("cuda:0"):
                raise RuntimeError("window failed")

        assert calls == [True]
