"""Performance reporting utilities.

This module provides the statistics the transcriber logs after each run
and a helper that releases cached CUDA memory.
"""

from contextlib import contextmanager
from dataclasses import dataclass

import torch


@dataclass
class PerformanceStats:
    """Performance statistics for transcription.

    Attributes:
        audio_duration: Total audio duration in seconds
        processing_time: Wall-clock processing time in seconds
        rtf: Real-time factor (processing_time / audio_duration)
        throughput: Audio seconds processed per wall-clock second
        num_windows: Number of windows decoded
        device: Device used for processing
    """
    audio_duration: float
    processing_time: float
    rtf: float
    throughput: float
    num_windows: int
    device: str

    def __str__(self) -> str:
        return (
            f"Performance: {self.audio_duration:.1f}s audio in {self.processing_time:.2f}s "
            f"(RTF: {self.rtf:.3f}, throughput: {self.throughput:.1f}x, "
            f"windows: {self.num_windows}, device: {self.device})"
        )


class PerformanceProfiler:
    """Computes timing, throughput, and real-time factor for transcriptions."""

    @staticmethod
    def calculate_stats(
        audio_duration: float,
        processing_time: float,
        num_windows: int,
        device: str,
    ) -> PerformanceStats:
        """Calculate performance statistics.

        Args:
            audio_duration: Total audio duration in seconds
            processing_time: Wall-clock processing time in seconds
            num_windows: Number of windows decoded
            device: Device used for processing

        Returns:
            PerformanceStats object with calculated metrics
        """
        rtf = processing_time / audio_duration if audio_duration > 0 else 0.0
        throughput = audio_duration / processing_time if processing_time > 0 else 0.0

        return PerformanceStats(
            audio_duration=audio_duration,
            processing_time=processing_time,
            rtf=rtf,
            throughput=throughput,
            num_windows=num_windows,
            device=device,
        )


@contextmanager
def cuda_memory_manager(device: str = "cuda"):
    """Context manager that empties the CUDA cache on exit.

    Does nothing for non-CUDA devices or when CUDA is unavailable.

    Example:
        >>> with cuda_memory_manager(model.device):
        ...     segments = scheduler.run(features, generator)
    """
    try:
        yield
    finally:
        if str(device).startswith("cuda") and torch.cuda.is_available():
            torch.cuda.empty_cache()
