"""Windowing of long feature tensors.

This module provides SegmentScheduler, which walks the frame axis of a
feature tensor in bounded windows, decodes each one with temperature
fallback, drops windows classified as silence, and assembles the rest into
an ordered list of segments.
"""

import logging
from typing import Iterator, List, Optional, Tuple

import torch

from .config import (
    HOP_LENGTH,
    LOGPROB_THRESHOLD,
    N_FRAMES,
    NO_SPEECH_THRESHOLD,
    SAMPLE_RATE,
    SEED,
)
from .data_models import DecodingResult, Segment
from .errors import DecodeStepFailed
from .fallback import FallbackController

logger = logging.getLogger(__name__)

WINDOW_ERROR_POLICIES = ("skip", "raise")


class SegmentScheduler:
    """Splits features into windows and decodes them in time order.

    The seek cursor always advances by the full window, whether the window
    produced a segment, was dropped as silence, or failed.

    Attributes:
        controller: FallbackController used for each window
        max_window_frames: Largest window in feature frames
        hop_length: Audio samples per feature frame
        sample_rate: Audio sample rate in Hz
        no_speech_threshold: No-speech probability above which a
            low-confidence window is treated as silence
        logprob_threshold: Average log probability below which a
            window with high no-speech probability is treated as silence
        on_window_error: "skip" to log and move on when a window fails,
            "raise" to abort the run
    """

    def __init__(
        self,
        controller: FallbackController,
        max_window_frames: int = N_FRAMES,
        hop_length: int = HOP_LENGTH,
        sample_rate: int = SAMPLE_RATE,
        no_speech_threshold: float = NO_SPEECH_THRESHOLD,
        logprob_threshold: float = LOGPROB_THRESHOLD,
        on_window_error: str = "skip",
    ):
        """Initialize segment scheduler.

        Raises:
            ValueError: If sizes are non-positive or the error policy is unknown
        """
        if max_window_frames <= 0:
            raise ValueError(
                f"max_window_frames must be positive, got {max_window_frames}"
            )
        if hop_length <= 0:
            raise ValueError(f"hop_length must be positive, got {hop_length}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if on_window_error not in WINDOW_ERROR_POLICIES:
            raise ValueError(
                f"on_window_error must be 'skip' or 'raise', got '{on_window_error}'"
            )

        self.controller = controller
        self.max_window_frames = max_window_frames
        self.hop_length = hop_length
        self.sample_rate = sample_rate
        self.no_speech_threshold = no_speech_threshold
        self.logprob_threshold = logprob_threshold
        self.on_window_error = on_window_error

    def frames_to_seconds(self, frames: int) -> float:
        return frames * self.hop_length / self.sample_rate

    def windows(self, total_frames: int) -> Iterator[Tuple[int, int]]:
        """Yield (seek, window_size) pairs covering ``total_frames``."""
        seek = 0
        while seek < total_frames:
            window_size = min(total_frames - seek, self.max_window_frames)
            yield seek, window_size
            seek += window_size

    def is_silence(self, result: DecodingResult) -> bool:
        return (
            result.no_speech_probability > self.no_speech_threshold
            and result.average_log_probability < self.logprob_threshold
        )

    def run(
        self,
        features: torch.Tensor,
        generator: Optional[torch.Generator] = None,
    ) -> List[Segment]:
        """Decode every window of ``features``.

        Args:
            features: Tensor of shape (1, n_mels, n_frames)
            generator: Session generator for sampled fallback rungs; a
                generator seeded with SEED is created when omitted

        Returns:
            Segments in chronological order

        Raises:
            ValueError: If features are not rank 3
            DecodeStepFailed: If a window fails and on_window_error is "raise"
        """
        if features.ndim != 3:
            raise ValueError(
                f"features must be 3-dimensional, got shape {tuple(features.shape)}"
            )

        if generator is None:
            generator = torch.Generator().manual_seed(SEED)

        total_frames = features.shape[2]
        segments: List[Segment] = []

        for seek, window_size in self.windows(total_frames):
            time_offset = self.frames_to_seconds(seek)
            duration = self.frames_to_seconds(window_size)
            window = features.narrow(2, seek, window_size)

            try:
                result = self.controller.decode(window, generator)
            except DecodeStepFailed as e:
                if self.on_window_error == "raise":
                    raise
                logger.error(
                    f"Skipping window at {time_offset:.2f}s "
                    f"({duration:.2f}s) after decoding failed: {e}"
                )
                continue

            if self.is_silence(result):
                logger.debug(
                    f"Dropping silent window at {time_offset:.2f}s "
                    f"(no_speech_prob={result.no_speech_probability:.3f}, "
                    f"avg_logprob={result.average_log_probability:.3f})"
                )
                continue

            segments.append(
                Segment(
                    id=len(segments),
                    start_time=time_offset,
                    duration=duration,
                    result=result,
                )
            )

        return segments
