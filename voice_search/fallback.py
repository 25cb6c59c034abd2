"""Temperature fallback for low-quality decoding results.

This module provides FallbackController, which retries a window on an
ascending temperature ladder until a result clears the quality gates.
"""

import logging
from typing import Optional, Sequence

import torch

from .config import (
    COMPRESSION_RATIO_THRESHOLD,
    LOGPROB_THRESHOLD,
    NO_SPEECH_THRESHOLD,
    SEED,
    TEMPERATURES,
)
from .data_models import DecodingResult
from .decoder import DecodeAttempt
from .errors import DecodeStepFailed

logger = logging.getLogger(__name__)


class FallbackController:
    """Decodes a window, falling back to higher temperatures on poor results.

    A result needs fallback when it is too repetitive (compression ratio
    above threshold) or too uncertain (average log probability below
    threshold). A confident no-speech verdict accepts the result anyway.
    The last temperature is accepted unconditionally.

    Attributes:
        attempt: DecodeAttempt used for every rung
        temperatures: Ascending temperature ladder
        compression_ratio_threshold: Upper bound on compression ratio
        logprob_threshold: Lower bound on average log probability
        no_speech_threshold: No-speech probability that short-circuits retries
    """

    def __init__(
        self,
        attempt: DecodeAttempt,
        temperatures: Sequence[float] = TEMPERATURES,
        compression_ratio_threshold: float = COMPRESSION_RATIO_THRESHOLD,
        logprob_threshold: float = LOGPROB_THRESHOLD,
        no_speech_threshold: float = NO_SPEECH_THRESHOLD,
    ):
        """Initialize fallback controller.

        Raises:
            ValueError: If the temperature ladder is empty or has negative values
        """
        if not temperatures:
            raise ValueError("temperatures cannot be empty")
        if any(t < 0 for t in temperatures):
            raise ValueError(
                f"temperatures must be non-negative, got {list(temperatures)}"
            )

        self.attempt = attempt
        self.temperatures = tuple(temperatures)
        self.compression_ratio_threshold = compression_ratio_threshold
        self.logprob_threshold = logprob_threshold
        self.no_speech_threshold = no_speech_threshold

    def needs_fallback(self, result: DecodingResult) -> bool:
        """Whether the result fails the repetition or confidence gate."""
        return (
            result.compression_ratio > self.compression_ratio_threshold
            or result.average_log_probability < self.logprob_threshold
        )

    def is_acceptable(self, result: DecodingResult) -> bool:
        """Whether the result can be returned without trying the next rung."""
        return (
            not self.needs_fallback(result)
            or result.no_speech_probability > self.no_speech_threshold
        )

    def decode(
        self,
        window: torch.Tensor,
        generator: Optional[torch.Generator] = None,
    ) -> DecodingResult:
        """Decode a window with temperature fallback.

        Args:
            window: Features of shape (1, n_mels, n_frames)
            generator: Session generator for sampled rungs; a generator
                seeded with SEED is created when omitted

        Returns:
            First acceptable result, or the last rung's result

        Raises:
            DecodeStepFailed: If the last rung fails
        """
        if generator is None:
            generator = torch.Generator().manual_seed(SEED)

        *retry_rungs, last_rung = self.temperatures

        for temperature in retry_rungs:
            try:
                result = self.attempt.run(window, temperature, generator)
            except DecodeStepFailed as e:
                logger.warning(f"Error running at {temperature}: {e}")
                continue

            if self.is_acceptable(result):
                return result

            logger.debug(
                f"Falling back from temperature {temperature} "
                f"(compression_ratio={result.compression_ratio:.2f}, "
                f"avg_logprob={result.average_log_probability:.3f}, "
                f"no_speech_prob={result.no_speech_probability:.3f})"
            )

        return self.attempt.run(window, last_rung, generator)
