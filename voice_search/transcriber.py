"""Main API class for voice-search.

This module provides the WhisperTranscriber class, the primary interface
for turning feature tensors into text. It validates parameters, builds the
decoding pipeline once per loaded model, and runs one decoding session per
transcription.
"""

import logging
import time
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from .config import (
    COMPRESSION_RATIO_THRESHOLD,
    HOP_LENGTH,
    LOGPROB_THRESHOLD,
    N_FRAMES,
    NO_SPEECH_THRESHOLD,
    REPO_ID,
    REPO_REVISION,
    SAMPLE_RATE,
    SEED,
    TEMPERATURES,
)
from .data_models import Segment, TranscriptionInfo, transcript_text
from .decoder import DecodeAttempt
from .fallback import FallbackController
from .profiler import PerformanceProfiler, cuda_memory_manager
from .protocols import WhisperModel, WhisperTokenizer
from .repo import WhisperRepo
from .scheduler import WINDOW_ERROR_POLICIES, SegmentScheduler
from .special_tokens import build_suppression_mask, resolve_special_tokens
from .whisper_model import TransformersWhisperModel

logger = logging.getLogger(__name__)

Features = Union[torch.Tensor, np.ndarray]


class WhisperTranscriber:
    """Transcribes log-mel feature tensors with a Whisper-style model.

    The control tokens and the suppression mask are resolved once here and
    shared read-only by every transcription. Each call to ``transcribe``
    gets its own seeded generator, so runs are reproducible and concurrent
    calls do not share sampling state.

    Example:
        >>> transcriber = WhisperTranscriber.from_pretrained(device="cpu")
        >>> segments, info = transcriber.transcribe(features)
        >>> for segment in segments:
        ...     print(f"[{segment.start_time:.2f}s - {segment.end_time:.2f}s] {segment.text}")

    Attributes:
        model: Encoder-decoder model
        tokenizer: Tokenizer for the model's vocabulary
        special_tokens: Resolved control tokens
        suppression_mask: Additive mask built from model.suppress_tokens
        seed: Seed for each session's generator
        scheduler: SegmentScheduler driving the fallback controller
    """

    def __init__(
        self,
        model: WhisperModel,
        tokenizer: WhisperTokenizer,
        language: Optional[str] = None,
        temperatures: Sequence[float] = TEMPERATURES,
        compression_ratio_threshold: float = COMPRESSION_RATIO_THRESHOLD,
        logprob_threshold: float = LOGPROB_THRESHOLD,
        no_speech_threshold: float = NO_SPEECH_THRESHOLD,
        max_window_frames: int = N_FRAMES,
        on_window_error: str = "skip",
        seed: int = SEED,
    ):
        """Initialize the transcriber.

        Args:
            model: Object implementing the WhisperModel protocol
            tokenizer: Object implementing the WhisperTokenizer protocol
            language: Optional language code (e.g. "en") to force
            temperatures: Ascending fallback ladder
            compression_ratio_threshold: Repetition gate
            logprob_threshold: Confidence gate
            no_speech_threshold: Silence gate
            max_window_frames: Largest window in feature frames; must not
                exceed the model's ``input_frames`` when it exposes one
            on_window_error: "skip" or "raise" for windows that fail to decode
            seed: Seed for the per-transcription generator

        Raises:
            TypeError: If parameters have invalid types
            ValueError: If parameters are invalid
            MissingTokenError: If a control token or the language is unknown
            NoSpeechTokenUnavailable: If no no-speech token can be resolved
        """
        # Validate language parameter
        if language is not None:
            if not isinstance(language, str):
                raise TypeError(
                    f"language must be str, got {type(language).__name__}"
                )
            if not language:
                raise ValueError("language cannot be empty string")

        # Validate temperatures parameter
        if not isinstance(temperatures, (list, tuple)):
            raise TypeError(
                f"temperatures must be list or tuple, got {type(temperatures).__name__}"
            )
        if not temperatures:
            raise ValueError("temperatures cannot be empty")
        for i, t in enumerate(temperatures):
            if isinstance(t, bool) or not isinstance(t, (int, float)):
                raise TypeError(
                    f"temperatures[{i}] must be numeric, got {type(t).__name__}"
                )
            if t < 0.0:
                raise ValueError(
                    f"temperatures[{i}] must be non-negative, got {t}"
                )
        if list(temperatures) != sorted(temperatures):
            raise ValueError(
                f"temperatures must be in ascending order, got {list(temperatures)}"
            )

        # Validate thresholds
        for name, value in (
            ("compression_ratio_threshold", compression_ratio_threshold),
            ("logprob_threshold", logprob_threshold),
            ("no_speech_threshold", no_speech_threshold),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(
                    f"{name} must be numeric, got {type(value).__name__}"
                )
        if not 0.0 <= no_speech_threshold <= 1.0:
            raise ValueError(
                f"no_speech_threshold must be in range [0.0, 1.0], got {no_speech_threshold}"
            )

        # Validate max_window_frames parameter
        if isinstance(max_window_frames, bool) or not isinstance(max_window_frames, int):
            raise TypeError(
                f"max_window_frames must be int, got {type(max_window_frames).__name__}"
            )
        if max_window_frames < 1:
            raise ValueError(
                f"max_window_frames must be positive integer, got {max_window_frames}"
            )
        input_frames = getattr(model, "input_frames", None)
        if input_frames is not None and max_window_frames > input_frames:
            raise ValueError(
                f"max_window_frames ({max_window_frames}) exceeds the "
                f"model's encoder input length ({input_frames})"
            )

        # Validate on_window_error parameter
        if on_window_error not in WINDOW_ERROR_POLICIES:
            raise ValueError(
                f"on_window_error must be 'skip' or 'raise', got '{on_window_error}'"
            )

        # Validate seed parameter
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise TypeError(f"seed must be int, got {type(seed).__name__}")

        self.model = model
        self.tokenizer = tokenizer
        self.language = language
        self.seed = seed
        self.device = str(getattr(model, "device", "cpu"))

        self.special_tokens = resolve_special_tokens(tokenizer, language)
        self.suppression_mask = build_suppression_mask(
            model.vocab_size, model.suppress_tokens
        )

        attempt = DecodeAttempt(
            model=model,
            tokenizer=tokenizer,
            special_tokens=self.special_tokens,
            suppression_mask=self.suppression_mask,
        )
        controller = FallbackController(
            attempt,
            temperatures=temperatures,
            compression_ratio_threshold=compression_ratio_threshold,
            logprob_threshold=logprob_threshold,
            no_speech_threshold=no_speech_threshold,
        )
        self.scheduler = SegmentScheduler(
            controller,
            max_window_frames=max_window_frames,
            hop_length=HOP_LENGTH,
            sample_rate=SAMPLE_RATE,
            no_speech_threshold=no_speech_threshold,
            logprob_threshold=logprob_threshold,
            on_window_error=on_window_error,
        )

        logger.info(
            f"WhisperTranscriber initialized: device={self.device}, "
            f"language={language}, temperatures={list(temperatures)}, "
            f"max_window_frames={max_window_frames}"
        )

    @classmethod
    def from_pretrained(
        cls,
        repo_id: str = REPO_ID,
        revision: str = REPO_REVISION,
        device: str = "cpu",
        compute_type: str = "float32",
        download_root: Optional[str] = None,
        **kwargs,
    ) -> "WhisperTranscriber":
        """Download a Whisper checkpoint and build a transcriber for it.

        Args:
            repo_id: HuggingFace repository id
            revision: Repository revision
            device: Device to run on ("cuda" or "cpu")
            compute_type: Precision ("float16" or "float32")
            download_root: Optional cache directory for downloads
            **kwargs: Forwarded to the constructor

        Raises:
            ValueError: If device or compute_type is invalid
            RuntimeError: If CUDA is requested but not available
            ModelAssetError: If the downloaded assets are incomplete
        """
        if device not in ["cuda", "cpu"]:
            raise ValueError(
                f"device must be 'cuda' or 'cpu', got '{device}'"
            )
        if device == "cuda" and not torch.cuda.is_available():
            raise RuntimeError(
                "CUDA device requested but not available. "
                "Install CUDA toolkit or use device='cpu'"
            )
        if compute_type not in ["float16", "float32"]:
            raise ValueError(
                f"compute_type must be 'float16' or 'float32', got '{compute_type}'"
            )

        repo = WhisperRepo.download(repo_id, revision=revision, cache_dir=download_root)
        model = TransformersWhisperModel.load(
            str(repo.model_dir), device=device, compute_type=compute_type
        )
        return cls(model, repo.tokenizer(), **kwargs)

    def _prepare_features(self, features: Features) -> torch.Tensor:
        """Validate features and bring them to shape (1, n_mels, n_frames)."""
        if isinstance(features, np.ndarray):
            features = torch.from_numpy(np.ascontiguousarray(features, dtype=np.float32))
        elif not isinstance(features, torch.Tensor):
            raise TypeError(
                f"features must be torch.Tensor or np.ndarray, "
                f"got {type(features).__name__}"
            )

        if features.numel() == 0:
            raise ValueError("features cannot be empty")

        num_mel_bins = getattr(self.model, "num_mel_bins", None)

        if features.ndim == 1:
            if num_mel_bins is None:
                raise ValueError(
                    "flat features require a model exposing num_mel_bins"
                )
            if features.numel() % num_mel_bins != 0:
                raise ValueError(
                    f"flat features of length {features.numel()} are not a "
                    f"multiple of num_mel_bins ({num_mel_bins})"
                )
            features = features.reshape(1, num_mel_bins, -1)

        if features.ndim != 3 or features.shape[0] != 1:
            raise ValueError(
                f"features must have shape (1, n_mels, n_frames), "
                f"got {tuple(features.shape)}"
            )
        if num_mel_bins is not None and features.shape[1] != num_mel_bins:
            raise ValueError(
                f"features have {features.shape[1]} mel bins, "
                f"model expects {num_mel_bins}"
            )

        return features

    def transcribe(
        self,
        features: Features,
    ) -> Tuple[List[Segment], TranscriptionInfo]:
        """Transcribe one feature tensor.

        Args:
            features: Tensor or array of shape (1, n_mels, n_frames), or a
                flat vector of n_mels * n_frames values

        Returns:
            segments: Accepted windows in chronological order
            info: Transcription metadata

        Raises:
            TypeError: If features have an invalid type
            ValueError: If features have an invalid shape
            DecodeStepFailed: If a window fails and on_window_error is "raise"
        """
        features = self._prepare_features(features)
        total_frames = features.shape[2]
        audio_duration = self.scheduler.frames_to_seconds(total_frames)
        num_windows = sum(1 for _ in self.scheduler.windows(total_frames))

        start_time = time.time()

        generator = torch.Generator().manual_seed(self.seed)
        with cuda_memory_manager(self.device):
            segments = self.scheduler.run(features, generator)

        processing_time = time.time() - start_time

        stats = PerformanceProfiler.calculate_stats(
            audio_duration=audio_duration,
            processing_time=processing_time,
            num_windows=num_windows,
            device=self.device,
        )
        logger.info(f"Transcribed {len(segments)}/{num_windows} windows. {stats}")

        info = TranscriptionInfo(
            duration=audio_duration,
            num_windows=num_windows,
            num_segments=len(segments),
            device=self.device,
            processing_time=processing_time,
        )
        return segments, info

    def transcribe_text(self, features: Features) -> str:
        """Transcribe one feature tensor and return the joined transcript."""
        segments, _ = self.transcribe(features)
        return transcript_text(segments)

    def transcribe_batch(
        self,
        features_list: List[Features],
    ) -> List[Tuple[List[Segment], TranscriptionInfo]]:
        """Transcribe several feature tensors, one after another.

        Every input is validated before any decoding starts.

        Returns:
            List of (segments, info) tuples in the same order as the input

        Raises:
            TypeError: If features_list is not a list
            ValueError: If features_list is empty or any tensor is invalid
        """
        if not isinstance(features_list, list):
            raise TypeError(
                f"features_list must be list, got {type(features_list).__name__}"
            )
        if not features_list:
            raise ValueError("features_list cannot be empty")

        prepared = [self._prepare_features(f) for f in features_list]
        return [self.transcribe(f) for f in prepared]
