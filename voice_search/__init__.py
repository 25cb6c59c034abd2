"""voice-search: Whisper-style transcription decoding.

This module turns log-mel feature tensors into text by driving an
encoder-decoder speech model: temperature fallback, silence detection,
and windowing of long audio.

Example:
    >>> from voice_search import WhisperTranscriber
    >>> transcriber = WhisperTranscriber.from_pretrained(device="cpu")
    >>> segments, info = transcriber.transcribe(features)
    >>> for segment in segments:
    ...     print(f"[{segment.start_time:.2f}s - {segment.end_time:.2f}s] {segment.text}")
"""

from .data_models import (
    DecodingResult,
    Segment,
    SpecialTokens,
    TranscriptionInfo,
    transcript_text,
)
from .decoder import DecodeAttempt, compression_ratio
from .errors import (
    DecodeStepFailed,
    MissingTokenError,
    ModelAssetError,
    NoSpeechTokenUnavailable,
    VoiceSearchError,
)
from .fallback import FallbackController
from .profiler import PerformanceProfiler, PerformanceStats, cuda_memory_manager
from .protocols import WhisperModel, WhisperTokenizer
from .repo import WhisperRepo
from .scheduler import SegmentScheduler
from .special_tokens import build_suppression_mask, resolve_special_tokens, token_id
from .transcriber import WhisperTranscriber
from .whisper_model import TransformersWhisperModel

__version__ = "0.1.0"

__all__ = [
    "DecodeAttempt",
    "DecodeStepFailed",
    "DecodingResult",
    "FallbackController",
    "MissingTokenError",
    "ModelAssetError",
    "NoSpeechTokenUnavailable",
    "PerformanceProfiler",
    "PerformanceStats",
    "Segment",
    "SegmentScheduler",
    "SpecialTokens",
    "TranscriptionInfo",
    "TransformersWhisperModel",
    "VoiceSearchError",
    "WhisperModel",
    "WhisperRepo",
    "WhisperTokenizer",
    "WhisperTranscriber",
    "build_suppression_mask",
    "compression_ratio",
    "cuda_memory_manager",
    "resolve_special_tokens",
    "token_id",
    "transcript_text",
]
