"""Core data models for voice-search.

This module defines the records passed between the decoding stages:
the resolved control tokens, the result of one decode attempt, the
transcribed segments, and transcription metadata.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class SpecialTokens:
    """Numeric ids of the control tokens for one model/tokenizer pair.

    Attributes:
        sot: Start-of-transcript token id
        transcribe: Transcribe task token id
        eot: End-of-transcript token id
        no_timestamps: No-timestamps token id
        no_speech: Token id whose first-step probability signals silence
        language: Optional language token id
    """
    sot: int
    transcribe: int
    eot: int
    no_timestamps: int
    no_speech: int
    language: Optional[int] = None

    def prompt(self) -> List[int]:
        """Return a fresh token list holding the decoding prompt prefix."""
        tokens = [self.sot]
        if self.language is not None:
            tokens.append(self.language)
        tokens.append(self.transcribe)
        tokens.append(self.no_timestamps)
        return tokens


@dataclass(frozen=True)
class DecodingResult:
    """Outcome of one decoding pass over a window at a fixed temperature.

    Attributes:
        tokens: Full token sequence, prompt prefix included
        text: Decoded text with control tokens removed
        average_log_probability: Sum of chosen-token log probabilities
            divided by the sequence length
        no_speech_probability: Probability of the no-speech token at the
            first decoding step
        temperature: Sampling temperature used
        compression_ratio: UTF-8 length of the text over its zlib length
    """
    tokens: Tuple[int, ...]
    text: str
    average_log_probability: float
    no_speech_probability: float
    temperature: float
    compression_ratio: float


@dataclass(frozen=True)
class Segment:
    """An accepted window with timing information.

    Attributes:
        id: Sequential index of the segment in the output
        start_time: Start time in seconds relative to the original audio
        duration: Window duration in seconds
        result: Accepted decoding result for the window
    """
    id: int
    start_time: float
    duration: float
    result: DecodingResult

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def text(self) -> str:
        return self.result.text


@dataclass
class TranscriptionInfo:
    """Metadata about the transcription process.

    Attributes:
        duration: Total audio duration in seconds
        num_windows: Number of windows the features were split into
        num_segments: Number of windows that produced a segment
        device: Device the model runs on
        processing_time: Total wall-clock time for processing in seconds
    """
    duration: float
    num_windows: int
    num_segments: int
    device: str
    processing_time: float


def transcript_text(segments: Iterable[Segment]) -> str:
    """Concatenate segment texts in output order."""
    return "".join(segment.text for segment in segments)
