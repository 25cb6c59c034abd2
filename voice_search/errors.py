"""Error types raised by the decoding engine."""

from typing import Sequence


class VoiceSearchError(Exception):
    """Base class for all voice-search errors."""


class MissingTokenError(VoiceSearchError):
    """Raised when a required control token has no id in the tokenizer."""

    def __init__(self, name: str):
        super().__init__(f"no token-id for {name}")
        self.name = name


class NoSpeechTokenUnavailable(VoiceSearchError):
    """Raised when none of the no-speech candidate tokens can be resolved."""

    def __init__(self, candidates: Sequence[str]):
        super().__init__(
            f"unable to find any non-speech token (tried: {', '.join(candidates)})"
        )
        self.candidates = tuple(candidates)


class DecodeStepFailed(VoiceSearchError):
    """Raised when the model or tokenizer fails during a decode attempt."""

    def __init__(self, cause: BaseException):
        super().__init__(f"decode step failed: {cause}")
        self.cause = cause


class ModelAssetError(VoiceSearchError):
    """Raised when model assets cannot be located or loaded."""
