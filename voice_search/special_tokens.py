"""Control-token resolution and the token suppression mask.

Both are computed once per loaded model and shared read-only by every
decode attempt.
"""

import logging
from typing import Iterable, Optional, Sequence, Union

import torch

from .config import (
    EOT_TOKEN,
    NO_SPEECH_TOKENS,
    NO_TIMESTAMPS_TOKEN,
    SOT_TOKEN,
    TRANSCRIBE_TOKEN,
)
from .data_models import SpecialTokens
from .errors import MissingTokenError, NoSpeechTokenUnavailable
from .protocols import WhisperTokenizer

logger = logging.getLogger(__name__)


def token_id(tokenizer: WhisperTokenizer, name: str) -> int:
    """Look up the id of a control token.

    Raises:
        MissingTokenError: If the tokenizer has no id for ``name``
    """
    id_ = tokenizer.token_to_id(name)
    if id_ is None:
        raise MissingTokenError(name)
    return id_


def language_token_name(language: str) -> str:
    """Turn a language code such as ``"en"`` into ``"<|en|>"``."""
    if language.startswith("<|") and language.endswith("|>"):
        return language
    return f"<|{language}|>"


def resolve_special_tokens(
    tokenizer: WhisperTokenizer,
    language: Optional[str] = None,
    *,
    sot_token: str = SOT_TOKEN,
    transcribe_token: str = TRANSCRIBE_TOKEN,
    eot_token: str = EOT_TOKEN,
    no_timestamps_token: str = NO_TIMESTAMPS_TOKEN,
    no_speech_tokens: Sequence[str] = NO_SPEECH_TOKENS,
) -> SpecialTokens:
    """Resolve every control token the decoder needs.

    The no-speech id comes from the first candidate in ``no_speech_tokens``
    that the tokenizer knows.

    Args:
        tokenizer: Tokenizer to query
        language: Optional language code or full language token

    Returns:
        SpecialTokens with all ids filled in

    Raises:
        MissingTokenError: If a required token (or the language) is unknown
        NoSpeechTokenUnavailable: If no no-speech candidate resolves
    """
    no_timestamps = token_id(tokenizer, no_timestamps_token)
    sot = token_id(tokenizer, sot_token)
    transcribe = token_id(tokenizer, transcribe_token)
    eot = token_id(tokenizer, eot_token)

    no_speech = None
    for candidate in no_speech_tokens:
        no_speech = tokenizer.token_to_id(candidate)
        if no_speech is not None:
            break
    if no_speech is None:
        raise NoSpeechTokenUnavailable(no_speech_tokens)

    language_id = None
    if language is not None:
        language_id = token_id(tokenizer, language_token_name(language))

    tokens = SpecialTokens(
        sot=sot,
        transcribe=transcribe,
        eot=eot,
        no_timestamps=no_timestamps,
        no_speech=no_speech,
        language=language_id,
    )
    logger.debug(f"Resolved control tokens: {tokens}")
    return tokens


def build_suppression_mask(
    vocab_size: int,
    suppressed_ids: Iterable[int],
    device: Optional[Union[str, torch.device]] = None,
) -> torch.Tensor:
    """Build the additive mask that removes suppressed ids from selection.

    Args:
        vocab_size: Number of vocabulary entries
        suppressed_ids: Ids that must never be produced; ids outside
            the vocabulary are ignored
        device: Device to allocate the mask on (default: CPU)

    Returns:
        float32 tensor of shape [vocab_size] holding 0 or -inf

    Raises:
        ValueError: If vocab_size is not positive
    """
    if vocab_size <= 0:
        raise ValueError(f"vocab_size must be positive, got {vocab_size}")

    mask = torch.zeros(vocab_size, dtype=torch.float32, device=device)
    in_range = sorted({i for i in suppressed_ids if 0 <= i < vocab_size})
    if in_range:
        mask[torch.tensor(in_range, dtype=torch.long, device=mask.device)] = float("-inf")
    return mask
