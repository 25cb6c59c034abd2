"""Structural types for the model and tokenizer the decoder drives.

Any object with the right shape works: the bundled transformers adapter,
``tokenizers.Tokenizer`` as-is, or a scripted double in tests.
"""

from typing import Optional, Protocol, Sequence

import torch


class WhisperModel(Protocol):
    """Encoder-decoder speech model.

    Attributes:
        vocab_size: Number of entries in the output distribution
        max_target_positions: Longest token sequence the decoder accepts
        suppress_tokens: Token ids that must never be produced
    """

    vocab_size: int
    max_target_positions: int
    suppress_tokens: Sequence[int]

    def encode(self, window: torch.Tensor) -> torch.Tensor:
        """Run the encoder over a (1, n_mels, n_frames) feature window."""
        ...

    def decode_step(
        self,
        tokens: torch.Tensor,
        audio_features: torch.Tensor,
        is_first_step: bool,
    ) -> torch.Tensor:
        """Return logits of shape (len(tokens), vocab_size)."""
        ...


class WhisperTokenizer(Protocol):
    """Tokenizer interface, matching ``tokenizers.Tokenizer``."""

    def token_to_id(self, token: str) -> Optional[int]: ...

    def decode(self, ids: Sequence[int], skip_special_tokens: bool = True) -> str: ...
