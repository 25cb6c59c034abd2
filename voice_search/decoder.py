"""Single-temperature autoregressive decoding.

This module provides DecodeAttempt, which runs one greedy or sampled
generation pass over a feature window and scores the result.
"""

import logging
import zlib
from typing import Optional

import torch

from .data_models import DecodingResult, SpecialTokens
from .errors import DecodeStepFailed
from .protocols import WhisperModel, WhisperTokenizer

logger = logging.getLogger(__name__)


def compression_ratio(text: str) -> float:
    """Ratio of the UTF-8 length of ``text`` to its zlib-compressed length."""
    text_bytes = text.encode("utf-8")
    return len(text_bytes) / len(zlib.compress(text_bytes))


class DecodeAttempt:
    """Runs one decoding pass over a window at a fixed temperature.

    The attempt object only holds read-only references; the growing token
    list and the encoder output live for the duration of a single ``run``
    call, so one instance can serve every window and every temperature.

    Attributes:
        model: Encoder-decoder model to drive
        tokenizer: Tokenizer used to render the final token sequence
        special_tokens: Resolved control-token ids
        suppression_mask: Additive mask applied to next-token logits
    """

    def __init__(
        self,
        model: WhisperModel,
        tokenizer: WhisperTokenizer,
        special_tokens: SpecialTokens,
        suppression_mask: torch.Tensor,
    ):
        """Initialize decode attempt.

        Raises:
            ValueError: If the mask size does not match the vocabulary
        """
        if suppression_mask.ndim != 1 or suppression_mask.shape[0] != model.vocab_size:
            raise ValueError(
                f"suppression_mask must have shape [{model.vocab_size}], "
                f"got {tuple(suppression_mask.shape)}"
            )

        self.model = model
        self.tokenizer = tokenizer
        self.special_tokens = special_tokens
        self.suppression_mask = suppression_mask

    @torch.inference_mode()
    def run(
        self,
        window: torch.Tensor,
        temperature: float,
        generator: Optional[torch.Generator] = None,
    ) -> DecodingResult:
        """Decode one window.

        Args:
            window: Features of shape (1, n_mels, n_frames)
            temperature: 0 for argmax, > 0 for sampling
            generator: Session generator, required when temperature > 0

        Returns:
            DecodingResult for this temperature

        Raises:
            ValueError: If sampling is requested without a generator
            DecodeStepFailed: If the model or tokenizer fails, or the
                logits cannot be turned into a token
        """
        if temperature > 0 and generator is None:
            raise ValueError("generator is required when temperature > 0")

        max_positions = self.model.max_target_positions
        sample_len = max_positions // 2
        eot = self.special_tokens.eot
        no_speech = self.special_tokens.no_speech

        tokens = self.special_tokens.prompt()
        sum_logprob = 0.0
        no_speech_prob = float("nan")

        try:
            audio_features = self.model.encode(window)
        except Exception as e:
            raise DecodeStepFailed(e) from e

        for step in range(sample_len):
            if len(tokens) >= max_positions:
                break

            tokens_t = torch.tensor(tokens, dtype=torch.long, device=window.device)
            try:
                logits = self.model.decode_step(tokens_t, audio_features, step == 0)
                logits = logits.float()

                # Silence estimate comes from the first position of the first step
                if step == 0:
                    no_speech_prob = torch.softmax(logits[0], dim=-1)[no_speech].item()

                last = logits[-1] + self.suppression_mask.to(logits.device)
                next_token = self._select(last, temperature, generator)
                logprob = torch.log_softmax(last, dim=-1)[next_token].item()
            except Exception as e:
                raise DecodeStepFailed(e) from e

            tokens.append(next_token)
            sum_logprob += logprob

            if next_token == eot or len(tokens) >= max_positions:
                break

        try:
            text = self.tokenizer.decode(tokens, skip_special_tokens=True)
        except Exception as e:
            raise DecodeStepFailed(e) from e

        result = DecodingResult(
            tokens=tuple(tokens),
            text=text,
            average_log_probability=sum_logprob / len(tokens),
            no_speech_probability=no_speech_prob,
            temperature=temperature,
            compression_ratio=compression_ratio(text),
        )
        logger.debug(
            f"Decoded {len(tokens)} tokens at temperature {temperature}: "
            f"avg_logprob={result.average_log_probability:.3f}, "
            f"no_speech_prob={no_speech_prob:.3f}, "
            f"compression_ratio={result.compression_ratio:.2f}"
        )
        return result

    @staticmethod
    def _select(
        logits: torch.Tensor,
        temperature: float,
        generator: Optional[torch.Generator],
    ) -> int:
        """Pick the next token from masked logits.

        Argmax at temperature 0 (first maximal index on ties), otherwise
        one draw from the temperature-scaled distribution.
        """
        if temperature > 0:
            probs = torch.softmax(logits / temperature, dim=-1)
            return int(torch.multinomial(probs.cpu(), 1, generator=generator).item())
        return int(torch.argmax(logits).item())

