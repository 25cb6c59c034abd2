"""Scripted model and tokenizer doubles shared by the test suite."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pytest
import torch

from voice_search import DecodingResult

VOCAB = [
    "<|endoftext|>",
    "<|startoftranscript|>",
    "<|en|>",
    "<|transcribe|>",
    "<|notimestamps|>",
    "<|nospeech|>",
    " hello",
    " world",
    " this",
    " is",
    " a",
    " test",
    " of",
    " speech",
    " again",
    " done",
]

EOT, SOT, EN, TRANSCRIBE, NO_TIMESTAMPS, NO_SPEECH = range(6)
HELLO, WORLD, THIS, IS, A, TEST, OF, SPEECH, AGAIN, DONE = range(6, 16)

N_MELS = 4
SILENCE = 0.0
SPEECH_FILL = 1.0
UNSURE = 2.0


@dataclass
class WindowScript:
    """What the scripted model emits for windows filled with one value.

    The decoder's next-token logits are 0 everywhere except ``confidence``
    at the scripted token; the first position carries ``no_speech_logit``
    at the no-speech id. Past the end of ``tokens`` the last one repeats.
    """
    tokens: List[int]
    confidence: float = 10.0
    no_speech_logit: float = 0.0


SCRIPTS: Dict[float, WindowScript] = {
    SPEECH_FILL: WindowScript(tokens=[HELLO, WORLD, EOT], confidence=10.0),
    SILENCE: WindowScript(
        tokens=[A, TEST, OF, SPEECH, EOT], confidence=0.5, no_speech_logit=10.0
    ),
    UNSURE: WindowScript(
        tokens=[THIS, IS, A, TEST, OF, EOT], confidence=0.5, no_speech_logit=0.0
    ),
}


class FakeTokenizer:
    """Tokenizer over VOCAB; control tokens look like ``<|...|>``."""

    def __init__(self, vocab: Sequence[str] = VOCAB, missing: Sequence[str] = ()):
        self.vocab = list(vocab)
        self._ids = {tok: i for i, tok in enumerate(self.vocab) if tok not in missing}
        self.fail_decode = False

    def token_to_id(self, token: str) -> Optional[int]:
        return self._ids.get(token)

    def decode(self, ids: Sequence[int], skip_special_tokens: bool = True) -> str:
        if self.fail_decode:
            raise RuntimeError("tokenizer exploded")
        pieces = [self.vocab[i] for i in ids]
        if skip_special_tokens:
            pieces = [p for p in pieces if not p.startswith("<|")]
        return "".join(pieces)


class ScriptedModel:
    """Model double whose logits depend on the window fill value and step.

    ``encode`` returns the window mean, which selects the script; every
    ``decode_step`` advances one scripted token. Windows in ``fail_fills``
    raise from ``decode_step``; windows in ``nan_fills`` get all-NaN logits.
    Call counters allow tests to check how often the model was driven.
    """

    def __init__(
        self,
        scripts: Optional[Dict[float, WindowScript]] = None,
        vocab_size: int = len(VOCAB),
        max_target_positions: int = 64,
        suppress_tokens: Sequence[int] = (),
        fail_fills: Sequence[float] = (),
        nan_fills: Sequence[float] = (),
    ):
        self.scripts = dict(SCRIPTS if scripts is None else scripts)
        self.vocab_size = vocab_size
        self.max_target_positions = max_target_positions
        self.suppress_tokens = list(suppress_tokens)
        self.num_mel_bins = N_MELS
        self.device = "cpu"
        self.fail_fills = set(fail_fills)
        self.nan_fills = set(nan_fills)
        self.encode_calls = 0
        self.decode_calls = 0
        self.first_step_flags: List[bool] = []
        self._step = 0

    def encode(self, window: torch.Tensor) -> torch.Tensor:
        self.encode_calls += 1
        self._step = 0
        return window.float().mean().reshape(1)

    def decode_step(
        self,
        tokens: torch.Tensor,
        audio_features: torch.Tensor,
        is_first_step: bool,
    ) -> torch.Tensor:
        self.decode_calls += 1
        self.first_step_flags.append(is_first_step)
        fill = round(float(audio_features[0]), 3)
        if fill in self.fail_fills:
            raise RuntimeError(f"backend failure on window filled with {fill}")

        script = self.scripts[fill]
        target = script.tokens[min(self._step, len(script.tokens) - 1)]
        self._step += 1

        logits = torch.zeros(len(tokens), self.vocab_size)
        logits[0, NO_SPEECH] = script.no_speech_logit
        logits[-1, target] = script.confidence
        if fill in self.nan_fills:
            logits.fill_(float("nan"))
        return logits


class FakeAttempt:
    """Stands in for DecodeAttempt with one outcome per temperature."""

    def __init__(self, outcomes: Dict[float, object]):
        self.outcomes = outcomes
        self.calls: List[float] = []

    def run(self, window, temperature, generator=None):
        self.calls.append(temperature)
        outcome = self.outcomes[temperature]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeController:
    """Stands in for FallbackController; answers by window fill value."""

    def __init__(self, outcomes: Dict[float, object]):
        self.outcomes = outcomes
        self.windows: List[torch.Tensor] = []

    def decode(self, window, generator=None):
        self.windows.append(window)
        outcome = self.outcomes[round(float(window.mean()), 3)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class ResultFactory:
    """Builds DecodingResult values with sensible defaults."""
    defaults: Dict[str, object] = field(default_factory=lambda: dict(
        tokens=(SOT, TRANSCRIBE, NO_TIMESTAMPS, HELLO, EOT),
        text=" hello",
        average_log_probability=-0.1,
        no_speech_probability=0.05,
        temperature=0.0,
        compression_ratio=1.0,
    ))

    def __call__(self, **overrides) -> DecodingResult:
        return DecodingResult(**{**self.defaults, **overrides})


def build_features(*parts, n_mels: int = N_MELS) -> torch.Tensor:
    """Concatenate (fill_value, n_frames) parts along the frame axis."""
    blocks = [torch.full((1, n_mels, frames), fill) for fill, frames in parts]
    return torch.cat(blocks, dim=2) if blocks else torch.zeros(1, n_mels, 0)


@pytest.fixture
def tokenizer():
    return FakeTokenizer()


@pytest.fixture
def model():
    return ScriptedModel()


@pytest.fixture
def make_result():
    return ResultFactory()


@pytest.fixture
def features():
    return build_features
