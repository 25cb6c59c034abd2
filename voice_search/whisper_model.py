"""Adapter exposing a transformers Whisper checkpoint as a WhisperModel.

The adapter only wires tensors between the decoding engine and
``WhisperForConditionalGeneration``; all network computation stays inside
transformers.
"""

import logging
from typing import List, Tuple, Union

import torch
import torch.nn.functional as F
from transformers import WhisperForConditionalGeneration

logger = logging.getLogger(__name__)


class TransformersWhisperModel:
    """WhisperModel backed by ``transformers.WhisperForConditionalGeneration``.

    Attributes:
        model: Wrapped transformers model (eval mode)
        device: Device the model runs on
        vocab_size: Number of vocabulary entries
        max_target_positions: Longest decoder sequence
        num_mel_bins: Mel bins expected in the feature tensor
        input_frames: Fixed number of frames the encoder accepts
        suppress_tokens: Token ids that must never be produced
    """

    def __init__(
        self,
        model: WhisperForConditionalGeneration,
        device: str = "cpu",
    ):
        self.model = model.to(device).eval()
        self.device = device

        config = model.config
        self.vocab_size: int = config.vocab_size
        self.max_target_positions: int = config.max_target_positions
        self.num_mel_bins: int = config.num_mel_bins

        encoder = model.get_encoder()
        self.input_frames: int = (
            config.max_source_positions
            * encoder.conv1.stride[0]
            * encoder.conv2.stride[0]
        )
        self.suppress_tokens: Tuple[int, ...] = tuple(self._suppress_tokens(model))
        self._dtype = next(model.parameters()).dtype

    @staticmethod
    def _suppress_tokens(model: WhisperForConditionalGeneration) -> List[int]:
        tokens = getattr(model.config, "suppress_tokens", None)
        if not tokens:
            generation_config = getattr(model, "generation_config", None)
            tokens = getattr(generation_config, "suppress_tokens", None)
        return list(tokens or [])

    @classmethod
    def load(
        cls,
        name_or_path: str,
        device: str = "cpu",
        compute_type: str = "float32",
    ) -> "TransformersWhisperModel":
        """Load a checkpoint from a local directory or a hub repository.

        Args:
            name_or_path: Local model directory or repository id
            device: Device to run on ("cpu" or "cuda")
            compute_type: "float16" (CUDA only) or "float32"

        Returns:
            Ready-to-use adapter
        """
        dtype = torch.float16 if compute_type == "float16" and device.startswith("cuda") else torch.float32
        logger.info(f"Loading Whisper weights from '{name_or_path}' on '{device}' ({dtype})")
        model = WhisperForConditionalGeneration.from_pretrained(
            name_or_path, torch_dtype=dtype
        )
        return cls(model, device=device)

    def _fit_window(self, window: torch.Tensor) -> torch.Tensor:
        """Zero-pad the frame axis to the encoder's input length.

        Raises:
            ValueError: If the window is longer than the encoder accepts
        """
        frames = window.shape[-1]
        if frames > self.input_frames:
            raise ValueError(
                f"window has {frames} frames, encoder accepts at most {self.input_frames}"
            )
        if frames < self.input_frames:
            window = F.pad(window, (0, self.input_frames - frames))
        return window

    @torch.inference_mode()
    def encode(self, window: torch.Tensor) -> torch.Tensor:
        window = self._fit_window(window).to(self.device, dtype=self._dtype)
        return self.model.model.encoder(window).last_hidden_state

    @torch.inference_mode()
    def decode_step(
        self,
        tokens: torch.Tensor,
        audio_features: torch.Tensor,
        is_first_step: bool,
    ) -> torch.Tensor:
        # The full sequence is re-run every step, so no cache is kept
        hidden = self.model.model.decoder(
            input_ids=tokens.to(self.device).unsqueeze(0),
            encoder_hidden_states=audio_features,
            use_cache=False,
        ).last_hidden_state
        return self.model.proj_out(hidden)[0].float()
