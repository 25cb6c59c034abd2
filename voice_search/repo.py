"""Model asset retrieval from the HuggingFace Hub."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from huggingface_hub import snapshot_download
from tokenizers import Tokenizer

from .config import REPO_ID, REPO_REVISION
from .errors import ModelAssetError

logger = logging.getLogger(__name__)

ASSET_PATTERNS = [
    "config.json",
    "generation_config.json",
    "tokenizer.json",
    "*.safetensors",
]


@dataclass
class WhisperRepo:
    """Local paths of a downloaded Whisper checkpoint.

    Attributes:
        model_dir: Directory holding the weights and configuration
        config_filename: Path to config.json
        tokenizer_filename: Path to tokenizer.json
    """
    model_dir: Path
    config_filename: Path
    tokenizer_filename: Path

    @classmethod
    def from_directory(cls, model_dir: str) -> "WhisperRepo":
        """Use assets already present in ``model_dir``.

        Raises:
            ModelAssetError: If config.json or tokenizer.json is missing
        """
        root = Path(model_dir)
        repo = cls(
            model_dir=root,
            config_filename=root / "config.json",
            tokenizer_filename=root / "tokenizer.json",
        )
        for path in (repo.config_filename, repo.tokenizer_filename):
            if not path.exists():
                raise ModelAssetError(f"Model asset not found: {path}")
        return repo

    @classmethod
    def download(
        cls,
        repo_id: str = REPO_ID,
        revision: str = REPO_REVISION,
        cache_dir: Optional[str] = None,
    ) -> "WhisperRepo":
        """Download (or reuse cached) checkpoint assets from the Hub."""
        logger.info(f"Fetching '{repo_id}' at revision '{revision}'")
        local_dir = snapshot_download(
            repo_id=repo_id,
            revision=revision,
            cache_dir=cache_dir,
            allow_patterns=ASSET_PATTERNS,
        )
        return cls.from_directory(local_dir)

    def config(self) -> Dict[str, Any]:
        with open(self.config_filename, "r", encoding="utf-8") as f:
            return json.load(f)

    def tokenizer(self) -> Tokenizer:
        return Tokenizer.from_file(str(self.tokenizer_filename))
