"""Tests for WhisperRepo."""

import json

import pytest
from tokenizers import Tokenizer
from tokenizers.models import WordLevel

import voice_search.repo as repo_module
from conftest import SOT, VOCAB
from voice_search import ModelAssetError, WhisperRepo


@pytest.fixture
def model_dir(tmp_path):
    vocab = {tok: i for i, tok in enumerate(VOCAB + ["[UNK]"])}
    Tokenizer(WordLevel(vocab=vocab, unk_token="[UNK]")).save(str(tmp_path / "tokenizer.json"))
    (tmp_path / "config.json").write_text(
        json.dumps({"vocab_size": len(VOCAB), "max_target_positions": 448}),
        encoding="utf-8",
    )
    return tmp_path


class TestWhisperRepo:
    """Test WhisperRepo."""

    def test_from_directory(self, model_dir):
        """Test that asset paths are resolved inside the directory."""
        repo = WhisperRepo.from_directory(str(model_dir))

        assert repo.model_dir == model_dir
        assert repo.config_filename == model_dir / "config.json"
        assert repo.tokenizer_filename == model_dir / "tokenizer.json"

    @pytest.mark.parametrize("missing", ["config.json", "tokenizer.json"])
    def test_missing_asset(self, model_dir, missing):
        """Test that a missing asset raises ModelAssetError."""
        (model_dir / missing).unlink()

        with pytest.raises(ModelAssetError, match=f"Model asset not found: .*{missing}"):
            WhisperRepo.from_directory(str(model_dir))

    def test_config(self, model_dir):
        repo = WhisperRepo.from_directory(str(model_dir))

        assert repo.config() == {"vocab_size": len(VOCAB), "max_target_positions": 448}

    def test_tokenizer(self, model_dir):
        """Test that tokenizer.json loads as a tokenizers.Tokenizer."""
        tokenizer = WhisperRepo.from_directory(str(model_dir)).tokenizer()

        assert tokenizer.token_to_id("<|startoftranscript|>") == SOT
        assert tokenizer.token_to_id("<|nocaptions|>") is None

    def test_download(self, model_dir, monkeypatch):
        """Test that download restricts the snapshot to the needed assets."""
        calls = {}

        def fake_snapshot_download(**kwargs):
            calls.update(kwargs)
            return str(model_dir)

        monkeypatch.setattr(repo_module, "snapshot_download", fake_snapshot_download)

        repo = WhisperRepo.download("openai/whisper-tiny", revision="abc", cache_dir="/cache")

        assert repo.model_dir == model_dir
        assert calls == {
            "repo_id": "openai/whisper-tiny",
            "revision": "abc",
            "cache_dir": "/cache",
            "allow_patterns": [
                "config.json",
                "generation_config.json",
                "tokenizer.json",
                "*.safetensors",
            ],
        }
