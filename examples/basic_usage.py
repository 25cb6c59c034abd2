"""Basic usage example for voice-search.

This example demonstrates:
1. Transcribing a precomputed log-mel feature tensor
2. Reading segment timing and the decoding scores
3. Tuning the fallback ladder and silence gates
"""

import logging

import numpy as np
import torch

from voice_search import WhisperTranscriber, transcript_text

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# =============================================================================
# Example 1: Basic Transcription
# =============================================================================
print("=" * 70)
print("Example 1: Basic Transcription")
print("=" * 70)

# Features must be log-mel frames of shape (1, n_mels, n_frames) computed at
# 16 kHz with a hop of 160 samples (100 frames per second).
features_path = "features.npy"  # Your feature file here

transcriber = WhisperTranscriber.from_pretrained(
    device="cuda" if torch.cuda.is_available() else "cpu",
    language="en",
)

try:
    features = np.load(features_path)
    segments, info = transcriber.transcribe(features)

    print(f"\nAudio duration: {info.duration:.2f}s")
    print(f"Processing time: {info.processing_time:.2f}s")
    print(f"Windows decoded: {info.num_windows}, kept: {info.num_segments}")
    print(f"Device: {info.device}")
    print()

    print("Transcription:")
    print("-" * 70)
    for segment in segments:
        result = segment.result
        print(f"[{segment.start_time:6.2f}s - {segment.end_time:6.2f}s] {segment.text}")
        print(
            f"    temperature={result.temperature} "
            f"avg_logprob={result.average_log_probability:.3f} "
            f"no_speech_prob={result.no_speech_probability:.3f}"
        )

    print("\nFull transcript:")
    print(transcript_text(segments))

except FileNotFoundError:
    print(f"Feature file '{features_path}' not found. Please provide a valid .npy file.")

# =============================================================================
# Example 2: Tuning Fallback and Silence Detection
# =============================================================================
print("\n" + "=" * 70)
print("Example 2: Tuning Fallback and Silence Detection")
print("=" * 70)

# A shorter ladder means fewer retries on hard windows; a stricter
# no_speech_threshold keeps more low-confidence windows.
strict = WhisperTranscriber(
    transcriber.model,
    transcriber.tokenizer,
    language="en",
    temperatures=[0.0, 0.5, 1.0],
    logprob_threshold=-0.8,
    no_speech_threshold=0.8,
    on_window_error="raise",
)
print(f"Ladder: {strict.scheduler.controller.temperatures}")
print(f"Window size: {strict.scheduler.max_window_frames} frames")
