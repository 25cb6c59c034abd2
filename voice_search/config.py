"""Default settings for the voice-search transcription engine.

The audio and feature constants describe the input the Whisper family of
models was trained on. The decoding constants are the quality gates and the
temperature ladder used by the fallback controller. Every value here is only
a default: the transcriber accepts overrides as keyword arguments.
"""

from typing import Tuple

# -----------------------
# Audio / feature layout
# -----------------------

SAMPLE_RATE = 16000
N_FFT = 400
HOP_LENGTH = 160

# Seconds of audio decoded as one window
CHUNK_LENGTH = 30
N_SAMPLES = CHUNK_LENGTH * SAMPLE_RATE
N_FRAMES = N_SAMPLES // HOP_LENGTH

# -------------------
# Decoding settings
# -------------------

TEMPERATURES: Tuple[float, ...] = (0.0, 0.2, 0.4, 0.6, 0.8, 1.0)

# zlib compression ratio above which the text is considered repetitive
COMPRESSION_RATIO_THRESHOLD = 2.4
LOGPROB_THRESHOLD = -1.0
NO_SPEECH_THRESHOLD = 0.6

# Seed for the per-session generator used when sampling at temperature > 0
SEED = 299792458

# -------------------
# Control tokens
# -------------------

SOT_TOKEN = "<|startoftranscript|>"
TRANSCRIBE_TOKEN = "<|transcribe|>"
EOT_TOKEN = "<|endoftext|>"
NO_TIMESTAMPS_TOKEN = "<|notimestamps|>"

# Older checkpoints call it nocaptions, newer ones nospeech
NO_SPEECH_TOKENS: Tuple[str, ...] = ("<|nocaptions|>", "<|nospeech|>")

# ---------------------------------
# HuggingFace repository settings
# ---------------------------------

REPO_ID = "openai/whisper-large-v3-turbo"
REPO_REVISION = "main"
