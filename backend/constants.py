"""
BEHAVIOUR-AS-CONSTANTS
----------------------
Single source of truth for the behavioural values of the streaming pipeline.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (URLs, directories, defaults a deployment may
  override) live in config.py instead.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio container (uncompressed PCM, RIFF/WAVE)
# =============================================================================

WAV_HEADER_BYTES: Final[int] = 44
WAV_FORMAT_PCM: Final[int] = 1
WAV_CHANNELS: Final[int] = 1
WAV_BITS_PER_SAMPLE: Final[int] = 16
WAV_SAMPLE_WIDTH_BYTES: Final[int] = WAV_BITS_PER_SAMPLE // 8
WAV_FMT_CHUNK_BYTES: Final[int] = 16

# Full-scale multiplier for float -> int16 conversion
PCM16_FULL_SCALE: Final[int] = 32767

# =============================================================================
# Batch pacing
# =============================================================================

# Silence inserted between consecutive phrases of a batch stream
INTER_PHRASE_SILENCE_S: Final[float] = 0.3

# Static segmenter cap used by POST /stream (0 = one phrase per sentence)
STREAM_SEGMENT_MAX_CHARS: Final[int] = 0

# Static segmenter cap when callers do not pass one
SEGMENT_DEFAULT_MAX_CHARS: Final[int] = 300

# =============================================================================
# Incremental phrase boundary cascade
# =============================================================================

PHRASE_MIN_CHARS: Final[int] = 15
PHRASE_MAX_CHARS: Final[int] = 80

# Rule 2: ';' / ':' eligible once the cut point reaches MIN * ratio
STRONG_PUNCT_CUT_RATIO: Final[float] = 0.7

# Rule 3: word boundary eligible once the cut point reaches MIN * ratio
WORD_BOUNDARY_CUT_RATIO: Final[float] = 0.8

# Rule 4: comma eligible once the buffer reaches MIN * trigger ratio and the
# cut point reaches MIN * cut ratio
COMMA_TRIGGER_RATIO: Final[float] = 2.0
COMMA_CUT_RATIO: Final[float] = 1.3

# Rule 5: past MAX * ratio the cut lands exactly on MAX
OVERFLOW_RATIO: Final[float] = 1.3

SENTENCE_END_CHARS: Final[Tuple[str, ...]] = (".", "!", "?")
STRONG_PUNCT_CHARS: Final[Tuple[str, ...]] = (";", ":")

# =============================================================================
# Abbreviations that never end a sentence (fixed inclusion set)
# =============================================================================

TITLE_ABBREVIATIONS: Final[Tuple[str, ...]] = (
    "Mr.", "Mrs.", "Ms.", "Dr.", "Prof.", "Sr.", "Jr.", "St.",
)

LATIN_ABBREVIATIONS: Final[Tuple[str, ...]] = (
    "etc.", "e.g.", "i.e.", "vs.", "Ph.D.",
)

CORPORATE_ABBREVIATIONS: Final[Tuple[str, ...]] = (
    "Inc.", "Ltd.", "Co.", "Corp.", "LLC.",
)

ADDRESS_ABBREVIATIONS: Final[Tuple[str, ...]] = (
    "Ave.", "Blvd.", "Rd.",
)

# =============================================================================
# Conversations
# =============================================================================

CONVERSATION_ID_PREFIX: Final[str] = "conv_"
STREAM_ID_PREFIX: Final[str] = "strm_"

OLLAMA_UNAVAILABLE_MESSAGE: Final[str] = (
    "Ollama server is not running. Please start Ollama with: ollama serve"
)

# =============================================================================
# Helper Functions
# =============================================================================

def samples_for_duration(duration_s: float, sample_rate: int) -> int:
    """
    Number of whole samples covering `duration_s` at `sample_rate` (floor).

    Non-positive durations return 0.
    """
    if duration_s <= 0:
        return 0
    return int(sample_rate * duration_s)
