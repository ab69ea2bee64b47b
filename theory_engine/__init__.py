"""Theory Engine - Live music theory inference for a stream of notes.

Architecture Layers:
    1. core/      - Note parsing, constants, configuration and the memory value
    2. input/     - Recorded note streams (text, JSON, MIDI)
    3. inference/ - Musical understanding (key, chords, progression, form, recommendations)
    4. form/      - Bar compression, repeats and chart edits
    5. output/    - Export (text chart, iReal, MusicXML)
"""

__version__ = "0.1.0"

# Core types
from .core import TheoryConfig, TheoryMemory, Recommendation, CompressedSection

# Input layer
from .input import NoteStream, NoteStreamLoader

# Inference layer
from .inference import (
    KeyCandidateRanker,
    ScaleStabilizer,
    KeySettings,
    KeyMode,
    ChordInferencer,
    ProgressionAccumulator,
    FormPatternMiner,
    RecommendationBuilder,
)

# Form layer
from .form import FormCompressor, expand_sections, merge_expanded_bars, unlink_repeat_instance

# Engine
from .engine import TheoryEngine, TheoryRequest, TheoryContext, TheoryResult, analyze_theory_state

# Persistence
from .storage import save_memory, load_memory

# Output layer
from .output import ChartExporter, ChartInput, MusicXMLExporter

__all__ = [
    # Core
    "TheoryConfig",
    "TheoryMemory",
    "Recommendation",
    "CompressedSection",
    # Input
    "NoteStream",
    "NoteStreamLoader",
    # Inference
    "KeyCandidateRanker",
    "ScaleStabilizer",
    "KeySettings",
    "KeyMode",
    "ChordInferencer",
    "ProgressionAccumulator",
    "FormPatternMiner",
    "RecommendationBuilder",
    # Form
    "FormCompressor",
    "expand_sections",
    "merge_expanded_bars",
    "unlink_repeat_instance",
    # Engine
    "TheoryEngine",
    "TheoryRequest",
    "TheoryContext",
    "TheoryResult",
    "analyze_theory_state",
    # Persistence
    "save_memory",
    "load_memory",
    # Output
    "ChartExporter",
    "ChartInput",
    "MusicXMLExporter",
]
