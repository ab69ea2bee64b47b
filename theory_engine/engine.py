"""Theory engine - One inference call from note snapshot to next memory.

The engine is a pure transition function:

    (request, previous memory) -> (context, recommendations, next memory)

It performs no I/O and never mutates the memory it is given, so a host may
run it on a worker, discard a result, or persist the returned memory as is.
Overlapping calls are the host's concern: the last result simply wins.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from .core import TheoryConfig, TheoryMemory, Recommendation, normalize_note_history
from .inference.key import KeyCandidateRanker, KeySettings, ScaleStabilizer, StableContext
from .inference.chords import ChordInferencer
from .inference.progression import ProgressionAccumulator, ProgressionState
from .inference.structure import FormPatternMiner
from .inference.recommendations import RecommendationBuilder, RecommendationCache
from .form.compression import FormCompressor, expand_sections, merge_expanded_bars


@dataclass
class TheoryRequest:
    """One snapshot of the incoming note stream.

    Attributes:
        notes: Note names, most recent last (octaves are ignored)
        bpm: Tempo estimate, or None when unknown
        now_ms: Current time in milliseconds
        key_settings: Host key controls (manual override, auto switching)
    """
    notes: List[str] = field(default_factory=list)
    bpm: Optional[float] = None
    now_ms: float = 0.0
    key_settings: KeySettings = field(default_factory=KeySettings)


@dataclass
class TheoryContext:
    """What is being played right now."""
    note: Optional[str] = None
    key_guess: str = "C"
    scale_guess: str = "major"
    chord_guess: str = "C"
    form_chord: str = "C"
    chord_confidence: float = 0.0
    bpm: Optional[float] = None
    key_confidence: float = 0.5
    form_section_label: Optional[str] = None
    progression_preview: str = ""
    next_chord: Optional[str] = None
    current_bar_index: Optional[int] = None
    current_section_id: Optional[str] = None

    @property
    def key_label(self) -> str:
        return f"{self.key_guess} {self.scale_guess}"


@dataclass
class TheoryResult:
    """Output of one inference call."""
    context: TheoryContext
    recommendations: List[Recommendation]
    memory: TheoryMemory


class TheoryEngine:
    """Run the full inference pipeline on a note snapshot.

    Pipeline: notes -> key candidates -> stable key -> chord -> progression
    -> form patterns + bar compression -> recommendations
    """

    PREVIEW_LENGTH = 8

    def __init__(self, config: Optional[TheoryConfig] = None):
        """
        Initialize TheoryEngine.

        Args:
            config: Tuning parameters for every stage (defaults if omitted)
        """
        self.config = config or TheoryConfig()
        self.ranker = KeyCandidateRanker(self.config.key_ranking)
        self.stabilizer = ScaleStabilizer(self.config.stability)
        self.chord_inferencer = ChordInferencer(self.config.chords)
        self.accumulator = ProgressionAccumulator(self.config.progression)
        self.miner = FormPatternMiner(self.config.form_patterns)
        self.compressor = FormCompressor(self.config.compression)
        self.recommender = RecommendationBuilder(self.config.recommendations, self.chord_inferencer)

    def analyze(self, request: TheoryRequest, previous: Optional[TheoryMemory] = None) -> TheoryResult:
        """
        Interpret a note snapshot against the previous memory.

        Args:
            request: Note stream snapshot, tempo, time and key controls
            previous: Memory returned by the previous call (defaults if None)

        Returns:
            TheoryResult with context, recommendations and the next memory
        """
        memory = previous or TheoryMemory()
        notes = list(request.notes)
        pitch_classes = normalize_note_history(notes)

        # Key
        candidates = self.ranker.rank(pitch_classes)
        stable = self.stabilizer.decide(
            candidates,
            StableContext(
                key=memory.stable_key,
                scale=memory.stable_scale,
                confidence=memory.key_confidence,
                last_change_at=memory.last_key_change_at,
            ),
            request.now_ms,
            request.bpm,
            request.key_settings,
        )

        # Chord + progression
        guess = self.chord_inferencer.infer(pitch_classes, stable.key, stable.scale)
        progression_state = self.accumulator.update(
            ProgressionState(
                progression=memory.progression,
                chord_timeline=memory.chord_timeline,
                detected_bars=memory.detected_bars,
                detected_bar_count=memory.detected_bar_count,
                pending_chord=memory.pending_chord,
                pending_chord_votes=memory.pending_chord_votes,
                last_processed_tail=memory.last_processed_tail,
                last_processed_note_count=memory.last_processed_note_count,
            ),
            guess,
            notes,
        )
        progression = progression_state.progression

        # Form
        patterns = self.miner.mine(progression)
        form_label = self.miner.current_label(progression, patterns)
        prediction = self.miner.predict_next(progression)

        detected = progression_state.detected_bars
        expanded_bars = tuple(merge_expanded_bars(
            memory.expanded_bars,
            detected,
            offset=max(0, progression_state.detected_bar_count - len(detected)),
        ))
        # Keep hand-edited labels and unlinked repeats until new bars arrive
        sections = memory.compressed_sections
        form = expand_sections(sections)
        if tuple(form.expanded_bars) != expanded_bars:
            sections = tuple(self.compressor.compress(expanded_bars))
            form = expand_sections(sections)
        current_bar = len(form.expanded_bars) - 1 if form.expanded_bars else None
        mapping = form.section_at(current_bar) if current_bar is not None else None

        # Recommendations
        cache = self.recommender.recommend(
            RecommendationCache(
                signature=memory.recommendation_signature,
                timestamp=memory.last_recommendation_at,
                items=memory.cached_recommendations,
            ),
            now_ms=request.now_ms,
            bpm=request.bpm,
            stable=stable,
            chord=guess,
            progression=progression,
            last_note=notes[-1] if notes else None,
            patterns=patterns,
            prediction=prediction,
            form_label=form_label,
        )

        next_memory = replace(
            memory,
            stable_key=stable.key,
            stable_scale=stable.scale,
            key_confidence=stable.confidence,
            last_key_change_at=stable.last_change_at,
            progression=progression,
            chord_timeline=progression_state.chord_timeline,
            form_patterns=tuple(patterns),
            current_form_label=form_label,
            detected_bars=progression_state.detected_bars,
            detected_bar_count=progression_state.detected_bar_count,
            expanded_bars=expanded_bars,
            compressed_sections=sections,
            last_processed_note_count=progression_state.last_processed_note_count,
            last_processed_tail=progression_state.last_processed_tail,
            pending_chord=progression_state.pending_chord,
            pending_chord_votes=progression_state.pending_chord_votes,
            last_recommendation_at=cache.timestamp,
            recommendation_signature=cache.signature,
            cached_recommendations=cache.items,
        )

        context = TheoryContext(
            note=notes[-1] if notes else None,
            key_guess=stable.key,
            scale_guess=stable.scale,
            chord_guess=guess.symbol,
            form_chord=guess.form_symbol,
            chord_confidence=guess.confidence,
            bpm=request.bpm,
            key_confidence=stable.confidence,
            form_section_label=form_label,
            progression_preview=" - ".join(progression[-self.PREVIEW_LENGTH:]),
            next_chord=prediction.chord if prediction else None,
            current_bar_index=current_bar,
            current_section_id=mapping.section_id if mapping else None,
        )

        return TheoryResult(context=context, recommendations=list(cache.items), memory=next_memory)


def analyze_theory_state(
    notes: Sequence[str],
    bpm: Optional[float] = None,
    previous: Optional[TheoryMemory] = None,
    now_ms: float = 0.0,
    key_settings: Optional[KeySettings] = None,
    config: Optional[TheoryConfig] = None,
) -> TheoryResult:
    """Run one inference call with a default-configured engine."""
    request = TheoryRequest(
        notes=list(notes),
        bpm=bpm,
        now_ms=now_ms,
        key_settings=key_settings or KeySettings(),
    )
    return TheoryEngine(config).analyze(request, previous)
