"""Progression tracking - Debounced commit of chord guesses.

A per-snapshot chord guess is noisy. A guess only enters the progression
after it has been seen on consecutive snapshots (a majority-vote low-pass
filter implemented as pending value + vote count), and only when something
new arrived in the note stream since the last vote.
"""

from typing import Optional, Sequence, Tuple
from dataclasses import dataclass

from ..core import ChordTimelineEvent
from ..core.config import ProgressionConfig
from .chords import ChordGuess


@dataclass
class ProgressionState:
    """The slice of memory owned by the accumulator."""
    progression: Tuple[str, ...] = ()
    chord_timeline: Tuple[ChordTimelineEvent, ...] = ()
    detected_bars: Tuple[str, ...] = ()
    # All bars ever committed; detected_bars keeps only the most recent
    detected_bar_count: int = 0
    pending_chord: Optional[str] = None
    pending_chord_votes: int = 0
    last_processed_tail: str = ""
    last_processed_note_count: int = 0


def tail_fingerprint(notes: Sequence[str], tail_length: int = 10) -> str:
    """Fingerprint of the note stream tail (count + last notes)."""
    tail = list(notes)[-tail_length:]
    return f"{len(notes)}:{'-'.join(tail)}"


class ProgressionAccumulator:
    """Vote chord guesses into an append-only, capped progression."""

    def __init__(self, config: Optional[ProgressionConfig] = None):
        self.config = config or ProgressionConfig()

    def update(
        self,
        state: ProgressionState,
        guess: ChordGuess,
        notes: Sequence[str],
    ) -> ProgressionState:
        """
        Apply one chord guess to the progression state.

        Args:
            state: Previous accumulator state
            guess: Chord guess for the current snapshot
            notes: Raw note stream the guess was made from

        Returns:
            New ProgressionState (the input is left untouched)
        """
        cfg = self.config
        fingerprint = tail_fingerprint(notes, cfg.tail_length)

        # Nothing new in the stream: a re-sent snapshot must not add votes
        if not notes or fingerprint == state.last_processed_tail:
            return state

        if guess.form_symbol == state.pending_chord:
            pending, votes = state.pending_chord, state.pending_chord_votes + 1
        else:
            pending, votes = guess.form_symbol, 1

        progression = state.progression
        timeline = state.chord_timeline
        bars = state.detected_bars
        bar_count = max(state.detected_bar_count, len(bars))

        if votes >= cfg.vote_threshold and guess.confidence >= cfg.min_confidence:
            if not progression or progression[-1] != pending:
                progression = (progression + (pending,))[-cfg.max_length:]
                event = ChordTimelineEvent(
                    index=(timeline[-1].index + 1) if timeline else 0,
                    chord=pending,
                    confidence=round(guess.confidence, 4),
                )
                timeline = (timeline + (event,))[-cfg.timeline_length:]
                bars = (bars + (pending,))[-cfg.max_detected_bars:]
                bar_count += 1
            # Sustain must not re-trigger immediately
            votes = 1

        return ProgressionState(
            progression=progression,
            chord_timeline=timeline,
            detected_bars=bars,
            detected_bar_count=bar_count,
            pending_chord=pending,
            pending_chord_votes=votes,
            last_processed_tail=fingerprint,
            last_processed_note_count=len(notes),
        )
