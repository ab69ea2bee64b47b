"""Global constants for the theory engine."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Scale intervals from root (semitones)
SCALE_INTERVALS = {
    "major": [0, 2, 4, 5, 7, 9, 11],
    "minor": [0, 2, 3, 5, 7, 8, 10],  # Natural minor
    "dorian": [0, 2, 3, 5, 7, 9, 10],
    "mixolydian": [0, 2, 4, 5, 7, 9, 10],
    "lydian": [0, 2, 4, 6, 7, 9, 11],
    "phrygian": [0, 1, 3, 5, 7, 8, 10],
    "locrian": [0, 1, 3, 5, 6, 8, 10],
    "ionian": [0, 2, 4, 5, 7, 9, 11],
    "harmonic minor": [0, 2, 3, 5, 7, 8, 11],
    "melodic minor": [0, 2, 3, 5, 7, 9, 11],
    "altered": [0, 1, 3, 4, 6, 8, 10],
    "half-whole diminished": [0, 1, 3, 4, 6, 7, 9, 10],
    "whole-half diminished": [0, 2, 3, 5, 6, 8, 9, 11],
    "major pentatonic": [0, 2, 4, 7, 9],
    "minor pentatonic": [0, 3, 5, 7, 10],
}

# Scale types considered when ranking key candidates (order breaks ties)
DETECTABLE_SCALES = ["major", "minor", "dorian", "mixolydian", "lydian", "phrygian"]

# Musical defaults
DEFAULT_KEY = "C"
DEFAULT_SCALE = "major"
DEFAULT_KEY_CONFIDENCE = 0.5
BEATS_PER_BAR = 4

# Placeholder for an empty / unknown bar
NO_CHORD = "N.C."
