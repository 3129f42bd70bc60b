"""RETRO BEATS — MIDI track-reveal player and guess-the-game toy."""

__version__ = "0.1.0"
