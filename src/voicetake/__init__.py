"""VoiceTake: record a voice against a script of prompts."""

__version__ = "0.3.0"
