"""Transcription: inference engines and the streaming session controller."""
