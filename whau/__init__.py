"""Transcribe audio with Faster-Whisper and build AviUtl exo timelines from the transcript."""

__version__ = "0.1.0"

__all__ = ["__version__"]