"""Audio file input/output."""

from soniphorm.io.audio_file import load_audio, save_audio

__all__ = ["load_audio", "save_audio"]
