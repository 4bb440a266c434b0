"""Speech synthesis used only for the fixed intro/outro assets."""

from .speech import OpenAISpeechClient, SpeechProviderError, SpeechSynthesizer

__all__ = ["OpenAISpeechClient", "SpeechProviderError", "SpeechSynthesizer"]
