"""OpenAI speech client used to synthesize the fixed intro/outro clips.

Responsibilities:
- Send one minimal `/audio/speech` request per clip.
- Raise provider errors with redacted, length-capped messages.
"""

from __future__ import annotations

import json
import re
import socket
from typing import Any, Protocol

import requests


class SpeechSynthesizer(Protocol):
    """Anything that turns text into encoded audio bytes."""

    def synthesize_speech(self, *, text: str, response_format: str) -> bytes:
        """Return encoded audio for `text`."""


class SpeechProviderError(RuntimeError):
    """Raised when the speech provider request fails or returns nothing."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code


class OpenAISpeechClient:
    """Minimal requests-based client for OpenAI text-to-speech."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gpt-4o-mini-tts",
        voice: str = "alloy",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.model = model
        self.voice = voice
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def synthesize_speech(self, *, text: str, response_format: str = "mp3") -> bytes:
        """Return synthesized audio bytes from `/audio/speech`."""

        if not self.api_key:
            raise SpeechProviderError(
                "Missing OpenAI API key. Set `OPENAI_API_KEY` or `api_key` in the config.",
                failure_kind="invalid_api_key",
            )

        payload: dict[str, Any] = {
            "model": self.model,
            "voice": self.voice,
            "input": text,
            "response_format": response_format,
        }
        try:
            response = requests.post(
                f"{self.base_url}/audio/speech",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error(exc) from exc
        except requests.RequestException as exc:
            if isinstance(exc, requests.Timeout) or isinstance(exc.__cause__, socket.timeout):
                raise SpeechProviderError(
                    "OpenAI speech request timed out.", failure_kind="timeout"
                ) from exc
            raise SpeechProviderError(
                f"OpenAI speech transport error: {self._short_message(str(exc))}",
                failure_kind="transport",
            ) from exc

        audio = bytes(response.content)
        if not audio:
            raise SpeechProviderError("OpenAI speech response is empty.")
        return audio

    @classmethod
    def _http_error(cls, exc: requests.HTTPError) -> SpeechProviderError:
        response = exc.response
        status_code = response.status_code if response is not None else 0
        body = ""
        if response is not None:
            body = bytes(response.content).decode("utf-8", errors="replace").strip()

        message = body
        try:
            payload = json.loads(body) if body else None
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            provider_message = payload["error"].get("message")
            if isinstance(provider_message, str) and provider_message.strip():
                message = provider_message.strip()

        failure_kind = "invalid_api_key" if status_code == 401 else "http_error"
        detail = f"OpenAI speech request failed (HTTP {status_code})"
        if message:
            detail = f"{detail}: {cls._short_message(cls._redact(message))}"
        return SpeechProviderError(detail, failure_kind=failure_kind, status_code=status_code)

    @staticmethod
    def _redact(text: str) -> str:
        redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        return re.sub(r"(?i)bearer\s+[A-Za-z0-9._-]{12,}", "Bearer [redacted-token]", redacted)

    @classmethod
    def _short_message(cls, text: str) -> str:
        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."
