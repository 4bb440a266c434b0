"""Fixed intro/outro clips, synthesized once and cached on disk."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from loguru import logger

from ..errors import AssemblyError, MissingAssetError
from ..tts.speech import SpeechProviderError, SpeechSynthesizer


_RESPONSE_FORMATS = {".mp3": "mp3", ".wav": "wav", ".m4a": "aac", ".aac": "aac"}


@dataclass(frozen=True, slots=True)
class IntroOutroAssets:
    """Locations and source texts of the reusable intro/outro clips."""

    intro_path: Path
    outro_path: Path
    intro_text: str
    outro_text: str

    def require(self) -> tuple[Path, Path]:
        """Return `(intro, outro)` or raise when either file is absent."""

        missing = [path for path in (self.intro_path, self.outro_path) if not path.is_file()]
        if missing:
            listed = ", ".join(f"`{path}`" for path in missing)
            raise MissingAssetError(
                stage="validate",
                detail=f"Intro/outro asset missing: {listed}.",
                hint="Run `markcast assets generate` or merge without `--intro-outro`.",
            )
        return self.intro_path, self.outro_path

    def ensure(self, synthesizer: SpeechSynthesizer) -> list[Path]:
        """Synthesize whichever clip is missing and return the paths written."""

        written: list[Path] = []
        for path, text in ((self.intro_path, self.intro_text), (self.outro_path, self.outro_text)):
            if path.is_file():
                continue
            response_format = _RESPONSE_FORMATS.get(path.suffix.lower())
            if response_format is None:
                raise AssemblyError(
                    stage="assets",
                    detail=f"Unsupported asset extension `{path.suffix}` for `{path}`.",
                    hint="Use a `.mp3`, `.wav`, or `.m4a` asset path.",
                )
            try:
                audio = synthesizer.synthesize_speech(text=text, response_format=response_format)
            except SpeechProviderError as exc:
                raise AssemblyError(
                    stage="assets",
                    detail=f"Failed to synthesize `{path.name}`: {exc}",
                    hint="Check `OPENAI_API_KEY` and the configured TTS model/voice.",
                ) from exc
            _write_atomically(path, audio)
            logger.info("asset generated path={} bytes={}", path, len(audio))
            written.append(path)
        return written


def _write_atomically(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.partial")
    try:
        temp_path.write_bytes(data)
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
