# File: reelforge/features/transcription/data/openai_adapter.py
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from reelforge.core.config.settings import settings
from reelforge.core.exceptions import TranscriptionError
from ..domain.interfaces import ITranscriber
from ..domain.models import AudioProcessingResult, Segment, Word

logger = logging.getLogger(__name__)


def _parse_words(raw_words: Optional[List[Dict[str, Any]]]) -> List[Word]:
    words = []
    for w in raw_words or []:
        words.append(Word(
            text=w.get("word", ""),
            start=float(w.get("start", 0.0)),
            end=float(w.get("end", 0.0))
        ))
    return words


def parse_verbose_response(payload: Dict[str, Any]) -> AudioProcessingResult:
    """
    Maps a verbose_json transcription response onto the domain result.
    Unknown fields are ignored; missing ones take neutral defaults.
    """
    segments = []
    for seg in payload.get("segments") or []:
        segments.append(Segment(
            id=int(seg.get("id", len(segments))),
            start=float(seg.get("start", 0.0)),
            end=float(seg.get("end", 0.0)),
            text=seg.get("text", ""),
            words=_parse_words(seg.get("words")),
            seek=int(seg.get("seek", 0)),
            tokens=list(seg.get("tokens") or []),
            temperature=float(seg.get("temperature", 0.0)),
            avg_logprob=float(seg.get("avg_logprob", 0.0)),
            compression_ratio=float(seg.get("compression_ratio", 0.0)),
            no_speech_prob=float(seg.get("no_speech_prob", 0.0)),
        ))

    return AudioProcessingResult(
        transcript=payload.get("text", ""),
        duration_seconds=float(payload.get("duration") or 0.0),
        language=payload.get("language", "") or "",
        words=_parse_words(payload.get("words")),
        segments=segments,
    )


class OpenAIWhisperAdapter(ITranscriber):
    """
    Hosted Whisper transcription over HTTP.
    One request per file; the caller keeps files under the API size limit.
    """

    def __init__(self,
                 api_key: Optional[str] = None,
                 base_url: Optional[str] = None,
                 model: Optional[str] = None,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.WHISPER_MODEL_NAME
        self.timeout = timeout or settings.TRANSCRIPTION_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def transcribe(self, audio_path: Path) -> AudioProcessingResult:
        if not self.api_key:
            raise TranscriptionError("OpenAI API key not provided")

        audio_path = Path(audio_path)
        logger.info(f"Requesting transcription ({self.model}) for {audio_path.name}...")

        data = {
            "model": self.model,
            "response_format": "verbose_json",
            "timestamp_granularities[]": "word",
        }

        try:
            with open(audio_path, "rb") as f:
                response = self.session.post(
                    f"{self.base_url}/audio/transcriptions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data=data,
                    files={"file": (audio_path.name, f)},
                    timeout=self.timeout,
                )
        except requests.Timeout as e:
            raise TranscriptionError(f"Transcription request timed out after {self.timeout:.0f}s") from e
        except requests.RequestException as e:
            raise TranscriptionError(f"failed to make request: {e}") from e

        if response.status_code != 200:
            raise TranscriptionError(f"OpenAI API error ({response.status_code}): {response.text}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError(f"failed to parse response: {e}") from e

        result = parse_verbose_response(payload)
        logger.debug(f"Transcribed {audio_path.name}: {len(result.words)} words, {result.duration_seconds:.1f}s")
        return result

    def validate_api_key(self) -> bool:
        """
        Cheap authenticated call to check the key.
        Returns False when the API rejects it.
        """
        if not self.api_key:
            return False

        try:
            response = self.session.get(
                f"{self.base_url}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=settings.SHORT_API_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise TranscriptionError(f"API key validation failed: {e}") from e

        return response.status_code == 200
