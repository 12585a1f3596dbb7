from abc import ABC, abstractmethod
from pathlib import Path
from .models import AudioProcessingResult


class ITranscriber(ABC):
    """
    Contract for any speech-to-text engine.
    Allows us to swap the hosted Whisper API for a local model later.
    """

    @abstractmethod
    def transcribe(self, audio_path: Path) -> AudioProcessingResult:
        """
        Transcribes the audio file at the given path with word-level timestamps.

        Args:
            audio_path: Path to an audio file within the engine's size limit.

        Returns:
            Structured AudioProcessingResult in file-local time.

        Raises:
            TranscriptionError: If the engine rejects or fails the request.
        """
        pass
