import logging
import tempfile
from pathlib import Path
from typing import Optional

from reelforge.core.config.settings import settings
from reelforge.core.exceptions import TranscriptionError
from reelforge.features.media_tool.domain.interfaces import IMediaTool
from reelforge.features.media_tool.service.api import get_media_tool
from ..data.openai_adapter import OpenAIWhisperAdapter
from ..domain.interfaces import ITranscriber
from ..domain.models import AudioProcessingResult
from .executor import TranscriptionExecutor
from .extractor import ChunkExtractor
from .merge import MergeEngine
from .planner import ChunkPlanner

logger = logging.getLogger(__name__)


class TranscriptionService:
    """
    Facade for the Transcription Feature.
    Orchestrates planning, chunk extraction, parallel transcription and merging.
    """

    def __init__(self,
                 transcriber: Optional[ITranscriber] = None,
                 media_tool: Optional[IMediaTool] = None,
                 planner: Optional[ChunkPlanner] = None,
                 temp_root: Optional[Path] = None):
        self.transcriber = transcriber or OpenAIWhisperAdapter()
        self.media_tool = media_tool or get_media_tool()
        self.planner = planner or ChunkPlanner()
        self.temp_root = Path(temp_root) if temp_root is not None else settings.TEMP_DIR
        settings.ensure_dirs()

    def process_audio(self, audio_path: Path) -> AudioProcessingResult:
        """
        Transcribes one audio file, chunking it when it is too large for a single call.
        No partial transcript is ever returned: any failed chunk fails the whole call.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise FileNotFoundError(f"audio file does not exist: {audio_path}")

        # 1. Plan
        plan = self.planner.plan(audio_path)
        logger.info(f"File: {audio_path.name}, Size: {plan.file_size_bytes} bytes, Needs chunking: {plan.needs_chunking}")

        if not plan.needs_chunking:
            return self.transcriber.transcribe(audio_path)

        # 2. Extract -> 3. Transcribe -> 4. Merge
        extractor = ChunkExtractor(self.media_tool, temp_root=self.temp_root, size_limit=self.planner.max_single_call_size)
        with extractor.extract(audio_path, plan) as chunks:
            chunk_results = TranscriptionExecutor(self.transcriber).run(chunks, plan)

        result = MergeEngine(plan.overlap_seconds).merge(chunk_results)
        logger.info(f"Successfully processed {len(chunk_results)} chunks, final transcript length: {len(result.transcript)} chars")
        return result

    def transcribe_video(self, video_path: Path) -> AudioProcessingResult:
        """
        Extracts the speech track of a video to a temporary MP3 and transcribes it.
        """
        video_path = Path(video_path)
        self.temp_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="speech_", dir=self.temp_root) as tmp_dir:
            audio_path = Path(tmp_dir) / f"{video_path.stem}.mp3"
            self.media_tool.extract_audio(video_path, audio_path)
            return self.process_audio(audio_path)


def process_audio(audio_path: str, api_key: str) -> AudioProcessingResult:
    """
    Standalone API for running transcription directly.
    Useful for testing or CLI tools without the Export system.
    """
    if not api_key:
        raise TranscriptionError("OpenAI API key not provided")

    service = TranscriptionService(transcriber=OpenAIWhisperAdapter(api_key=api_key))
    return service.process_audio(Path(audio_path))
