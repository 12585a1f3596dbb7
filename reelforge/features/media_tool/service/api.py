import logging
import subprocess

from reelforge.core.config.settings import settings
from ..data.ffmpeg_adapter import FFmpegMediaTool
from ..domain.interfaces import IMediaTool

logger = logging.getLogger(__name__)


def get_media_tool() -> IMediaTool:
    """Default media tool for services that were not handed one."""
    return FFmpegMediaTool()


def check_ffmpeg_available() -> bool:
    """
    Runs `ffmpeg -version` to confirm the configured binary is usable.
    """
    try:
        subprocess.run(
            [settings.FFMPEG_BINARY, "-version"],
            check=True,
            capture_output=True,
            timeout=settings.SHORT_API_TIMEOUT_SECONDS
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"FFmpeg not available at '{settings.FFMPEG_BINARY}': {e}")
        return False
    return True
