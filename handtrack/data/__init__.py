"""Frame sources."""

from .video_utils import VideoProcessor, VideoInfo

__all__ = [
    "VideoProcessor",
    "VideoInfo",
]
