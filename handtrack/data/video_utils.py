"""
Video Processing Utilities

Frame source for the tracking entry points: video files or camera
devices read through ``cv2.VideoCapture``.

Usage:
    from handtrack.data.video_utils import VideoProcessor

    with VideoProcessor("path/to/video.mp4") as video:
        for idx, frame in video.frames(max_frames=100):
            hands = pipeline.infer(frame)
"""

import cv2
import numpy as np
from pathlib import Path
from typing import Tuple, Optional, Generator, Union
from dataclasses import dataclass


@dataclass
class VideoInfo:
    """Video metadata."""
    width: int
    height: int
    fps: float
    frame_count: int  # 0 or negative for live cameras
    duration: float

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.width, self.height)


class VideoProcessor:
    """
    Video processor for hand tracking.

    Wraps a file path or camera index and yields BGR frames in order.
    """

    def __init__(self, source: Optional[Union[str, Path, int]] = None):
        """
        Args:
            source: Video file path or camera index (optional, can be set later)
        """
        self.source = source
        self._cap = None
        self._info = None

    def open(self, source: Optional[Union[str, Path, int]] = None) -> 'VideoProcessor':
        """
        Open a video file or camera.

        Args:
            source: Video file path or camera index

        Returns:
            Self for method chaining
        """
        if source is not None:
            self.source = source
        if self.source is None:
            raise ValueError("No video source given")

        target = self.source if isinstance(self.source, int) else str(self.source)
        self._cap = cv2.VideoCapture(target)

        if not self._cap.isOpened():
            self._cap = None
            raise ValueError(f"Could not open video: {self.source}")

        fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self._info = VideoInfo(
            width=int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=fps,
            frame_count=frame_count,
            duration=frame_count / fps if fps > 0 and frame_count > 0 else 0.0
        )

        return self

    def close(self):
        """Release video capture resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self):
        if self.source is not None and self._cap is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def info(self) -> VideoInfo:
        """Get video information."""
        if self._info is None:
            if self.source is not None:
                self.open()
            else:
                raise ValueError("No video loaded")
        return self._info

    def read(self) -> Optional[np.ndarray]:
        """
        Read the next frame.

        Returns:
            Frame as BGR numpy array, or None at the end of the stream
        """
        if self._cap is None:
            self.open()

        ret, frame = self._cap.read()
        return frame if ret else None

    def frames(
        self,
        max_frames: Optional[int] = None
    ) -> Generator[Tuple[int, np.ndarray], None, None]:
        """
        Iterate over frames from the current position.

        Args:
            max_frames: Stop after this many frames, None for all

        Yields:
            (frame_index, frame) tuples
        """
        frame_idx = 0
        while max_frames is None or frame_idx < max_frames:
            frame = self.read()
            if frame is None:
                break

            yield frame_idx, frame
            frame_idx += 1
