"""
ROI Tracker

Owns the hand regions that persist between frames and decides, frame by
frame, whether the detector has to run again.

Scheduling:
    - detect when there are no tracked regions
    - detect every ``detection_every`` frames (0 disables this)
    - otherwise predict each region forward with its damped last
      per-frame displacement

A fresh detection replaces the region set and zeroes the displacement;
later observations (hand centroids measured on the predicted regions)
update it. A detection pass that finds nothing empties the set.

Usage:
    from handtrack.tracking.roi_tracker import RoiTracker

    tracker = RoiTracker(detection_every=5)
    if tracker.should_detect():
        tracker.reset_from_detections(detections)
    else:
        tracker.predict(frame_w, frame_h)
    tracker.advance()
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..geometry.boxes import BoundingBox, Detection
from ..utils.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class TrackedRegion:
    """A hand region carried across frames."""
    box: BoundingBox
    score: float = 0.0
    class_id: Optional[int] = None
    centroid: Tuple[float, float] = (0.0, 0.0)
    delta: Tuple[float, float] = (0.0, 0.0)
    observed: bool = False  # centroid comes from a measurement, not the box

    @classmethod
    def from_detection(cls, detection: Detection) -> 'TrackedRegion':
        return cls(
            box=detection.box,
            score=detection.score,
            class_id=detection.class_id,
            centroid=detection.box.center,
        )


def anchor_region(
    frame_width: int,
    frame_height: int,
    anchor_x: int = 50,
    anchor_size: int = 640
) -> Optional[BoundingBox]:
    """
    Fixed starting region used when no detector network is available.

    The box is ``anchor_size`` tall (at most the frame height), as wide as
    the frame aspect ratio implies, starts ``anchor_x`` pixels from the
    left edge and is centred vertically. A box running past the right
    edge is clipped to the frame, never shifted back left into it.
    """
    if frame_width <= 0 or frame_height <= 0:
        return None

    height = min(anchor_size, frame_height)
    width = int(round(frame_width / frame_height * height))
    x = max(0, min(anchor_x, frame_width - 1))
    y = (frame_height - height) // 2

    return BoundingBox(x, y, width, height).clip(frame_width, frame_height)


class RoiTracker:
    """
    Detection scheduling and motion prediction for hand regions.

    Attributes:
        regions: Currently tracked regions, best detection first
        frame_count: Number of frames processed so far
    """

    def __init__(
        self,
        detection_every: int = 5,
        damping: float = 0.9,
        max_step_fraction: float = 1.0 / 6.0
    ):
        """
        Args:
            detection_every: Re-detect cadence N in frames (0 = only when empty)
            damping: Factor applied to the last displacement when predicting
            max_step_fraction: Per-axis shift cap as a fraction of region height
        """
        if detection_every < 0:
            raise ValueError(f"detection_every must be >= 0, got {detection_every}")

        self.detection_every = detection_every
        self.damping = damping
        self.max_step_fraction = max_step_fraction

        self.regions: List[TrackedRegion] = []
        self.frame_count = 0

    def should_detect(self) -> bool:
        """Whether the detector must run on the current frame."""
        if not self.regions:
            return True
        if self.detection_every > 0 and self.frame_count % self.detection_every == 0:
            return True
        return False

    def reset_from_detections(self, detections: Sequence[Detection]) -> List[TrackedRegion]:
        """
        Replace the tracked set with fresh detections.

        Args:
            detections: Post-NMS detections, best first

        Returns:
            The new tracked regions (empty when nothing was detected)
        """
        if not detections and self.regions:
            logger.debug(f"Frame {self.frame_count}: detection lost, dropping {len(self.regions)} region(s)")

        self.regions = [TrackedRegion.from_detection(d) for d in detections]
        return self.regions

    def predict(self, frame_width: int, frame_height: int) -> List[TrackedRegion]:
        """
        Move every region by its damped, capped last displacement.

        Regions that end up with zero area after clipping are dropped.

        Returns:
            The updated tracked regions
        """
        predicted = []
        for region in self.regions:
            max_step = int(region.box.height * self.max_step_fraction)
            dx = int(round(self.damping * region.delta[0]))
            dy = int(round(self.damping * region.delta[1]))
            dx = max(-max_step, min(max_step, dx))
            dy = max(-max_step, min(max_step, dy))

            box = region.box.shifted(dx, dy).clip(frame_width, frame_height)
            if box is None:
                continue

            region.box = box
            predicted.append(region)

        self.regions = predicted
        return self.regions

    def observe(self, index: int, centroid: Optional[Tuple[float, float]]):
        """
        Record the measured hand centre for a region.

        The first measurement after a detection only sets the centroid;
        later ones also update the per-frame displacement.

        Args:
            index: Region index in ``regions``
            centroid: Measured (x, y), or None when nothing was measured
        """
        if centroid is None or not 0 <= index < len(self.regions):
            return

        region = self.regions[index]
        if region.observed:
            region.delta = (centroid[0] - region.centroid[0], centroid[1] - region.centroid[1])
        else:
            region.delta = (0.0, 0.0)
            region.observed = True
        region.centroid = (float(centroid[0]), float(centroid[1]))

    def advance(self):
        """Move on to the next frame."""
        self.frame_count += 1

    def reset(self):
        """Forget all regions and restart the frame counter."""
        self.regions = []
        self.frame_count = 0
