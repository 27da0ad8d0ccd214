"""
Visualization Utilities

Tools for drawing tracked hands on frames and plotting landmark
trajectories.

Usage:
    from handtrack.evaluation.visualization import ResultVisualizer

    visualizer = ResultVisualizer()
    annotated = visualizer.draw_hands(frame, hands)
"""

import cv2
import numpy as np
import matplotlib.pyplot as plt
from typing import Optional, Sequence
from pathlib import Path

from ..hand.landmarks import HandResult, HAND_CONNECTIONS, FINGERTIP_INDICES, LANDMARK_NAMES


class ResultVisualizer:
    """Visualization tools for tracking results."""

    FINGER_NAMES = ['Thumb', 'Index', 'Middle', 'Ring', 'Little']
    FINGER_COLORS = ['#e41a1c', '#377eb8', '#4daf4a', '#984ea3', '#ff7f00']

    ROI_COLOR = (0, 255, 0)
    BONE_COLOR = (200, 200, 200)
    JOINT_COLOR = (100, 100, 100)

    def __init__(self, output_dir: Optional[str] = None):
        """
        Args:
            output_dir: Directory to save figures
        """
        self.output_dir = Path(output_dir) if output_dir else None
        if self.output_dir:
            self.output_dir.mkdir(parents=True, exist_ok=True)

    def _finger_bgr(self, finger_idx: int):
        rgb = bytes.fromhex(self.FINGER_COLORS[finger_idx][1:])
        return (rgb[2], rgb[1], rgb[0])

    def draw_hands(
        self,
        frame: np.ndarray,
        hands: Sequence[HandResult],
        draw_roi: bool = True,
        connections: bool = True
    ) -> np.ndarray:
        """
        Draw tracked hands on a video frame.

        Invalid joints and any bone touching one are skipped.

        Args:
            frame: BGR image
            hands: Pipeline output for this frame
            draw_roi: Draw each hand's region and score
            connections: Draw finger bone connections

        Returns:
            Annotated copy of the frame
        """
        result = frame.copy()

        for hand in hands:
            if draw_roi:
                roi = hand.roi
                cv2.rectangle(result, (roi.x, roi.y), (roi.x2 - 1, roi.y2 - 1), self.ROI_COLOR, 2)
                cv2.putText(result, f"{hand.score:.2f}", (roi.x, max(0, roi.y - 5)),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.5, self.ROI_COLOR, 1)

            if not hand.has_landmarks:
                continue
            lms = hand.landmarks

            if connections:
                for start, end in HAND_CONNECTIONS:
                    if not (lms[start].valid and lms[end].valid):
                        continue
                    pt1 = (int(lms[start].x), int(lms[start].y))
                    pt2 = (int(lms[end].x), int(lms[end].y))
                    cv2.line(result, pt1, pt2, self.BONE_COLOR, 2)

            for i, lm in enumerate(lms):
                if not lm.valid:
                    continue
                pt = (int(lm.x), int(lm.y))

                # Fingertips in color
                if i in FINGERTIP_INDICES:
                    color = self._finger_bgr(FINGERTIP_INDICES.index(i))
                    cv2.circle(result, pt, 6, color, -1)
                else:
                    cv2.circle(result, pt, 3, self.JOINT_COLOR, -1)

        return result

    def plot_landmark_trajectory(
        self,
        raw: np.ndarray,
        smoothed: Optional[np.ndarray] = None,
        joint: int = 9,
        title: Optional[str] = None,
        save_name: Optional[str] = None
    ) -> plt.Figure:
        """
        Plot one joint's position over time, raw against smoothed.

        Args:
            raw: Shape (T, 2) unsmoothed trajectory (NaN gaps allowed)
            smoothed: Optional shape (T, 2) smoothed trajectory
            joint: Landmark index, used for labelling
            title: Plot title
            save_name: Filename to save (optional)

        Returns:
            Matplotlib figure
        """
        fig, axes = plt.subplots(2, 1, figsize=(12, 6), sharex=True)

        name = LANDMARK_NAMES[joint] if 0 <= joint < len(LANDMARK_NAMES) else str(joint)

        for axis, label in enumerate(('X Position', 'Y Position')):
            axes[axis].plot(raw[:, axis], color='#999999', alpha=0.8, label='raw')
            if smoothed is not None:
                axes[axis].plot(smoothed[:, axis], color='#377eb8', label='smoothed')
            axes[axis].set_ylabel(label)

        axes[0].set_title(title or f'{name} Trajectory')
        axes[0].legend(loc='upper right')
        axes[1].set_xlabel('Frame')

        plt.tight_layout()

        if save_name and self.output_dir:
            fig.savefig(self.output_dir / save_name, dpi=150, bbox_inches='tight')

        return fig
