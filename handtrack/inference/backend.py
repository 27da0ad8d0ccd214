"""
Inference Backends

Both networks used by the tracker (the box detector and the heatmap
landmark model) are driven through the same small interface: feed an
NCHW blob, get the first output tensor back. ``CvDnnModel`` implements it
on top of ``cv2.dnn``; tests and alternative runtimes supply their own
objects with the same two methods.

Usage:
    from handtrack.inference.backend import load_model

    model = load_model("models/yolo11s_hand.onnx")
    model.set_backend_target("cuda", "cuda_fp16")
    output = model.forward(blob)
"""

from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

import cv2
import numpy as np

from ..exceptions import InferenceError, ModelLoadError
from ..utils.logging_utils import get_logger

logger = get_logger(__name__)


# Backend / target names accepted in configuration files
BACKENDS = {
    'default': cv2.dnn.DNN_BACKEND_DEFAULT,
    'opencv': cv2.dnn.DNN_BACKEND_OPENCV,
    'cpu': cv2.dnn.DNN_BACKEND_OPENCV,
    'cuda': cv2.dnn.DNN_BACKEND_CUDA,
    'cuda_fp16': cv2.dnn.DNN_BACKEND_CUDA,
    'opencl': cv2.dnn.DNN_BACKEND_OPENCV,
    'inference_engine': cv2.dnn.DNN_BACKEND_INFERENCE_ENGINE,
}

TARGETS = {
    'cpu': cv2.dnn.DNN_TARGET_CPU,
    'opencl': cv2.dnn.DNN_TARGET_OPENCL,
    'opencl_fp16': cv2.dnn.DNN_TARGET_OPENCL_FP16,
    'cuda': cv2.dnn.DNN_TARGET_CUDA,
    'cuda_fp16': cv2.dnn.DNN_TARGET_CUDA_FP16,
}


class InferenceModel(Protocol):
    """Anything that turns an input blob into an output tensor."""

    def forward(self, blob: np.ndarray) -> np.ndarray:
        ...

    def set_backend_target(self, backend: Union[str, int], target: Union[str, int]) -> None:
        ...


def resolve_backend(backend: Union[str, int]) -> int:
    """Map a backend name (or raw OpenCV constant) to a cv2.dnn backend id."""
    if isinstance(backend, str):
        key = backend.lower()
        if key not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}'. Options: {sorted(BACKENDS)}")
        return BACKENDS[key]
    return int(backend)


def resolve_target(target: Union[str, int]) -> int:
    """Map a target name (or raw OpenCV constant) to a cv2.dnn target id."""
    if isinstance(target, str):
        key = target.lower()
        if key not in TARGETS:
            raise ValueError(f"Unknown target '{target}'. Options: {sorted(TARGETS)}")
        return TARGETS[key]
    return int(target)


class CvDnnModel:
    """
    ``cv2.dnn.Net`` behind the inference interface.

    Any exception raised by OpenCV during a forward pass is re-raised as
    ``InferenceError`` so callers only need to handle one type.
    """

    def __init__(self, net, name: str = "model"):
        """
        Args:
            net: Loaded cv2.dnn.Net
            name: Label used in log messages
        """
        self.net = net
        self.name = name

    def forward(self, blob: np.ndarray) -> np.ndarray:
        try:
            self.net.setInput(blob)
            return self.net.forward()
        except cv2.error as e:
            raise InferenceError(f"{self.name}: forward pass failed: {e}") from e

    def set_backend_target(self, backend: Union[str, int], target: Union[str, int]) -> None:
        backend_id = resolve_backend(backend)
        target_id = resolve_target(target)
        self.net.setPreferableBackend(backend_id)
        self.net.setPreferableTarget(target_id)
        logger.info(f"{self.name}: backend={backend} target={target}")


def _check_file(path: Union[str, Path]) -> Path:
    path = Path(path)
    if not path.is_file():
        raise ModelLoadError(f"Model file not found: {path}")
    return path


def load_model(
    paths: Union[str, Path, Sequence[Union[str, Path]]],
    name: Optional[str] = None
) -> CvDnnModel:
    """
    Load a network with OpenCV DNN.

    Args:
        paths: A single model file (ONNX, TensorFlow, ...), or a
            (prototxt, caffemodel) pair for Caffe networks
        name: Optional label for log messages

    Returns:
        CvDnnModel

    Raises:
        ModelLoadError: If a file is missing or OpenCV rejects it
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    files = [_check_file(p) for p in paths]
    if not files:
        raise ModelLoadError("No model path given")

    label = name or files[-1].name

    try:
        if len(files) == 2:
            proto, weights = files
            if weights.suffix == '.prototxt':
                proto, weights = weights, proto
            net = cv2.dnn.readNetFromCaffe(str(proto), str(weights))
        elif len(files) == 1 and files[0].suffix.lower() == '.onnx':
            net = cv2.dnn.readNetFromONNX(str(files[0]))
        elif len(files) == 1:
            net = cv2.dnn.readNet(str(files[0]))
        else:
            raise ModelLoadError(f"Expected one or two model files, got {len(files)}")
    except cv2.error as e:
        raise ModelLoadError(f"Could not read {label}: {e}") from e

    if net.empty():
        raise ModelLoadError(f"Network is empty after loading {label}")

    logger.info(f"Loaded {label}")
    return CvDnnModel(net, name=label)


def run_forward(model: InferenceModel, blob: np.ndarray, stage: str) -> np.ndarray:
    """
    Forward a blob through any inference model.

    Backend-specific exceptions are normalised to InferenceError so the
    pipeline can treat every runtime the same way.
    """
    try:
        return model.forward(blob)
    except InferenceError:
        raise
    except Exception as e:
        raise InferenceError(f"{stage}: forward pass failed: {e}") from e
