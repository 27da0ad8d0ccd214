"""Exceptions raised inside the hand tracking core."""


class HandTrackError(Exception):
    """Base error for the hand tracking package."""
    pass


class ModelLoadError(HandTrackError):
    """Model file missing, unreadable or rejected by the inference backend."""
    pass


class InferenceError(HandTrackError):
    """Backend failure during a forward pass, or malformed network output."""
    pass


class ConfigError(HandTrackError, ValueError):
    """Invalid configuration values."""
    pass
