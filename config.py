# config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env file.
load_dotenv()

_CONFIG = None


def _env_bool(name, default):
    return os.getenv(name, str(default)).lower() == "true"


def _env_int(name, default):
    try:
        return int(float(os.getenv(name, default)))
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def load_config():
    """
    Loads configuration from environment variables and returns a dictionary.
    """
    frame_width = _env_int("FRAME_WIDTH", 208)
    frame_height = _env_int("FRAME_HEIGHT", 160)
    if frame_width <= 0 or frame_height <= 0:
        # Fallback to the AIBO default preview size
        frame_width, frame_height = 208, 160

    handshake_timeout = _env_float("HANDSHAKE_TIMEOUT", 0.5)
    if handshake_timeout <= 0:
        # Probes need a positive timeout; 0 would make them non-blocking
        handshake_timeout = 0.5

    config = {
        # General Settings
        "DEBUG_MODE": _env_bool("DEBUG_MODE", False),

        # AIBO Connection Settings
        "AIBO_HOST": os.getenv("AIBO_HOST", "10.10.10.3"),
        "AIBO_COMMAND_PORT": _env_int("AIBO_COMMAND_PORT", 10001),
        "RAW_CAM_PORT": _env_int("RAW_CAM_PORT", 10011),
        "START_CAMERA_SERVER": _env_bool("START_CAMERA_SERVER", True),

        # Frame Settings
        "FRAME_WIDTH": frame_width,
        "FRAME_HEIGHT": frame_height,

        # Handshake and Retry Settings (0 = retry forever)
        "HANDSHAKE_TIMEOUT": handshake_timeout,
        "TRANSPORT_BACKOFF": max(0.0, _env_float("TRANSPORT_BACKOFF", 0.5)),
        "HANDSHAKE_MAX_ATTEMPTS": max(0, _env_int("HANDSHAKE_MAX_ATTEMPTS", 0)),
        "HANDSHAKE_MAX_DURATION": max(0.0, _env_float("HANDSHAKE_MAX_DURATION", 0)),
        "RECEIVE_MAX_FAULTS": max(0, _env_int("RECEIVE_MAX_FAULTS", 0)),

        # Playback Settings
        "AUTO_PLAY": _env_bool("AUTO_PLAY", True),

        # Streaming Settings
        "STREAM_FPS": _env_float("STREAM_FPS", 10),
        "WEB_HOST": os.getenv("WEB_HOST", "0.0.0.0"),
        "WEB_PORT": _env_int("WEB_PORT", 8050),
    }
    return config


def get_config():
    """Returns the process configuration, loading it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def retry_policies_from_config(config):
    """
    Builds the (handshake, receive) retry policies from a config dictionary.
    """
    from camera.retry_policy import RetryPolicy

    backoff = config["TRANSPORT_BACKOFF"]
    handshake_policy = RetryPolicy(
        max_attempts=config["HANDSHAKE_MAX_ATTEMPTS"] or None,
        max_duration=config["HANDSHAKE_MAX_DURATION"] or None,
        backoff=backoff,
    )
    receive_policy = RetryPolicy(
        max_attempts=config["RECEIVE_MAX_FAULTS"] or None,
        backoff=backoff,
    )
    return handshake_policy, receive_policy


if __name__ == "__main__":
    # For testing purposes, print the configuration
    config = get_config()
    from pprint import pprint

    pprint(config)
