"""
Playback API Blueprint.

Endpoints under /api/* that expose the video source playback controls:
status and capability flags, play, pause and step forward.

The video source is injected by create_web_interface() as
playback_api.video_source.
"""

from flask import Blueprint, jsonify

from logging_config import get_logger

logger = get_logger(__name__)

playback_api = Blueprint("playback_api", __name__, url_prefix="/api")
playback_api.video_source = None


def _status_payload(source) -> dict:
    return {
        "playing": source.is_playing,
        "width": source.width,
        "height": source.height,
        "has_frame": source.get_current_frame() is not None,
        "capabilities": source.capabilities(),
        "acquisition": source.stats(),
    }


@playback_api.route("/status", methods=["GET"])
def status():
    """Returns playback state, capability flags and acquisition counters."""
    try:
        return jsonify(_status_payload(playback_api.video_source))
    except Exception as e:
        logger.error(f"Status API error: {e}")
        return jsonify({"error": str(e)}), 500


@playback_api.route("/play", methods=["POST"])
def play():
    source = playback_api.video_source
    if not source.can_play():
        return jsonify({"status": "playing", "message": "Video was already playing"})

    source.play()
    logger.info("Playback started via API")
    return jsonify({"status": "success", "message": "Playback started"})


@playback_api.route("/pause", methods=["POST"])
def pause():
    source = playback_api.video_source
    if not source.can_pause():
        return jsonify({"status": "paused", "message": "Video was already paused"})

    source.pause()
    logger.info("Playback paused via API")
    return jsonify({"status": "success", "message": "Playback paused"})


@playback_api.route("/step", methods=["POST"])
def step_forward():
    """Announces the current frame once. Only allowed while paused."""
    source = playback_api.video_source
    if not source.can_step_forward():
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Cannot step forward while playing",
                }
            ),
            409,
        )

    source.step_forward()
    return jsonify({"status": "success", "message": "Stepped forward"})
