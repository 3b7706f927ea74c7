# ------------------------------------------------------------------------------
# web_interface.py
# ------------------------------------------------------------------------------

import logging
from flask import Flask, Response
from config import get_config

from camera.frame_generator import FrameGenerator
from web.blueprints.playback import playback_api

config = get_config()


def create_web_interface(video_source, frame_generator=None):
    """
    Creates and returns the preview web interface (Flask server) for a video source.

    Routes:
      - /video_feed: multipart MJPEG preview that follows the playback state.
      - /api/status, /api/play, /api/pause, /api/step: playback controls.

    Returns a dict with the Flask "server", the "frame_generator" feeding the
    preview and a "run" function.
    """
    logger = logging.getLogger(__name__)

    STREAM_FPS = config["STREAM_FPS"]
    if frame_generator is None:
        frame_generator = FrameGenerator(video_source)

    # -----------------------------
    # Flask Server and Routes
    # -----------------------------
    server = Flask(__name__)

    def setup_web_routes(app_server):
        app_server.route("/video_feed")(lambda: Response(
            frame_generator.generate_frames(STREAM_FPS),
            mimetype="multipart/x-mixed-replace; boundary=frame"
        ))
        playback_api.video_source = video_source
        app_server.register_blueprint(playback_api)
    setup_web_routes(server)

    # -----------------------------
    # Function to Start the Web Interface
    # -----------------------------
    def run(debug=False, host="0.0.0.0", port=8050):
        logger.info(f"Starting preview server on http://{host}:{port}")
        # The reloader would start a second acquisition thread on the same port.
        server.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)

    return {"server": server, "frame_generator": frame_generator, "run": run}
