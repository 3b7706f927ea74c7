# ------------------------------------------------------------------------------
# Main Script for the AIBO Camera Preview
# main.py
# ------------------------------------------------------------------------------
import atexit
import json

from config import get_config, retry_policies_from_config
config = get_config()
from logging_config import get_logger
logger = get_logger(__name__)

from camera.aibo_video_source import AiboVideoSource
from camera.command_channel import AiboCommandChannel
from camera.errors import CommandChannelError
from camera.raw_cam_transport import Endpoint

# --------------------------------------------------------------------------
# Configuration Parameters
# --------------------------------------------------------------------------
_debug = config["DEBUG_MODE"]

logger.info(f"Debug mode is {'enabled' if _debug else 'disabled'}.")
logger.info(f"Configuration: {json.dumps(config, indent=2)}")

# -----------------------------
# Start the AIBO Raw Cam Server
# -----------------------------
command_channel = AiboCommandChannel(config["AIBO_HOST"], config["AIBO_COMMAND_PORT"])
if config["START_CAMERA_SERVER"]:
    try:
        command_channel.start_raw_cam_server()
    except CommandChannelError as e:
        # The server may already be running; the handshake will keep probing.
        logger.error(f"Could not start the Raw Cam Server: {e}")

# -----------------------------
# Start the Video Source
# -----------------------------
handshake_policy, receive_policy = retry_policies_from_config(config)
video_source = AiboVideoSource(
    Endpoint(config["AIBO_HOST"], config["RAW_CAM_PORT"]),
    width=config["FRAME_WIDTH"],
    height=config["FRAME_HEIGHT"],
    handshake_policy=handshake_policy,
    receive_policy=receive_policy,
    handshake_timeout=config["HANDSHAKE_TIMEOUT"],
)
if config["AUTO_PLAY"]:
    video_source.play()


def shutdown():
    """Stops acquisition first, then tells the AIBO to stop serving frames."""
    video_source.close()
    command_channel.close()


# Register the cleanup function
atexit.register(shutdown)

# -----------------------------
# Import and Run the Web Interface
# -----------------------------
from web.web_interface import create_web_interface

interface = create_web_interface(video_source)
app = interface["server"]

if __name__ == '__main__':
    try:
        interface["run"](debug=_debug, host=config["WEB_HOST"], port=config["WEB_PORT"])
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received. Shutting down video source...")
        shutdown()
