# ------------------------------------------------------------------------------
# Real-time video source for the AIBO Raw Cam Server
# camera/aibo_video_source.py
# ------------------------------------------------------------------------------
import threading
from enum import Enum

from camera.acquisition import AcquisitionLoop
from camera.raw_cam_transport import Endpoint, RawCamTransport
from camera.video_source import VideoEvent, VideoSource
from logging_config import get_logger

logger = get_logger(__name__)


class PlaybackState(Enum):
    PAUSED = "paused"
    PLAYING = "playing"


class AiboVideoSource(VideoSource):
    """
    Provides frames from an AIBO's camera with play/pause/step playback.

    Frames keep arriving while paused: the current frame is always replaced,
    but subscribers are only told about it while playing. Stepping forward
    does not advance anything; it tells subscribers to fetch whatever frame
    is current. The source keeps no history, so it cannot seek, loop,
    rewind or step backward.

    The Raw Cam Server must already be running on the AIBO (see
    camera.command_channel.AiboCommandChannel).
    """

    DEFAULT_WIDTH = 208
    DEFAULT_HEIGHT = 160

    def __init__(
        self,
        endpoint,
        width=DEFAULT_WIDTH,
        height=DEFAULT_HEIGHT,
        handshake_policy=None,
        receive_policy=None,
        handshake_timeout=0.5,
        transport=None,
        auto_start=True,
    ):
        """
        Args:
            endpoint (Endpoint | str): Raw Cam Server address, or the AIBO
                host name to use with the default port.
            width (int): Width of the provided frames in pixels.
            height (int): Height of the provided frames in pixels.
            handshake_policy (RetryPolicy): Bound for the connection handshake.
            receive_policy (RetryPolicy): Bound for consecutive receive faults.
            handshake_timeout (float): Seconds to wait for each handshake reply.
            transport (RawCamTransport): Pre-built transport, mainly for tests.
            auto_start (bool): Start acquiring frames immediately.
        """
        super().__init__()
        if int(width) <= 0 or int(height) <= 0:
            raise ValueError(f"Frame size must be positive, got {width}x{height}")
        if isinstance(endpoint, str):
            endpoint = Endpoint(endpoint)

        self.endpoint = endpoint
        self._width = int(width)
        self._height = int(height)
        self._current_frame = None
        self._frame_lock = threading.RLock()
        self._state = PlaybackState.PAUSED
        self._state_lock = threading.Lock()
        self._closed = False

        if transport is None:
            transport = RawCamTransport(
                endpoint,
                handshake_timeout=handshake_timeout,
                handshake_policy=handshake_policy,
            )
        self.acquisition = AcquisitionLoop(
            transport,
            self._width,
            self._height,
            self.publish_frame,
            receive_policy=receive_policy,
        )

        logger.debug(
            f"Initialized AiboVideoSource for {self.endpoint} at {self._width}x{self._height}"
        )
        if auto_start:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self):
        """Starts frame acquisition in the background."""
        if self._closed:
            raise RuntimeError("AiboVideoSource is closed")
        self.acquisition.start()

    def close(self):
        """Stops frame acquisition and releases the socket."""
        if self._closed:
            return
        self._closed = True
        logger.info(f"Closing AiboVideoSource for {self.endpoint}...")
        self.acquisition.stop()

    def is_active(self):
        return self.acquisition.is_running()

    @property
    def acquisition_error(self):
        return self.acquisition.last_error

    def stats(self):
        stats = self.acquisition.stats()
        stats["playback_state"] = self.playback_state.value
        stats["subscribers"] = self.subscriber_count
        return stats

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------
    def get_current_frame(self):
        # Reference reads are atomic; readers never wait on a publish.
        return self._current_frame

    def publish_frame(self, frame):
        """
        Makes frame the current frame.

        While playing, subscribers then receive STATE_CHANGED followed by
        NEW_IMAGE_AVAILABLE, both before any later frame can replace this
        one. While paused the replacement is silent.
        """
        with self._frame_lock:
            self._current_frame = frame
            if self.is_playing:
                self._notify(VideoEvent.STATE_CHANGED)
                self._notify(VideoEvent.NEW_IMAGE_AVAILABLE)

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    @property
    def playback_state(self):
        return self._state

    @property
    def is_playing(self):
        return self._state is PlaybackState.PLAYING

    def _transition(self, target):
        with self._state_lock:
            if self._state is target:
                return False
            self._state = target
        logger.info(f"Playback state changed to {target.value}.")
        # Never lands between the two events of a publish.
        with self._frame_lock:
            self._notify(VideoEvent.STATE_CHANGED)
        return True

    def play(self):
        """Starts announcing new frames. Does nothing if already playing."""
        self._transition(PlaybackState.PLAYING)

    def pause(self):
        """
        Stops announcing new frames. Does nothing if already paused.

        Frames obtained while paused still replace the current frame, but no
        subscriber hears about them, so they are effectively discarded.
        """
        self._transition(PlaybackState.PAUSED)

    def can_play(self):
        return not self.is_playing

    def can_pause(self):
        return self.is_playing

    def step_forward(self):
        """
        Tells subscribers to re-fetch the current frame.

        Only meaningful while paused; ignored while playing.
        """
        with self._frame_lock:
            if not self.can_step_forward():
                logger.debug("step_forward ignored while playing.")
                return
            self._notify(VideoEvent.NEW_IMAGE_AVAILABLE)

    def can_step_forward(self):
        return not self.is_playing

    # Real-time source: no stored frames to move around in.
    def step_backward(self):
        pass

    def can_step_backward(self):
        return False

    def seek(self, location):
        pass

    def get_seek_location(self):
        return -1

    def can_seek(self):
        return False

    def rewind(self):
        pass

    def can_rewind(self):
        return False

    def can_loop(self):
        return False
