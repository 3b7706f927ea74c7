# ------------------------------------------------------------------------------
# Background acquisition loop for the AIBO Raw Cam Server
# camera/acquisition.py
# ------------------------------------------------------------------------------
import threading
import time
from threading import Event

from camera.errors import (
    AcquisitionCancelled,
    FrameDecodeError,
    RawCamError,
    RetryExhaustedError,
    TransportError,
)
from camera.frame_decoder import decode_frame
from camera.frame_scaler import scale_frame
from camera.retry_policy import RetryPolicy
from logging_config import get_logger

logger = get_logger(__name__)


class AcquisitionLoop:
    """
    Runs receive -> decode -> scale -> publish on one background thread.

    The loop owns the transport: it connects it when the thread starts and
    always closes it when the thread exits. Faults are recovered locally;
    the loop only ends on stop() or when a bounded retry policy runs out.
    """

    def __init__(
        self,
        transport,
        width,
        height,
        publish,
        receive_policy=None,
        name="RawCamReader",
    ):
        self.transport = transport
        self.width = width
        self.height = height
        self.publish = publish
        self.receive_policy = receive_policy or RetryPolicy()
        self.name = name
        self.stop_event = Event()
        self.reader_thread = None
        self.last_error = None

        self.frames_received = 0
        self.frames_published = 0
        self.dropped_frames = 0
        self.receive_faults = 0
        self.last_frame_time = None

    def start(self):
        """Starts the reader thread if it's not already running."""
        if self.is_running():
            logger.info("Acquisition loop already running; skipping start.")
            return
        self.stop_event.clear()
        self.last_error = None
        self.reader_thread = threading.Thread(
            target=self._run, daemon=True, name=self.name
        )
        self.reader_thread.start()
        logger.info(f"{self.name} thread started for {self.transport.endpoint}.")

    def is_running(self):
        """Checks if the reader thread is active."""
        return self.reader_thread is not None and self.reader_thread.is_alive()

    def _run(self):
        logger.info(f"{self.name} thread is running.")
        try:
            self.transport.connect(self.stop_event)
            self._receive_loop()
        except AcquisitionCancelled:
            logger.info("Stop requested before the Raw Cam Server answered.")
        except RawCamError as e:
            self.last_error = e
            logger.error(f"Acquisition loop giving up: {e}")
        except Exception as e:
            self.last_error = e
            logger.exception(f"Unexpected error in {self.name} thread: {e}")
        finally:
            self.transport.close()
            logger.info(f"{self.name} thread has exited.")

    def _receive_loop(self):
        budget = self.receive_policy.start()
        last_log_time = time.time()
        while not self.stop_event.is_set():
            try:
                payload = self.transport.receive()
            except TransportError as e:
                if self.stop_event.is_set():
                    break
                self.receive_faults += 1
                logger.warning(f"Error receiving frame: {e}")
                budget.record_failure("Receiving frames", error_cls=RetryExhaustedError)
                self.stop_event.wait(self.receive_policy.backoff)
                continue
            budget.reset()

            if self.stop_event.is_set():
                break
            self.process_payload(payload)

            # Periodically log diagnostic information
            if time.time() - last_log_time >= 30:
                logger.debug(f"Diagnostics: {self.stats()}")
                last_log_time = time.time()

    def process_payload(self, payload):
        """
        Decodes, scales and publishes one datagram.

        Returns:
            The published frame, or None if the datagram was dropped.
        """
        self.frames_received += 1
        try:
            image = decode_frame(payload)
            frame = scale_frame(image, self.width, self.height)
        except FrameDecodeError as e:
            self.dropped_frames += 1
            logger.debug(f"Dropping frame: {e}")
            return None
        except Exception as e:
            self.dropped_frames += 1
            logger.exception(f"Unexpected error processing frame: {e}")
            return None

        self.last_frame_time = time.time()
        try:
            self.publish(frame)
        except Exception as e:
            logger.exception(f"Publishing frame failed: {e}")
            return None
        self.frames_published += 1
        return frame

    def stats(self):
        return {
            "running": self.is_running(),
            "frames_received": self.frames_received,
            "frames_published": self.frames_published,
            "dropped_frames": self.dropped_frames,
            "receive_faults": self.receive_faults,
            "last_frame_time": self.last_frame_time,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def stop(self, timeout=5.0):
        """Stops the loop and releases the socket. Safe to call repeatedly."""
        self.stop_event.set()
        # Unblocks a receive() that is waiting for the next datagram.
        self.transport.close()

        thread = self.reader_thread
        if thread and thread.is_alive():
            if thread is not threading.current_thread():
                logger.info(f"Joining {self.name} thread...")
                thread.join(timeout=timeout)
                if thread.is_alive():
                    logger.info(f"{self.name} thread did not terminate within timeout.")
            else:
                logger.info(f"Skipping join on current thread ({self.name}).")
        self.reader_thread = None
