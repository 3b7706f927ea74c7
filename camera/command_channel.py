"""
AIBO Command Channel.
Sends Tekkotsu text commands to the AIBO's control port.

Usage:
    from camera.command_channel import AiboCommandChannel

    with AiboCommandChannel("10.10.10.3") as channel:
        channel.start_raw_cam_server()
        ...
    # leaving the block stops the Raw Cam Server again
"""

import socket
import threading

from camera.errors import CommandChannelError
from logging_config import get_logger

logger = get_logger(__name__)


class AiboCommandChannel:
    """TCP connection to the Tekkotsu control port of one AIBO."""

    DEFAULT_PORT = 10001
    CONNECT_TIMEOUT = 5  # seconds

    # Tekkotsu toggles the server: the same command starts and stops it.
    RAW_CAM_SERVER_COMMAND = '!root "TekkotsuMon" "Raw Cam Server"'

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float | None = None,
        connection_factory=socket.create_connection,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout or self.CONNECT_TIMEOUT
        self._connection_factory = connection_factory
        self._conn = None
        self._lock = threading.Lock()
        self.raw_cam_server_started = False

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        """Opens the control connection if it is not open yet."""
        with self._lock:
            if self._conn is not None:
                return
            try:
                self._conn = self._connection_factory(
                    (self.host, self.port), timeout=self.timeout
                )
            except OSError as e:
                logger.error(f"Connection to AIBO at {self.host}:{self.port} failed: {e}")
                raise CommandChannelError(
                    f"Could not connect to AIBO at {self.host}:{self.port}: {e}"
                ) from e
        logger.info(f"Connected to AIBO command port {self.host}:{self.port}")

    def send_message(self, message: str) -> None:
        """
        Sends one newline-terminated command.

        Connects first if needed.
        """
        self.connect()
        with self._lock:
            try:
                self._conn.sendall((message + "\n").encode("utf-8"))
            except OSError as e:
                raise CommandChannelError(f"Failed to send {message!r}: {e}") from e
        logger.debug(f"Sent AIBO command: {message}")

    def start_raw_cam_server(self) -> bool:
        """
        Starts the Raw Cam Server unless this channel already did.

        Returns:
            True if the start command was sent.
        """
        if self.raw_cam_server_started:
            logger.debug("Raw Cam Server already started on this channel.")
            return False
        self.send_message(self.RAW_CAM_SERVER_COMMAND)
        self.raw_cam_server_started = True
        logger.info(f"Raw Cam Server started on {self.host}.")
        return True

    def stop_raw_cam_server(self) -> bool:
        """
        Stops the Raw Cam Server if this channel started it.

        Returns:
            True if the stop command was sent.
        """
        if not self.raw_cam_server_started:
            return False
        self.send_message(self.RAW_CAM_SERVER_COMMAND)
        self.raw_cam_server_started = False
        logger.info(f"Raw Cam Server stopped on {self.host}.")
        return True

    def close(self) -> None:
        """Stops the Raw Cam Server if needed and closes the connection."""
        try:
            if self._conn is not None:
                self.stop_raw_cam_server()
        except CommandChannelError as e:
            logger.warning(f"Could not stop Raw Cam Server on close: {e}")
        finally:
            with self._lock:
                conn, self._conn = self._conn, None
            if conn is not None:
                conn.close()
                logger.info(f"Closed AIBO command connection {self.host}:{self.port}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
