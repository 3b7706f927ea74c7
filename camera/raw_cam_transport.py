# ------------------------------------------------------------------------------
# UDP transport for the Tekkotsu Raw Cam Server
# camera/raw_cam_transport.py
# ------------------------------------------------------------------------------
from __future__ import annotations

import socket
import threading
from dataclasses import dataclass

from camera.errors import (
    AcquisitionCancelled,
    ConfigurationError,
    HandshakeError,
    RetryExhaustedError,
    TransportError,
)
from camera.retry_policy import RetryPolicy
from logging_config import get_logger

logger = get_logger(__name__)

RAW_CAM_PORT = 10011


@dataclass(frozen=True)
class Endpoint:
    """Address of the Raw Cam Server on the AIBO."""

    host: str
    port: int = RAW_CAM_PORT

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class RawCamTransport:
    """
    Connected UDP socket to the AIBO Raw Cam Server.

    The server does not announce readiness, so connect() keeps probing with
    a connection request until any datagram comes back. After that, each
    receive() returns exactly one datagram, which the server guarantees to
    be one complete camera frame.
    """

    CONNECTION_REQUEST = b"connection request"
    MAX_DATAGRAM_SIZE = 1 << 16

    def __init__(
        self,
        endpoint: Endpoint,
        handshake_timeout: float = 0.5,
        handshake_policy: RetryPolicy | None = None,
        socket_factory=socket.socket,
    ):
        self.endpoint = endpoint
        self.handshake_timeout = handshake_timeout
        self.handshake_policy = handshake_policy or RetryPolicy()
        self._socket_factory = socket_factory
        self._sock = None
        self.probes_sent = 0

    @property
    def is_connected(self) -> bool:
        return self._sock is not None

    def connect(self, stop_event: threading.Event | None = None) -> None:
        """
        Opens the socket and performs the connection handshake.

        Args:
            stop_event: Aborts the handshake when set.

        Raises:
            ConfigurationError: The endpoint could not be connected and the
                handshake policy is exhausted.
            HandshakeError: No reply arrived within the handshake policy.
            AcquisitionCancelled: stop_event was set before a reply arrived.
        """
        stop_event = stop_event or threading.Event()
        budget = self.handshake_policy.start()
        self.probes_sent = 0

        sock = self._open_socket(budget, stop_event)
        self._sock = sock
        logger.info(f"Probing Raw Cam Server at {self.endpoint}...")

        while True:
            if stop_event.is_set():
                self.close()
                raise AcquisitionCancelled(
                    f"Handshake with {self.endpoint} cancelled"
                )
            try:
                sock.settimeout(self.handshake_timeout)
                sock.send(self.CONNECTION_REQUEST)
                self.probes_sent += 1
                sock.recv(self.MAX_DATAGRAM_SIZE)
                # Blocking mode from here on: frames arrive at the server's pace.
                sock.settimeout(None)
                break
            except socket.timeout:
                logger.debug(
                    f"No reply to connection request #{self.probes_sent}; resending."
                )
                self._record_handshake_failure(budget)
            except OSError as e:
                if stop_event.is_set():
                    continue
                logger.warning(
                    f"Socket error during handshake with {self.endpoint}: {e}. "
                    f"Retrying in {self.handshake_policy.backoff}s."
                )
                self._record_handshake_failure(budget)
                stop_event.wait(self.handshake_policy.backoff)

        logger.info(
            f"Raw Cam Server at {self.endpoint} answered after "
            f"{self.probes_sent} probe(s)."
        )

    def _open_socket(self, budget, stop_event):
        while True:
            if stop_event.is_set():
                raise AcquisitionCancelled(
                    f"Connection to {self.endpoint} cancelled"
                )
            sock = None
            try:
                sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
                sock.connect((self.endpoint.host, self.endpoint.port))
                return sock
            except OSError as e:
                if sock is not None:
                    sock.close()
                logger.error(
                    f"Could not connect to Raw Cam Server at {self.endpoint}: {e}"
                )
                try:
                    budget.record_failure(f"Connecting to {self.endpoint}")
                except RetryExhaustedError as exhausted:
                    raise ConfigurationError(str(exhausted)) from e
                stop_event.wait(self.handshake_policy.backoff)

    def _record_handshake_failure(self, budget):
        try:
            budget.record_failure(
                f"Handshake with {self.endpoint}", error_cls=HandshakeError
            )
        except HandshakeError:
            self.close()
            raise

    def receive(self) -> bytes:
        """
        Blocks until one datagram arrives and returns its payload.

        Raises:
            TransportError: Not connected, or the socket failed.
        """
        sock = self._sock
        if sock is None:
            raise TransportError(f"Not connected to {self.endpoint}")
        try:
            return sock.recv(self.MAX_DATAGRAM_SIZE)
        except OSError as e:
            raise TransportError(
                f"Receive from {self.endpoint} failed: {e}"
            ) from e

    def close(self) -> None:
        """Closes the socket. A receive blocked in another thread returns."""
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            # close() alone does not wake a blocked recv() on Linux.
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
        logger.debug(f"Closed raw camera socket to {self.endpoint}.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
