"""
Video Source Interface - Playback and Frame Notifications.

Defines the contract shared by video sources: a current frame, a
play/pause/step playback model, capability queries, and typed
notifications to subscribers.

Seekable, file-backed sources implement the whole surface. Real-time
sources answer False to the seek/loop/rewind/step-backward capabilities
and treat those operations as no-ops.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

import numpy as np

from logging_config import get_logger

logger = get_logger(__name__)


class VideoEvent(Enum):
    """Events delivered to video source subscribers."""

    STATE_CHANGED = "state_changed"
    NEW_IMAGE_AVAILABLE = "new_image_available"


Subscriber = Callable[[VideoEvent], None]


class Subscription:
    """Handle returned by VideoSource.subscribe()."""

    def __init__(self, source: VideoSource, callback: Subscriber):
        self._source = source
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._source is not None

    def unsubscribe(self) -> None:
        """Stops delivery to the callback. Safe to call more than once."""
        source, self._source = self._source, None
        if source is not None:
            source.unsubscribe(self.callback)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


class VideoSource(ABC):
    """
    Interface for a video source with playback control.

    Subscribers are called synchronously, on the thread that caused the
    event, and all of them have been called when the triggering operation
    returns.
    """

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._subscribers_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, callback: Subscriber) -> Subscription:
        """
        Registers a callback for VideoEvent notifications.

        Returns:
            Subscription: Handle whose unsubscribe() removes the callback.
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)
        return Subscription(self, callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        """Removes a callback. Returns False if it was not subscribed."""
        with self._subscribers_lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                return False
        return True

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def _notify(self, event: VideoEvent) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.exception(f"Subscriber {callback!r} failed on {event.name}: {e}")

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------
    @abstractmethod
    def get_current_frame(self) -> np.ndarray | None:
        """
        Returns the most recent frame.

        Returns:
            np.ndarray: BGR image, or None if no frame is available yet.
        """
        pass

    @property
    @abstractmethod
    def width(self) -> int:
        """Width of the frames provided by this source."""
        pass

    @property
    @abstractmethod
    def height(self) -> int:
        """Height of the frames provided by this source."""
        pass

    @property
    def resolution(self) -> tuple[int, int]:
        return (self.width, self.height)

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def can_play(self) -> bool:
        pass

    @abstractmethod
    def can_pause(self) -> bool:
        pass

    @abstractmethod
    def step_forward(self) -> None:
        pass

    @abstractmethod
    def can_step_forward(self) -> bool:
        pass

    @abstractmethod
    def step_backward(self) -> None:
        pass

    @abstractmethod
    def can_step_backward(self) -> bool:
        pass

    @abstractmethod
    def seek(self, location: int) -> None:
        pass

    @abstractmethod
    def get_seek_location(self) -> int:
        pass

    @abstractmethod
    def can_seek(self) -> bool:
        pass

    @abstractmethod
    def rewind(self) -> None:
        pass

    @abstractmethod
    def can_rewind(self) -> bool:
        pass

    @abstractmethod
    def can_loop(self) -> bool:
        pass

    def capabilities(self) -> dict:
        """Snapshot of every capability query, keyed by operation name."""
        return {
            "play": self.can_play(),
            "pause": self.can_pause(),
            "step_forward": self.can_step_forward(),
            "step_backward": self.can_step_backward(),
            "seek": self.can_seek(),
            "rewind": self.can_rewind(),
            "loop": self.can_loop(),
        }
