import threading

import cv2
import numpy as np

from camera.acquisition import AcquisitionLoop
from camera.aibo_video_source import AiboVideoSource
from camera.errors import AcquisitionCancelled, RetryExhaustedError, TransportError
from camera.frame_decoder import HEADER_SIZE
from camera.raw_cam_transport import Endpoint
from camera.retry_policy import RetryPolicy
from camera.video_source import VideoEvent


def _payload(width=64, height=48):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    cv2.rectangle(image, (10, 10), (30, 30), (255, 255, 255), -1)
    ok, buffer = cv2.imencode(".jpg", image)
    assert ok
    return b"\x00" * HEADER_SIZE + buffer.tobytes()


class _FakeTransport:
    """
    Scripted transport. Items are payloads or exceptions; once the script is
    used up, receive() blocks until close() like a real socket would.
    """

    endpoint = Endpoint("127.0.0.1")

    def __init__(self, script=(), connect_error=None):
        self.script = list(script)
        self.connect_error = connect_error
        self.connect_calls = 0
        self.close_calls = 0
        self._closed = threading.Event()

    def connect(self, stop_event=None):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    def receive(self):
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        self._closed.wait(timeout=5)
        raise TransportError("socket closed")

    def close(self):
        self.close_calls += 1
        self._closed.set()


def _loop(transport, publish, receive_policy=None):
    return AcquisitionLoop(transport, 208, 160, publish, receive_policy=receive_policy)


def test_process_payload_publishes_scaled_frame():
    published = []
    loop = _loop(_FakeTransport(), published.append)

    frame = loop.process_payload(_payload())

    assert frame.shape == (160, 208, 3)
    assert len(published) == 1
    assert published[0] is frame
    assert loop.frames_received == 1
    assert loop.frames_published == 1


def test_malformed_payload_is_dropped():
    published = []
    loop = _loop(_FakeTransport(), published.append)

    assert loop.process_payload(b"\x00" * HEADER_SIZE + b"garbage") is None
    assert loop.process_payload(b"short") is None

    assert published == []
    assert loop.dropped_frames == 2


def test_malformed_payload_keeps_current_frame():
    transport = _FakeTransport()
    source = AiboVideoSource("127.0.0.1", transport=transport, auto_start=False)

    source.acquisition.process_payload(_payload())
    first = source.get_current_frame()
    source.acquisition.process_payload(b"\x00" * HEADER_SIZE + b"\xff\xd8broken")

    assert first is not None
    assert source.get_current_frame() is first


def test_publish_failure_does_not_stop_processing():
    def publish(frame):
        raise RuntimeError("subscriber exploded")

    loop = _loop(_FakeTransport(), publish)

    assert loop.process_payload(_payload()) is None
    assert loop.frames_published == 0


def test_loop_delivers_frames_to_playing_source():
    transport = _FakeTransport(script=[_payload()])
    source = AiboVideoSource("127.0.0.1", transport=transport, auto_start=False)
    got_image = threading.Event()
    source.subscribe(
        lambda event: got_image.set() if event is VideoEvent.NEW_IMAGE_AVAILABLE else None
    )
    source.play()

    source.start()
    try:
        assert got_image.wait(timeout=5)
        assert source.get_current_frame().shape == (160, 208, 3)
        assert source.is_active()
    finally:
        source.close()

    assert not source.is_active()
    assert transport.connect_calls == 1
    assert transport.close_calls >= 1


def test_receive_faults_are_retried():
    published = threading.Event()
    transport = _FakeTransport(
        script=[TransportError("boom"), TransportError("boom"), _payload()]
    )
    loop = _loop(transport, lambda frame: published.set(), RetryPolicy(backoff=0))

    loop.start()
    try:
        assert published.wait(timeout=5)
    finally:
        loop.stop()

    assert loop.receive_faults == 2
    assert loop.last_error is None


def test_bounded_receive_policy_ends_loop():
    transport = _FakeTransport(script=[TransportError("boom")] * 5)
    loop = _loop(transport, lambda frame: None, RetryPolicy(max_attempts=3, backoff=0))

    loop.start()
    loop.reader_thread.join(timeout=5)

    assert not loop.is_running()
    assert isinstance(loop.last_error, RetryExhaustedError)
    assert transport.close_calls == 1
    assert loop.stats()["last_error"] is not None


def test_cancelled_handshake_is_not_an_error():
    transport = _FakeTransport(connect_error=AcquisitionCancelled("stop"))
    loop = _loop(transport, lambda frame: None)

    loop.start()
    loop.reader_thread.join(timeout=5)

    assert loop.last_error is None
    assert transport.close_calls == 1


def test_start_twice_keeps_one_thread():
    transport = _FakeTransport()
    loop = _loop(transport, lambda frame: None)

    loop.start()
    first_thread = loop.reader_thread
    loop.start()
    try:
        assert loop.reader_thread is first_thread
    finally:
        loop.stop()


def test_stop_before_start_is_safe():
    transport = _FakeTransport()
    loop = _loop(transport, lambda frame: None)

    loop.stop()
    loop.stop()

    assert loop.reader_thread is None
    assert not loop.is_running()


def test_unexpected_scale_error_drops_frame(monkeypatch):
    def broken_scale(image, width, height):
        raise cv2.error("resize failed")

    monkeypatch.setattr("camera.acquisition.scale_frame", broken_scale)
    published = []
    loop = _loop(_FakeTransport(), published.append)

    assert loop.process_payload(_payload()) is None
    assert published == []
    assert loop.dropped_frames == 1

    monkeypatch.undo()
    assert loop.process_payload(_payload()) is not None
    assert loop.frames_published == 1


def test_unexpected_error_in_thread_is_recorded():
    transport = _FakeTransport(connect_error=ValueError("Timeout value out of range"))
    loop = _loop(transport, lambda frame: None)

    loop.start()
    loop.reader_thread.join(timeout=5)

    assert not loop.is_running()
    assert isinstance(loop.last_error, ValueError)
    assert transport.close_calls == 1
    assert "out of range" in loop.stats()["last_error"]
