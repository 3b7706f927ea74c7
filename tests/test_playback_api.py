"""
Playback API Tests.

These tests drive the /api/* playback endpoints through the Flask test client
against a video source whose acquisition thread is not started.
"""

import numpy as np
import pytest

from camera.aibo_video_source import AiboVideoSource
from camera.video_source import VideoEvent
from web.web_interface import create_web_interface


@pytest.fixture
def source():
    src = AiboVideoSource("127.0.0.1", auto_start=False)
    yield src
    src.close()


@pytest.fixture
def interface(source):
    return create_web_interface(source)


@pytest.fixture
def client(interface):
    interface["server"].config["TESTING"] = True
    with interface["server"].test_client() as client:
        yield client


class TestStatus:
    def test_status_returns_expected_fields(self, client):
        response = client.get("/api/status")

        assert response.status_code == 200
        data = response.get_json()
        assert data["playing"] is False
        assert data["width"] == 208
        assert data["height"] == 160
        assert data["has_frame"] is False
        assert data["capabilities"]["seek"] is False
        assert data["capabilities"]["step_forward"] is True
        assert data["acquisition"]["running"] is False

    def test_status_reports_frame(self, client, source):
        source.publish_frame(np.zeros((160, 208, 3), dtype=np.uint8))

        data = client.get("/api/status").get_json()

        assert data["has_frame"] is True


class TestControls:
    def test_play_and_pause(self, client, source):
        response = client.post("/api/play")
        assert response.get_json()["status"] == "success"
        assert source.is_playing

        response = client.post("/api/play")
        assert response.get_json()["status"] == "playing"

        response = client.post("/api/pause")
        assert response.get_json()["status"] == "success"
        assert not source.is_playing

        response = client.post("/api/pause")
        assert response.get_json()["status"] == "paused"

    def test_step_rejected_while_playing(self, client, source):
        source.play()

        response = client.post("/api/step")

        assert response.status_code == 409

    def test_step_while_paused_notifies(self, client, source):
        events = []
        source.subscribe(events.append)

        response = client.post("/api/step")

        assert response.status_code == 200
        assert events == [VideoEvent.NEW_IMAGE_AVAILABLE]

    def test_status_rejects_post(self, client):
        assert client.post("/api/status").status_code == 405


def test_interface_exposes_frame_generator(interface, source):
    source.play()
    frame = np.zeros((160, 208, 3), dtype=np.uint8)
    source.publish_frame(frame)

    assert interface["frame_generator"].get_display_frame() is frame
    assert callable(interface["run"])
