from __future__ import annotations

import threading
import time
import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from camera.video_source import VideoEvent
from logging_config import get_logger

logger = get_logger(__name__)


class FrameGenerator:
    """
    Generates JPEG-encoded preview frames from a video source.

    The preview only changes when the source announces NEW_IMAGE_AVAILABLE,
    so it freezes while the source is paused and advances by one frame per
    step_forward().
    """

    JPEG_QUALITY = 80

    def __init__(self, video_source, placeholder_size=None):
        """Subscribes to the video source."""
        self.video_source = video_source
        self.placeholder_size = placeholder_size or video_source.resolution
        self._display_frame = None
        self._display_lock = threading.Lock()
        self.frames_displayed = 0
        self._subscription = video_source.subscribe(self._on_video_event)

    def _on_video_event(self, event):
        if event is not VideoEvent.NEW_IMAGE_AVAILABLE:
            return
        # Read inside the callback: this is the frame that was just announced.
        frame = self.video_source.get_current_frame()
        if frame is None:
            return
        with self._display_lock:
            self._display_frame = frame
            self.frames_displayed += 1

    def get_display_frame(self):
        """Returns the last announced frame, or None if there was none yet."""
        with self._display_lock:
            return self._display_frame

    def _draw_timestamp(self, image, padding_x_percent, padding_y_percent):
        """Adds a timestamp to the image."""
        pil_image = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(pil_image)
        img_width, img_height = pil_image.size
        padding_x = int(img_width * padding_x_percent)
        padding_y = int(img_height * padding_y_percent)
        custom_font = ImageFont.load_default()
        timestamp_text = time.strftime("%Y-%m-%d %H:%M:%S")
        bbox = draw.textbbox((0, 0), timestamp_text, font=custom_font)
        text_width = bbox[2] - bbox[0]
        text_height = bbox[3] - bbox[1]
        text_x = max(0, img_width - text_width - padding_x)
        text_y = max(0, img_height - text_height - padding_y)
        draw.text((text_x, text_y), timestamp_text, font=custom_font, fill="white")
        return cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2BGR)

    def _generate_placeholder(self):
        """Generates a dark noise image while no frame has been announced."""
        width, height = self.placeholder_size
        return np.random.randint(0, 60, (height, width, 3), dtype=np.uint8)

    def render_frame(self):
        """Returns the current preview image with the timestamp overlay."""
        frame = self.get_display_frame()
        if frame is None:
            frame = self._generate_placeholder()
        return self._draw_timestamp(frame, 0.02, 0.04)

    def encode_frame(self, image):
        """Encodes a BGR image to JPEG bytes, or None if encoding fails."""
        ret, buffer = cv2.imencode(
            ".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), self.JPEG_QUALITY]
        )
        if not ret:
            logger.error("Failed to encode frame.")
            return None
        return buffer.tobytes()

    def generate_frames(self, stream_fps):
        """Continuously yields multipart JPEG chunks."""
        desired_frame_time = 1.0 / stream_fps if stream_fps > 0 else 0.1
        while True:
            start_time = time.time()
            jpeg = self.encode_frame(self.render_frame())
            if jpeg is not None:
                yield (
                    b"--frame\r\n"
                    b"Content-Type: image/jpeg\r\n\r\n" + jpeg + b"\r\n"
                )

            elapsed = time.time() - start_time
            if elapsed < desired_frame_time:
                time.sleep(desired_frame_time - elapsed)

    def close(self):
        """Stops listening to the video source."""
        self._subscription.unsubscribe()
