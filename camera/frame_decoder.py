"""
Frame Decoder
=============

Turns one Raw Cam Server datagram into a BGR image.

Wire format:
    [0:89]   protocol header (Tekkotsu metadata, not interpreted here)
    [89:]    JPEG-compressed still image
"""

import cv2
import numpy as np

from camera.errors import FrameDecodeError


HEADER_SIZE = 89


def strip_header(payload: bytes) -> bytes:
    """
    Removes the fixed protocol header from a datagram.

    Raises:
        FrameDecodeError: If nothing is left after the header.
    """
    if len(payload) <= HEADER_SIZE:
        raise FrameDecodeError(
            f"Datagram of {len(payload)} bytes has no image data "
            f"after the {HEADER_SIZE} byte header"
        )
    return payload[HEADER_SIZE:]


def decode_frame(payload: bytes) -> np.ndarray:
    """
    Decode a raw camera datagram to a BGR numpy array.

    Args:
        payload: Complete datagram as received from the Raw Cam Server

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        FrameDecodeError: If the payload is too short or the image data
            after the header cannot be decoded
    """
    image_bytes = strip_header(payload)

    try:
        nparr = np.frombuffer(image_bytes, np.uint8)
        bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise FrameDecodeError(f"cv2.imdecode failed: {e}") from e

    if bgr is None:
        raise FrameDecodeError(
            f"Failed to decode {len(image_bytes)} image bytes: "
            "cv2.imdecode returned None"
        )

    if bgr.ndim != 3 or bgr.shape[2] != 3:
        raise FrameDecodeError(f"Invalid image shape: {bgr.shape}")

    return bgr
