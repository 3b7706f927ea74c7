# camera/frame_scaler.py
import cv2
import numpy as np

# Smooth resampling; the decoded AIBO frames are small and nearest-neighbour
# artifacts are very visible in a live preview.
INTERPOLATION = cv2.INTER_CUBIC


def scale_frame(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resamples an image to exactly width x height.

    Each axis is scaled on its own, so the aspect ratio is not preserved
    when it differs from the target's. The display stage rescales again.

    Args:
        image (np.ndarray): Decoded BGR frame.
        width (int): Target width in pixels.
        height (int): Target height in pixels.

    Returns:
        np.ndarray: New BGR image of shape (height, width, 3).
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")
    if image is None or image.size == 0:
        raise ValueError("Cannot scale an empty image")

    if image.shape[1] == width and image.shape[0] == height:
        return image.copy()
    return cv2.resize(image, (width, height), interpolation=INTERPOLATION)
