"""
Box art resizing with Pillow.
"""

import logging
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)


class ResizeError(Exception):
    """Raised when an image cannot be opened or saved."""
    pass


def resize_image(path: Path, target_width: int) -> bool:
    """
    Shrink an image in place to a target width, keeping its aspect ratio.

    Images already at or below the target width are left untouched.

    Args:
        path: Image file to resize
        target_width: Maximum width in pixels

    Returns:
        True if the image was resized, False if no resize was needed

    Raises:
        ResizeError: If the image cannot be read or written
    """
    if target_width <= 0:
        raise ResizeError(f"Invalid target width: {target_width}")

    try:
        with Image.open(path) as img:
            width, height = img.size
            if width <= target_width:
                return False

            target_height = max(1, round(height * target_width / width))
            resized = img.resize((target_width, target_height), Image.LANCZOS)
            # Saved as PNG regardless of the downloaded format
            resized.save(path, format='PNG')
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ResizeError(f"Failed to resize {path}: {e}")

    logger.debug(f"Resized {path.name}: {width}x{height} -> {target_width}x{target_height}")
    return True
