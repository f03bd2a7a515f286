"""
Media handling package for romshelf.

Post-processes downloaded box art.
"""

from .resize import resize_image, ResizeError

__all__ = [
    "resize_image",
    "ResizeError",
]
