"""
Image utilities for decoding fetched bytes and slicing sprite sheets.
"""

from typing import Tuple, Union
from PIL import Image, UnidentifiedImageError
import numpy as np
import io


class ImageUtils:
    """Utility class for common image operations."""

    @staticmethod
    def load_image(data: Union[bytes, str, Image.Image]) -> Image.Image:
        """
        Load and fully decode an image from various sources.

        Args:
            data: Image data as bytes, file path, or PIL Image

        Returns:
            Decoded PIL Image object

        Raises:
            ValueError: If data cannot be loaded as image
        """
        if isinstance(data, Image.Image):
            return data
        elif isinstance(data, (bytes, bytearray)):
            try:
                image = Image.open(io.BytesIO(data))
                # Image.open is lazy, force decoding so corrupt data fails here
                image.load()
                return image
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                raise ValueError(f"Cannot load image from bytes: {e}")
        elif isinstance(data, str):
            try:
                image = Image.open(data)
                image.load()
                return image
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                raise ValueError(f"Cannot load image from path '{data}': {e}")
        else:
            raise ValueError(f"Unsupported image data type: {type(data)}")

    @staticmethod
    def ensure_rgba(image: Image.Image) -> Image.Image:
        """Convert image to RGBA mode if not already."""
        if image.mode != 'RGBA':
            return image.convert('RGBA')
        return image

    @staticmethod
    def fits(image: Image.Image, box: Tuple[int, int, int, int]) -> bool:
        """Check that a crop box lies inside the image bounds."""
        left, upper, right, lower = box
        return 0 <= left < right <= image.width and 0 <= upper < lower <= image.height

    @staticmethod
    def crop_region(image: Image.Image, box: Tuple[int, int, int, int]) -> Image.Image:
        """
        Crop a region into an independent image.

        PIL crops are lazy views on the source; ``copy()`` detaches the result
        so it can be stored and used on its own.
        """
        return image.crop(box).copy()

    @staticmethod
    def is_fully_transparent(image: Image.Image) -> bool:
        """Check if every pixel of an image has zero alpha."""
        if image.mode not in ('RGBA', 'LA'):
            return False

        alpha_array = np.array(image.getchannel('A'))
        return alpha_array.size > 0 and not np.any(alpha_array)
