"""Test data generators for dbclip tests."""

import io
import random
import string
from typing import Tuple

from PIL import Image


def generate_random_text(length: int = 100) -> str:
    """Generate random text data."""
    return ''.join(random.choices(string.ascii_letters + string.digits + ' \n', k=length))


def generate_image(color: Tuple[int, int, int] = (255, 0, 0), size: Tuple[int, int] = (16, 8)) -> Image.Image:
    """Create a solid RGB image."""
    return Image.new('RGB', size, color)


def generate_random_image(width: int = 32, height: int = 32) -> Image.Image:
    """Create an RGB image with random pixels."""
    img = Image.new('RGB', (width, height))
    img.putdata([
        (random.randint(0, 255), random.randint(0, 255), random.randint(0, 255))
        for _ in range(width * height)
    ])
    return img


def image_to_dib(image: Image.Image) -> bytes:
    """
    Encode an image the way CF_DIB carries it.

    A packed DIB is a BMP file without the 14-byte file header.
    """
    buffer = io.BytesIO()
    image.save(buffer, format='BMP')
    return buffer.getvalue()[14:]
