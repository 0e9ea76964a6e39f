"""Default byte-loader and image-decoder collaborators."""

import io
import os
from urllib.parse import unquote

from PIL import Image

from .errors import ResourceUnavailable
from .logger import get_logger

logger = get_logger(__name__)


class FileByteLoader:
    """Loads URIs as files relative to the document's directory."""

    def load(self, uri, base_directory=None):
        path = unquote(uri)
        if base_directory and not os.path.isabs(path):
            path = os.path.join(base_directory, path)

        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ResourceUnavailable(f"cannot read {uri!r}: {e}") from e

        logger.debug(f"Loaded {len(data)} bytes from {path}")
        return data


class PillowImageDecoder:
    """Decodes image payloads with Pillow."""

    def decode(self, data):
        try:
            with Image.open(io.BytesIO(data)) as im:
                image = im.convert("RGBA")
        except (OSError, ValueError) as e:
            raise ResourceUnavailable(f"cannot decode image: {e}") from e
        return image

    def channel(self, image, index):
        """Split one channel (0=R, 1=G, 2=B, 3=A) out as a grayscale image."""
        return image.convert("RGBA").getchannel(index)
