"""Buffer payload resolution and the per-conversion cache."""

import base64
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict
from urllib.parse import unquote_to_bytes

from .document import field, resolve
from .errors import GLTFConversionError, OutOfRangeRead, ResourceUnavailable
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class ConversionCache:
    """Payloads loaded during one conversion, keyed by document index."""

    buffers: Dict[int, bytes] = dataclass_field(default_factory=dict)
    images: Dict[int, Any] = dataclass_field(default_factory=dict)
    failed_buffers: Dict[int, ResourceUnavailable] = dataclass_field(default_factory=dict)

    def clear(self):
        self.buffers.clear()
        self.images.clear()
        self.failed_buffers.clear()


def decode_data_uri(uri):
    """Return the payload of a ``data:`` URI."""
    header, _, payload = uri.partition(",")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload)
        except ValueError as e:
            raise ResourceUnavailable(f"invalid base64 data URI: {e}") from e
    return unquote_to_bytes(payload)


def load_uri(uri, byte_loader, base_directory):
    if uri.startswith("data:"):
        return decode_data_uri(uri)
    try:
        return bytes(byte_loader.load(uri, base_directory))
    except GLTFConversionError:
        raise
    except (OSError, ValueError) as e:
        raise ResourceUnavailable(f"cannot load {uri!r}: {e}") from e


class BufferResolver:
    def __init__(self, document, byte_loader, base_directory, cache):
        self.document = document
        self.byte_loader = byte_loader
        self.base_directory = base_directory
        self.cache = cache

    def resolve(self, index):
        """Return the bytes of buffer ``index``, loading them at most once."""
        if index in self.cache.buffers:
            return self.cache.buffers[index]
        if index in self.cache.failed_buffers:
            raise self.cache.failed_buffers[index]

        buffer = resolve(self.document.buffers, index, "buffer")
        if buffer is None:
            raise ResourceUnavailable("bufferView does not name a buffer")

        try:
            data = self._load(index, buffer)
        except ResourceUnavailable as e:
            # Failed sources are not retried within a conversion
            self.cache.failed_buffers[index] = e
            raise

        byte_length = field(buffer, "byteLength")
        if byte_length is not None and len(data) < byte_length:
            logger.warning(f"Buffer {index} holds {len(data)} bytes, expected {byte_length}")

        self.cache.buffers[index] = data
        logger.debug(f"Resolved buffer {index} ({len(data)} bytes)")
        return data

    def _load(self, index, buffer):
        uri = field(buffer, "uri")
        if uri is None:
            # GLB binary chunk
            data = self.document.binary_blob()
            if data is None:
                raise ResourceUnavailable(f"buffer {index} has no uri and no GLB binary chunk")
            return bytes(data)
        return load_uri(uri, self.byte_loader, self.base_directory)

    def buffer_view_bytes(self, index):
        """Return the byte window addressed by bufferView ``index``."""
        view = resolve(self.document.bufferViews, index, "bufferView")
        data = self.resolve(field(view, "buffer"))
        start = field(view, "byteOffset", 0)
        end = start + field(view, "byteLength", len(data) - start)
        if end > len(data):
            raise OutOfRangeRead(
                f"bufferView {index} spans bytes {start}..{end} of a {len(data)} byte buffer")
        return data[start:end]
