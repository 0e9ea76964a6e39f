"""Typed array decoding for glTF accessors."""

import numpy as np

from .document import field, resolve
from .errors import OutOfRangeRead, UnsupportedAccessorLayout
from .logger import get_logger

logger = get_logger(__name__)

# componentType -> little endian numpy dtype
DTYPE_MAP = {
    5120: np.dtype("<i1"),  # BYTE
    5121: np.dtype("<u1"),  # UNSIGNED_BYTE
    5122: np.dtype("<i2"),  # SHORT
    5123: np.dtype("<u2"),  # UNSIGNED_SHORT
    5124: np.dtype("<i4"),  # INT
    5125: np.dtype("<u4"),  # UNSIGNED_INT
    5126: np.dtype("<f4"),  # FLOAT
}

TYPE_MAP = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}

# Matrix layouts that need column padding rules the decoder does not implement
UNSUPPORTED_TYPES = ("MAT2", "MAT3")


def components(accessor):
    accessor_type = field(accessor, "type")
    if accessor_type not in TYPE_MAP:
        raise UnsupportedAccessorLayout(f"unknown accessor type {accessor_type!r}")
    return TYPE_MAP[accessor_type]


def component_dtype(accessor):
    component_type = field(accessor, "componentType")
    if component_type not in DTYPE_MAP:
        raise UnsupportedAccessorLayout(f"unknown componentType {component_type!r}")
    return DTYPE_MAP[component_type]


def bytes_per_component(accessor):
    return component_dtype(accessor).itemsize


def element_size(accessor):
    return components(accessor) * bytes_per_component(accessor)


def check_supported(accessor):
    accessor_type = field(accessor, "type")
    if accessor_type in UNSUPPORTED_TYPES:
        raise UnsupportedAccessorLayout(f"{accessor_type} accessors are not supported")


def _layout(accessor, buffer_view):
    check_supported(accessor)

    dtype = component_dtype(accessor)
    ncomp = components(accessor)
    size = ncomp * dtype.itemsize

    stride = field(buffer_view, "byteStride") or size
    if stride < size:
        raise UnsupportedAccessorLayout(
            f"byteStride {stride} is smaller than the element size {size}")

    start = field(buffer_view, "byteOffset", 0) + field(accessor, "byteOffset", 0)
    return dtype, ncomp, size, stride, start


def _shape(accessor, count, ncomp):
    if field(accessor, "type") == "SCALAR":
        return (count,)
    if field(accessor, "type") == "MAT4":
        return (count, 4, 4)
    return (count, ncomp)


def _check_range(start, stride, size, count, length):
    end = start + stride * (count - 1) + size if count else start
    if start < 0 or end > length:
        raise OutOfRangeRead(
            f"accessor reads bytes {start}..{end} of a {length} byte buffer")


def decode(accessor, buffer_view, data):
    """
    Decode ``accessor.count`` elements out of ``data``.

    Args:
        accessor: pygltflib Accessor (or dict with the same keys)
        buffer_view: the BufferView the accessor points into
        data: the bytes of the buffer the view points into

    Returns:
        numpy array of shape (count,), (count, n) or (count, 4, 4) for MAT4
    """
    dtype, ncomp, size, stride, start = _layout(accessor, buffer_view)
    count = field(accessor, "count", 0)
    _check_range(start, stride, size, count, len(data))
    if count == 0:
        return np.zeros(_shape(accessor, 0, ncomp), dtype=dtype)

    arr = np.ndarray(
        shape=(count, ncomp),
        dtype=dtype,
        buffer=data,
        offset=start,
        strides=(stride, dtype.itemsize),
    ).copy()

    if field(accessor, "type") == "MAT4":
        # glTF stores matrices column-major
        return arr.reshape(count, 4, 4).transpose(0, 2, 1).copy()
    return arr.reshape(_shape(accessor, count, ncomp))


def encode(values, accessor, buffer_view, data):
    """Write ``values`` into ``data`` (a bytearray) using the accessor layout."""
    dtype, ncomp, size, stride, start = _layout(accessor, buffer_view)
    count = field(accessor, "count", 0)
    _check_range(start, stride, size, count, len(data))

    values = np.asarray(values, dtype=dtype)
    if field(accessor, "type") == "MAT4":
        values = values.transpose(0, 2, 1)
    values = values.reshape(count, ncomp)

    target = np.ndarray(
        shape=(count, ncomp),
        dtype=dtype,
        buffer=data,
        offset=start,
        strides=(stride, dtype.itemsize),
    )
    target[...] = values
    return data


def normalize(values, accessor):
    """Convert normalized integer data to floats following the glTF rules."""
    arr = np.asarray(values)
    if not field(accessor, "normalized", False) or arr.dtype.kind == "f":
        return arr.astype(np.float32)
    info = np.iinfo(arr.dtype)
    if info.min == 0:
        return (arr / info.max).astype(np.float32)
    return np.maximum(arr / info.max, -1.0).astype(np.float32)


class AccessorReader:
    """Reads accessors of one document, resolving buffers through ``buffers``."""

    def __init__(self, document, buffers):
        self.document = document
        self.buffers = buffers

    def accessor(self, index):
        return resolve(self.document.accessors, index, "accessor")

    def read(self, index):
        accessor = self.accessor(index)
        if accessor is None:
            return None
        check_supported(accessor)

        view_index = field(accessor, "bufferView")
        if view_index is None:
            # No bufferView: the accessor is all zeros (optionally patched by sparse)
            dtype = component_dtype(accessor)
            count = field(accessor, "count", 0)
            values = np.zeros(_shape(accessor, count, components(accessor)), dtype=dtype)
        else:
            buffer_view = resolve(self.document.bufferViews, view_index, "bufferView")
            data = self.buffers.resolve(field(buffer_view, "buffer"))
            values = decode(accessor, buffer_view, data)

        sparse = field(accessor, "sparse")
        if sparse is not None:
            values = self._apply_sparse(accessor, values, sparse)
        return values

    def read_float(self, index):
        values = self.read(index)
        if values is None:
            return None
        return normalize(values, self.accessor(index))

    def _apply_sparse(self, accessor, values, sparse):
        count = field(sparse, "count", 0)
        indices_info = field(sparse, "indices")
        values_info = field(sparse, "values")

        index_accessor = {
            "componentType": field(indices_info, "componentType"),
            "type": "SCALAR",
            "count": count,
            "byteOffset": field(indices_info, "byteOffset", 0),
        }
        value_accessor = {
            "componentType": field(accessor, "componentType"),
            "type": field(accessor, "type"),
            "count": count,
            "byteOffset": field(values_info, "byteOffset", 0),
        }

        index_view = resolve(self.document.bufferViews,
                             field(indices_info, "bufferView"), "bufferView")
        value_view = resolve(self.document.bufferViews,
                             field(values_info, "bufferView"), "bufferView")
        sparse_indices = decode(index_accessor, index_view,
                                self.buffers.resolve(field(index_view, "buffer")))
        sparse_values = decode(value_accessor, value_view,
                               self.buffers.resolve(field(value_view, "buffer")))

        if count and sparse_indices.max() >= len(values):
            raise OutOfRangeRead(
                f"sparse index {int(sparse_indices.max())} exceeds accessor count {len(values)}")

        patched = values.copy()
        patched[sparse_indices.astype(np.int64)] = sparse_values
        logger.debug(f"Applied {count} sparse substitutions")
        return patched
