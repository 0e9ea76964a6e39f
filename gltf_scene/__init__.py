"""Convert glTF 2.0 assets into a render-engine agnostic scene graph."""

from .converter import ConversionOptions, SceneConverter, convert, convert_file
from .errors import (
    ChannelDataCountMismatch,
    CyclicNodeGraph,
    GLTFConversionError,
    OutOfRangeRead,
    ResourceUnavailable,
    UnresolvedReference,
    UnsupportedAccessorLayout,
)
from .scene import Scene, SceneNode

__version__ = "0.1.0"
