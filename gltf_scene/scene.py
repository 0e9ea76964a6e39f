"""Render-engine agnostic scene graph produced by the converter."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


class Semantic(str, Enum):
    VERTEX = "vertex"
    NORMAL = "normal"
    TANGENT = "tangent"
    COLOR = "color"
    TEXCOORD = "texcoord"
    BONE_INDICES = "bone_indices"
    BONE_WEIGHTS = "bone_weights"


class PrimitiveType(str, Enum):
    POINT = "point"
    LINE = "line"
    LINE_LOOP = "line_loop"
    LINE_STRIP = "line_strip"
    TRIANGLES = "triangles"
    TRIANGLE_STRIP = "triangle_strip"
    TRIANGLE_FAN = "triangle_fan"


class LightingModel(str, Enum):
    BLINN = "blinn"
    PHYSICALLY_BASED = "physically_based"


class WrapMode(str, Enum):
    CLAMP = "clamp"
    REPEAT = "repeat"
    MIRROR = "mirror"


class FilterMode(str, Enum):
    NONE = "none"
    NEAREST = "nearest"
    LINEAR = "linear"


class ColorComponent(str, Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    ALPHA = "alpha"


@dataclass
class GeometrySource:
    semantic: Semantic
    name: str
    data: np.ndarray
    vector_count: int
    components_per_vector: int
    bytes_per_component: int
    uses_float_components: bool = True
    normalized: bool = False


@dataclass
class GeometryElement:
    indices: Optional[np.ndarray]
    primitive_type: PrimitiveType
    primitive_count: int
    bytes_per_index: int = 0


@dataclass
class Morpher:
    targets: List[List[GeometrySource]] = field(default_factory=list)
    calculation_mode: str = "additive"
    weights: List[float] = field(default_factory=list)


@dataclass
class MaterialProperty:
    """One texturable material channel (diffuse, normal, ...)."""

    contents: Any = None
    intensity: float = 1.0
    texture_component: Optional[ColorComponent] = None
    texcoord: int = 0
    wrap_s: WrapMode = WrapMode.CLAMP
    wrap_t: WrapMode = WrapMode.CLAMP
    min_filter: FilterMode = FilterMode.NONE
    mag_filter: FilterMode = FilterMode.NONE
    mip_filter: FilterMode = FilterMode.NONE

    @property
    def is_texture(self):
        return self.contents is not None and not isinstance(self.contents, (tuple, list, float, int))


@dataclass
class Material:
    name: Optional[str] = None
    lighting_model: LightingModel = LightingModel.BLINN
    double_sided: bool = False
    alpha_mode: str = "OPAQUE"
    alpha_cutoff: Optional[float] = None
    diffuse: MaterialProperty = field(default_factory=MaterialProperty)
    metalness: MaterialProperty = field(default_factory=MaterialProperty)
    roughness: MaterialProperty = field(default_factory=MaterialProperty)
    normal: MaterialProperty = field(default_factory=MaterialProperty)
    normal_scale: float = 1.0
    ambient_occlusion: MaterialProperty = field(default_factory=MaterialProperty)
    emission: MaterialProperty = field(default_factory=MaterialProperty)


@dataclass
class Geometry:
    sources: List[GeometrySource] = field(default_factory=list)
    elements: List[GeometryElement] = field(default_factory=list)
    material: Optional[Material] = None
    morpher: Optional[Morpher] = None

    def source(self, semantic):
        for source in self.sources:
            if source.semantic == semantic:
                return source
        return None

    def attribute(self, name):
        for source in self.sources:
            if source.name == name:
                return source
        return None


@dataclass
class Camera:
    name: Optional[str] = None
    projection: str = "perspective"
    z_near: float = 0.01
    z_far: Optional[float] = None
    field_of_view: Optional[float] = None  # vertical, degrees
    aspect_ratio: Optional[float] = None
    x_mag: Optional[float] = None
    y_mag: Optional[float] = None

    @property
    def uses_orthographic_projection(self):
        return self.projection == "orthographic"


@dataclass
class KeyframeTrack:
    """(time, value) samples for one animatable key path.

    ``key_times`` are fractions of ``duration`` in [0, 1].
    """

    key_path: str
    key_times: np.ndarray
    values: np.ndarray
    duration: float
    interpolation: str = "LINEAR"
    repeat_count: float = math.inf
    in_tangents: Optional[np.ndarray] = None
    out_tangents: Optional[np.ndarray] = None
    animation: Optional[str] = None

    def absolute_times(self):
        return self.key_times * self.duration


@dataclass
class AnimationGroup:
    tracks: List[KeyframeTrack] = field(default_factory=list)
    duration: float = 0.0
    repeat_count: float = math.inf

    @property
    def paths(self):
        return sorted({track.key_path for track in self.tracks})

    def tracks_for(self, key_path):
        return [track for track in self.tracks if track.key_path == key_path]


@dataclass
class SceneNode:
    name: Optional[str] = None
    index: Optional[int] = None
    transform: np.ndarray = field(default_factory=lambda: np.identity(4))
    children: List["SceneNode"] = field(default_factory=list)
    geometries: List[Geometry] = field(default_factory=list)
    camera: Optional[Camera] = None
    skin: Optional[int] = None
    animation: Optional[AnimationGroup] = None

    def add_child(self, node):
        self.children.append(node)
        return node

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def world_transforms(self, parent=None):
        """Yield (node, world matrix) pairs for this subtree."""
        world = self.transform if parent is None else parent @ self.transform
        yield self, world
        for child in self.children:
            yield from child.world_transforms(world)

    def position(self):
        return tuple(float(v) for v in self.transform[:3, 3])


@dataclass
class Scene:
    name: Optional[str] = None
    root: SceneNode = field(default_factory=SceneNode)
    nodes: List[SceneNode] = field(default_factory=list)
    materials: Dict[int, Material] = field(default_factory=dict)

    def find(self, name) -> Optional[SceneNode]:
        for node in self.root.walk():
            if node.name == name:
                return node
        return None

    def animated_nodes(self) -> List[SceneNode]:
        return [node for node in self.nodes if node.animation is not None]

    def bounds(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """World-space axis aligned bounds of every vertex position."""
        lo, hi = None, None
        for node, world in self.root.world_transforms():
            for geometry in node.geometries:
                source = geometry.attribute("POSITION")
                if source is None or source.data.ndim != 2 or source.data.shape[1] != 3:
                    continue
                if len(source.data) == 0:
                    continue
                pts = np.hstack([source.data.astype(np.float64), np.ones((len(source.data), 1))])
                pts = (world @ pts.T).T[:, :3]
                lo = pts.min(axis=0) if lo is None else np.minimum(lo, pts.min(axis=0))
                hi = pts.max(axis=0) if hi is None else np.maximum(hi, pts.max(axis=0))
        if lo is None:
            return None
        return lo, hi
