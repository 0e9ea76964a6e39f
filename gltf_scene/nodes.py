"""Recursive glTF node -> SceneNode conversion."""

import math
from dataclasses import dataclass, field as dataclass_field
from typing import Dict, List

import numpy as np

from .document import field, resolve
from .errors import CyclicNodeGraph, GLTFConversionError
from .logger import get_logger
from .scene import Camera, SceneNode

logger = get_logger(__name__)


@dataclass(frozen=True)
class MorphWeightPath:
    """Addresses one morph target weight below an animated node."""

    geometry_index: int
    target_index: int

    @property
    def key_path(self):
        return f"geometries[{self.geometry_index}].morpher.weights[{self.target_index}]"

    def __str__(self):
        return self.key_path


@dataclass
class BuildState:
    """Intermediate tables of one conversion, discarded once it returns."""

    nodes: Dict[int, SceneNode] = dataclass_field(default_factory=dict)
    weight_paths: Dict[int, List[MorphWeightPath]] = dataclass_field(default_factory=dict)
    order: List[SceneNode] = dataclass_field(default_factory=list)


def mat4_translation(t):
    m = np.identity(4)
    m[:3, 3] = t
    return m


def mat4_scale(s):
    return np.diag([s[0], s[1], s[2], 1.0])


def mat4_rotation_from_quaternion(q):
    x, y, z, w = q

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    return np.array([
        [1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy), 0.0],
        [2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx), 0.0],
        [2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy), 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def mat4_from_gltf(matrix):
    if len(matrix) != 16:
        raise GLTFConversionError("Invalid node.matrix, expected 16 numbers")
    # glTF matrices are column-major
    return np.array(matrix, dtype=np.float64).reshape(4, 4).T


def bake_transform(node):
    """
    Bake a node's matrix and TRS into one matrix.

    M = Matrix * Translate * Rotate * Scale, Matrix defaulting to identity.
    """
    matrix = field(node, "matrix")
    m = mat4_from_gltf(matrix) if matrix is not None else np.identity(4)

    translation = field(node, "translation", [0.0, 0.0, 0.0])
    rotation = field(node, "rotation", [0.0, 0.0, 0.0, 1.0])
    scale = field(node, "scale", [1.0, 1.0, 1.0])
    if len(translation) != 3 or len(rotation) != 4 or len(scale) != 3:
        raise GLTFConversionError("Invalid node TRS fields")

    m = m @ mat4_translation(translation)
    m = m @ mat4_rotation_from_quaternion(rotation)
    m = m @ mat4_scale(scale)
    return m


def build_camera(gltf_camera):
    camera = Camera(name=field(gltf_camera, "name"))
    camera_type = field(gltf_camera, "type")

    if camera_type == "perspective":
        perspective = field(gltf_camera, "perspective")
        camera.projection = "perspective"
        camera.z_near = float(field(perspective, "znear", camera.z_near))
        camera.z_far = field(perspective, "zfar")
        yfov = field(perspective, "yfov")
        if yfov is not None:
            camera.field_of_view = math.degrees(yfov)
        camera.aspect_ratio = field(perspective, "aspectRatio")
    elif camera_type == "orthographic":
        orthographic = field(gltf_camera, "orthographic")
        camera.projection = "orthographic"
        camera.z_near = float(field(orthographic, "znear", camera.z_near))
        camera.z_far = field(orthographic, "zfar")
        camera.x_mag = field(orthographic, "xmag")
        camera.y_mag = field(orthographic, "ymag")
    else:
        logger.warning(f"Camera {camera.name!r} has unknown type {camera_type!r}")

    return camera


class NodeGraphBuilder:
    def __init__(self, document, geometry, state=None):
        self.document = document
        self.geometry = geometry
        self.state = state if state is not None else BuildState()
        self._active = []

    def build(self, index):
        """Build node ``index`` and its subtree."""
        if index in self._active:
            raise CyclicNodeGraph(index, self._active)

        node = resolve(self.document.nodes, index, "node")
        scene_node = SceneNode(name=field(node, "name"), index=index)

        self.construct_camera(node, scene_node)
        self.geometry_node(node, scene_node)
        self.state.weight_paths[index] = self.morph_weight_paths(scene_node)

        skin = field(node, "skin")
        if skin is not None:
            # Skin deformation is not converted, only the reference is kept
            scene_node.skin = skin
            logger.debug(f"Node {index} references skin {skin}; deformation is not converted")

        scene_node.transform = bake_transform(node)

        if index in self.state.nodes:
            logger.debug(f"Node {index} is instanced more than once")
        else:
            self.state.nodes[index] = scene_node
        self.state.order.append(scene_node)

        self._active.append(index)
        try:
            for child_index in field(node, "children", []):
                scene_node.add_child(self.build(child_index))
        finally:
            self._active.pop()

        return scene_node

    def construct_camera(self, node, scene_node):
        try:
            gltf_camera = resolve(self.document.cameras, field(node, "camera"), "camera")
        except GLTFConversionError as e:
            logger.warning(f"Skipping camera: {e}")
            return
        if gltf_camera is not None:
            scene_node.camera = build_camera(gltf_camera)

    def geometry_node(self, node, scene_node):
        try:
            mesh = resolve(self.document.meshes, field(node, "mesh"), "mesh")
        except GLTFConversionError as e:
            logger.warning(f"Skipping mesh: {e}")
            return
        if mesh is None:
            return

        if scene_node.name is None:
            scene_node.name = field(mesh, "name")
        weights = field(node, "weights") or field(mesh, "weights")

        for i, primitive in enumerate(field(mesh, "primitives", [])):
            try:
                scene_node.geometries.append(self.geometry.build(primitive, weights))
            except GLTFConversionError as e:
                logger.warning(f"Skipping primitive {i} of mesh {scene_node.name!r}: {e}")

    @staticmethod
    def morph_weight_paths(scene_node):
        paths = []
        for i, geometry in enumerate(scene_node.geometries):
            if geometry.morpher is None:
                continue
            for j in range(len(geometry.morpher.targets)):
                paths.append(MorphWeightPath(i, j))
        return paths
