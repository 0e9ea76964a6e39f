"""Mesh primitive -> Geometry conversion."""

import re

import numpy as np

from .accessors import bytes_per_component
from .document import attribute_items, field
from .logger import get_logger
from .scene import Geometry, GeometryElement, GeometrySource, Morpher, PrimitiveType, Semantic

logger = get_logger(__name__)

PRIMITIVE_MODES = {
    0: PrimitiveType.POINT,
    1: PrimitiveType.LINE,
    2: PrimitiveType.LINE_LOOP,
    3: PrimitiveType.LINE_STRIP,
    4: PrimitiveType.TRIANGLES,
    5: PrimitiveType.TRIANGLE_STRIP,
    6: PrimitiveType.TRIANGLE_FAN,
}

FIXED_SEMANTICS = {
    "POSITION": Semantic.VERTEX,
    "NORMAL": Semantic.NORMAL,
    "TANGENT": Semantic.TANGENT,
    "COLOR": Semantic.COLOR,
    "JOINTS_0": Semantic.BONE_INDICES,
    "WEIGHTS_0": Semantic.BONE_WEIGHTS,
}

TEXCOORD_RE = re.compile(r"^TEXCOORD_\d+$")
COLOR_RE = re.compile(r"^COLOR_\d+$")


def source_semantic(name):
    """Map a glTF attribute name onto a geometry source semantic.

    Unknown names map to ``Semantic.VERTEX``.
    """
    if name in FIXED_SEMANTICS:
        return FIXED_SEMANTICS[name]
    if TEXCOORD_RE.match(name):
        return Semantic.TEXCOORD
    if COLOR_RE.match(name):
        return Semantic.COLOR
    return Semantic.VERTEX


def primitive_type(mode):
    if mode is None:
        return PrimitiveType.TRIANGLES
    return PRIMITIVE_MODES.get(mode, PrimitiveType.TRIANGLES)


def primitive_count(kind, count):
    """Number of primitives ``count`` indices (or vertices) assemble into."""
    if kind == PrimitiveType.TRIANGLES:
        return count // 3
    if kind in (PrimitiveType.TRIANGLE_STRIP, PrimitiveType.TRIANGLE_FAN):
        return max(count - 2, 0)
    if kind == PrimitiveType.LINE:
        return count // 2
    return count


class GeometryBuilder:
    def __init__(self, reader, materials=None):
        self.reader = reader
        self.materials = materials

    def build(self, primitive, weights=None):
        """
        Convert one mesh primitive.

        Args:
            primitive: pygltflib Primitive
            weights: default morph weights from the node or mesh, if any

        Returns:
            Geometry with sources, a single element, material and morpher
        """
        sources = self.load_sources(field(primitive, "attributes"))
        element = self.geometry_element(primitive, sources)
        geometry = Geometry(sources=sources, elements=[element])

        material_index = field(primitive, "material")
        if material_index is not None and self.materials is not None:
            geometry.material = self.materials.material(material_index)

        targets = field(primitive, "targets", [])
        if targets:
            morpher = Morpher(calculation_mode="additive")
            for target in targets:
                morpher.targets.append(self.load_sources(target))
            morpher.weights = self._initial_weights(weights, len(targets))
            geometry.morpher = morpher

        return geometry

    def geometry_element(self, primitive, sources=None):
        kind = primitive_type(field(primitive, "mode"))
        indices_index = field(primitive, "indices")

        if indices_index is None:
            # Non-indexed draw: count follows the POSITION stream
            position = next((s for s in sources or [] if s.name == "POSITION"), None)
            count = position.vector_count if position is not None else 0
            return GeometryElement(
                indices=None,
                primitive_type=kind,
                primitive_count=primitive_count(kind, count),
            )

        accessor = self.reader.accessor(indices_index)
        indices = self.reader.read(indices_index).reshape(-1)
        return GeometryElement(
            indices=indices,
            primitive_type=kind,
            primitive_count=primitive_count(kind, len(indices)),
            bytes_per_index=bytes_per_component(accessor),
        )

    def load_sources(self, attributes):
        geometry_sources = []
        for name, accessor_index in attribute_items(attributes):
            accessor = self.reader.accessor(accessor_index)
            data = self.reader.read(accessor_index)
            ncomp = 1 if data.ndim == 1 else int(np.prod(data.shape[1:]))

            geometry_sources.append(GeometrySource(
                semantic=source_semantic(name),
                name=name,
                data=data,
                vector_count=len(data),
                components_per_vector=ncomp,
                bytes_per_component=bytes_per_component(accessor),
                uses_float_components=data.dtype.kind == "f",
                normalized=bool(field(accessor, "normalized", False)),
            ))
        return geometry_sources

    @staticmethod
    def _initial_weights(weights, target_count):
        if weights and len(weights) == target_count:
            return [float(w) for w in weights]
        if weights:
            logger.warning(f"Ignoring {len(weights)} default weights for {target_count} morph targets")
        return [0.0] * target_count
