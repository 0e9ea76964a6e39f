"""glTF document -> Scene conversion pipeline."""

from dataclasses import dataclass
from typing import Any, Optional

from .accessors import AccessorReader
from .animation import AnimationBuilder
from .buffers import BufferResolver, ConversionCache
from .document import base_directory, field, load_document, resolve
from .geometry import GeometryBuilder
from .loaders import FileByteLoader, PillowImageDecoder
from .logger import get_logger
from .materials import MaterialResolver
from .nodes import BuildState, NodeGraphBuilder
from .scene import Scene

logger = get_logger(__name__)


@dataclass
class ConversionOptions:
    """Settings for SceneConverter.

    ``byte_loader`` and ``image_decoder`` default to FileByteLoader and
    PillowImageDecoder when left as None.
    """

    scene_index: Optional[int] = None
    split_metallic_roughness: bool = False
    byte_loader: Any = None
    image_decoder: Any = None


class SceneConverter:
    def __init__(self, options=None):
        self.options = options or ConversionOptions()
        self.byte_loader = self.options.byte_loader or FileByteLoader()
        self.image_decoder = self.options.image_decoder or PillowImageDecoder()

    def convert(self, document, directory=None) -> Scene:
        """
        Convert a pygltflib document into a Scene.

        Args:
            document: pygltflib GLTF2
            directory: location of resources referenced by relative URIs

        Returns:
            Scene whose root holds the converted scene nodes
        """
        scene = Scene()
        scene_index = self._scene_index(document)
        gltf_scene = resolve(document.scenes, scene_index, "scene") if document.scenes else None
        if gltf_scene is None:
            logger.info("Document has no scene to convert")
            return scene
        scene.name = field(gltf_scene, "name")

        cache = ConversionCache()
        state = BuildState()
        try:
            buffers = BufferResolver(document, self.byte_loader, directory, cache)
            reader = AccessorReader(document, buffers)
            materials = MaterialResolver(
                document, buffers, self.image_decoder, cache,
                split_metallic_roughness=self.options.split_metallic_roughness,
            )
            builder = NodeGraphBuilder(document, GeometryBuilder(reader, materials), state)

            for node_index in field(gltf_scene, "nodes", []):
                scene.root.add_child(builder.build(node_index))

            AnimationBuilder(document, reader, state).build()

            scene.nodes = list(state.order)
            scene.materials = dict(materials.resolved)
        finally:
            cache.clear()

        logger.info(
            f"Converted scene {scene.name!r}: {len(scene.nodes)} nodes, "
            f"{len(scene.animated_nodes())} animated"
        )
        return scene

    def convert_file(self, path) -> Scene:
        document = load_document(path)
        return self.convert(document, base_directory(path))

    def _scene_index(self, document):
        if self.options.scene_index is not None:
            return self.options.scene_index
        if document.scene is not None:
            return document.scene
        return 0


def convert(document, directory=None, options=None) -> Scene:
    return SceneConverter(options).convert(document, directory)


def convert_file(path, options=None) -> Scene:
    return SceneConverter(options).convert_file(path)
