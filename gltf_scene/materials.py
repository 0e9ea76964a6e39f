"""glTF material/texture/sampler -> generic Material conversion."""

from .buffers import load_uri
from .document import field, resolve
from .errors import GLTFConversionError, ResourceUnavailable
from .logger import get_logger
from .scene import ColorComponent, FilterMode, LightingModel, Material, WrapMode

logger = get_logger(__name__)

WRAP_MODES = {
    33071: WrapMode.CLAMP,   # CLAMP_TO_EDGE
    10497: WrapMode.REPEAT,  # REPEAT
    33648: WrapMode.MIRROR,  # MIRRORED_REPEAT
}

MAG_FILTERS = {
    9728: FilterMode.NEAREST,
    9729: FilterMode.LINEAR,
}

# minFilter -> (filter, mip filter)
MIN_FILTERS = {
    9728: (FilterMode.NEAREST, FilterMode.NONE),     # NEAREST
    9729: (FilterMode.LINEAR, FilterMode.NONE),      # LINEAR
    9984: (FilterMode.NEAREST, FilterMode.NEAREST),  # NEAREST_MIPMAP_NEAREST
    9985: (FilterMode.LINEAR, FilterMode.NEAREST),   # LINEAR_MIPMAP_NEAREST
    9986: (FilterMode.NEAREST, FilterMode.LINEAR),   # NEAREST_MIPMAP_LINEAR
    9987: (FilterMode.LINEAR, FilterMode.LINEAR),    # LINEAR_MIPMAP_LINEAR
}

DEFAULT_BASE_COLOR = (1.0, 1.0, 1.0, 1.0)
DEFAULT_EMISSION = (1.0, 1.0, 1.0)


def wrap_mode(value):
    if value is None:
        return WrapMode.REPEAT
    return WRAP_MODES.get(value, WrapMode.REPEAT)


def mag_filter(value):
    return MAG_FILTERS.get(value, FilterMode.NONE)


def min_filter(value):
    return MIN_FILTERS.get(value, (FilterMode.NONE, FilterMode.NONE))


class MaterialResolver:
    """Resolves material indices of one document into Material objects.

    Images are decoded through ``image_decoder`` once per image index and kept
    in ``cache.images`` for the lifetime of the conversion.
    """

    def __init__(self, document, buffers, image_decoder, cache,
                 split_metallic_roughness=False):
        self.document = document
        self.buffers = buffers
        self.image_decoder = image_decoder
        self.cache = cache
        self.split_metallic_roughness = split_metallic_roughness
        self.resolved = {}

    def material(self, index):
        if index in self.resolved:
            return self.resolved[index]

        try:
            gltf_material = resolve(self.document.materials, index, "material")
        except GLTFConversionError as e:
            logger.warning(f"Using default material: {e}")
            return Material()
        if gltf_material is None:
            return Material()

        material = self._build(gltf_material)
        self.resolved[index] = material
        return material

    def _build(self, gltf_material):
        material = Material(name=field(gltf_material, "name"))
        material.double_sided = bool(field(gltf_material, "doubleSided", False))
        material.alpha_mode = field(gltf_material, "alphaMode", "OPAQUE")
        material.alpha_cutoff = field(gltf_material, "alphaCutoff")

        pbr = field(gltf_material, "pbrMetallicRoughness")
        if pbr is not None:
            material.lighting_model = LightingModel.PHYSICALLY_BASED
            self._apply_pbr(pbr, material)

        normal_info = field(gltf_material, "normalTexture")
        if normal_info is not None:
            self.load_texture(field(normal_info, "index"), material.normal, normal_info)
            material.normal_scale = float(field(normal_info, "scale", 1.0))

        occlusion_info = field(gltf_material, "occlusionTexture")
        if occlusion_info is not None:
            self.load_texture(field(occlusion_info, "index"), material.ambient_occlusion, occlusion_info)
            material.ambient_occlusion.intensity = float(field(occlusion_info, "strength", 1.0))

        emissive_info = field(gltf_material, "emissiveTexture")
        if emissive_info is not None:
            self.load_texture(field(emissive_info, "index"), material.emission, emissive_info)
        else:
            color = field(gltf_material, "emissiveFactor", [])
            if len(color) < 3:
                color = DEFAULT_EMISSION
            material.emission.contents = (float(color[0]), float(color[1]), float(color[2]), 1.0)

        return material

    def _apply_pbr(self, pbr, material):
        base_info = field(pbr, "baseColorTexture")
        if base_info is not None:
            self.load_texture(field(base_info, "index"), material.diffuse, base_info)
        else:
            color = field(pbr, "baseColorFactor", [])
            if len(color) < 4:
                color = DEFAULT_BASE_COLOR
            material.diffuse.contents = tuple(float(c) for c in color[:4])

        mr_info = field(pbr, "metallicRoughnessTexture")
        if mr_info is None:
            material.metalness.intensity = float(field(pbr, "metallicFactor", 1.0))
            material.roughness.intensity = float(field(pbr, "roughnessFactor", 1.0))
        elif self.split_metallic_roughness:
            self._split_metallic_roughness(field(mr_info, "index"), material, mr_info)
        else:
            material.metalness.texture_component = ColorComponent.BLUE
            material.roughness.texture_component = ColorComponent.GREEN
            self.load_texture(field(mr_info, "index"), material.metalness, mr_info)
            self.load_texture(field(mr_info, "index"), material.roughness, mr_info)

    def _split_metallic_roughness(self, texture_index, material, texture_info):
        """Packed metallic/roughness texture as two single-channel images."""
        texture = self._texture(texture_index)
        if texture is None:
            return

        for prop in (material.roughness, material.metalness):
            self.load_sampler(field(texture, "sampler"), prop)
            prop.texcoord = int(field(texture_info, "texCoord", 0))

        image = self.image(field(texture, "source"))
        if image is None:
            return
        try:
            material.roughness.contents = self.image_decoder.channel(image, 1)
            material.metalness.contents = self.image_decoder.channel(image, 2)
        except (GLTFConversionError, OSError, ValueError) as e:
            logger.warning(f"Cannot split metallic/roughness texture {texture_index}: {e}")

    def _texture(self, index):
        try:
            return resolve(self.document.textures, index, "texture")
        except GLTFConversionError as e:
            logger.warning(f"Skipping texture: {e}")
            return None

    def load_texture(self, index, prop, texture_info=None):
        texture = self._texture(index)
        if texture is None:
            return
        source = field(texture, "source")
        if source is not None:
            prop.contents = self.image(source)
        prop.texcoord = int(field(texture_info, "texCoord", 0))
        self.load_sampler(field(texture, "sampler"), prop)

    def load_sampler(self, sampler_index, prop):
        try:
            sampler = resolve(self.document.samplers, sampler_index, "sampler")
        except GLTFConversionError as e:
            logger.warning(f"Ignoring sampler: {e}")
            return
        if sampler is None:
            return

        prop.wrap_s = wrap_mode(field(sampler, "wrapS"))
        prop.wrap_t = wrap_mode(field(sampler, "wrapT"))
        prop.mag_filter = mag_filter(field(sampler, "magFilter"))
        prop.min_filter, prop.mip_filter = min_filter(field(sampler, "minFilter"))

    def image(self, index):
        """Decoded image for image ``index``, or None when it cannot be produced."""
        if index in self.cache.images:
            return self.cache.images[index]

        try:
            gltf_image = resolve(self.document.images, index, "image")
            if gltf_image is None:
                return None
            image = self.image_decoder.decode(self._image_bytes(gltf_image))
        except GLTFConversionError as e:
            logger.warning(f"Image {index} unavailable: {e}")
            image = None

        self.cache.images[index] = image
        return image

    def _image_bytes(self, gltf_image):
        uri = field(gltf_image, "uri")
        if uri is not None:
            return load_uri(uri, self.buffers.byte_loader, self.buffers.base_directory)
        view_index = field(gltf_image, "bufferView")
        if view_index is None:
            raise ResourceUnavailable("image has neither uri nor bufferView")
        return self.buffers.buffer_view_bytes(view_index)
