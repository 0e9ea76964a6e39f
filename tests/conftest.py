"""Shared fixtures: glTF documents assembled in memory with pygltflib."""

import base64

import numpy as np
import pytest
from pygltflib import GLTF2, Accessor, Buffer, BufferView, Mesh, Node, Primitive, Scene

DTYPES = {
    5120: "<i1",
    5121: "<u1",
    5122: "<i2",
    5123: "<u2",
    5125: "<u4",
    5126: "<f4",
}


class GltfBuilder:
    """Packs arrays into one GLB binary chunk and records accessors for them."""

    def __init__(self):
        self.gltf = GLTF2(scene=0, scenes=[Scene(nodes=[])])
        self.blob = bytearray()

    def add_view(self, data, stride=None):
        while len(self.blob) % 4:
            self.blob.append(0)
        offset = len(self.blob)
        self.blob.extend(data)
        self.gltf.bufferViews.append(
            BufferView(buffer=0, byteOffset=offset, byteLength=len(data), byteStride=stride))
        return len(self.gltf.bufferViews) - 1

    def add_accessor(self, values, component_type=5126, accessor_type="VEC3", normalized=False):
        arr = np.asarray(values, dtype=DTYPES[component_type])
        count = arr.shape[0]
        view = self.add_view(arr.tobytes())
        self.gltf.accessors.append(Accessor(
            bufferView=view,
            byteOffset=0,
            componentType=component_type,
            normalized=normalized,
            count=count,
            type=accessor_type,
        ))
        return len(self.gltf.accessors) - 1

    def add_mesh(self, attributes, indices=None, mode=4, material=None, targets=None, weights=None):
        primitive = Primitive(attributes=attributes, indices=indices, mode=mode, material=material)
        if targets:
            primitive.targets = targets
        mesh = Mesh(primitives=[primitive])
        if weights:
            mesh.weights = weights
        self.gltf.meshes.append(mesh)
        return len(self.gltf.meshes) - 1

    def add_node(self, root=True, **kwargs):
        self.gltf.nodes.append(Node(**kwargs))
        index = len(self.gltf.nodes) - 1
        if root:
            self.gltf.scenes[0].nodes.append(index)
        return index

    def triangle(self):
        positions = [[0, 0, 0], [1, 0, 0], [0, 1, 0]]
        position = self.add_accessor(positions, 5126, "VEC3")
        indices = self.add_accessor([0, 1, 2], 5123, "SCALAR")
        return self.add_mesh({"POSITION": position}, indices=indices)

    def finish(self):
        self.gltf.buffers = [Buffer(byteLength=len(self.blob))]
        self.gltf.set_binary_blob(bytes(self.blob))
        return self.gltf


class CountingLoader:
    """Byte-loader serving a fixed mapping of URIs, counting every call."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.calls = []

    def load(self, uri, base_directory=None):
        self.calls.append((uri, base_directory))
        if uri not in self.files:
            raise OSError(f"no such file: {uri}")
        return self.files[uri]


class FakeImage:
    def __init__(self, data, channel=None):
        self.data = data
        self.channel = channel


class FakeImageDecoder:
    def __init__(self):
        self.decoded = []
        self.channels = []

    def decode(self, data):
        self.decoded.append(data)
        return FakeImage(data)

    def channel(self, image, index):
        self.channels.append(index)
        return FakeImage(image.data, channel=index)


def data_uri(payload, mime="application/octet-stream"):
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


@pytest.fixture
def builder():
    return GltfBuilder()


@pytest.fixture
def image_decoder():
    return FakeImageDecoder()
