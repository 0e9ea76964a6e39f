"""Access helpers for pygltflib documents.

Every cross-reference in a glTF document is an integer index into one of the
document's lists. ``resolve`` is the single place those indices are checked.
"""

from pathlib import Path

from pygltflib import GLTF2

from .errors import UnresolvedReference


def load_document(path):
    """Load a .gltf or .glb file with pygltflib."""
    return GLTF2().load(str(path))


def base_directory(path):
    return str(Path(path).resolve().parent)


def resolve(sequence, index, kind):
    """
    Look up ``sequence[index]``.

    Returns None for an absent reference (``index is None``) and raises
    UnresolvedReference when the index does not address an element.
    """
    if index is None:
        return None
    count = len(sequence) if sequence else 0
    if not isinstance(index, int) or index < 0 or index >= count:
        raise UnresolvedReference(kind, index, count)
    return sequence[index]


def attribute_items(attributes):
    """Yield (semantic name, accessor index) pairs of a primitive attribute set.

    pygltflib hands these out as ``Attributes`` objects when parsed and as plain
    dicts when a document is assembled in code.
    """
    if attributes is None:
        return []
    if isinstance(attributes, dict):
        items = attributes.items()
    else:
        items = vars(attributes).items()
    return [(name, index) for name, index in items if index is not None]


def field(obj, name, default=None):
    """Read ``name`` from a pygltflib object or a dict, falling back to ``default``."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value
