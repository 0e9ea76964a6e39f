#!/usr/bin/env python3
import argparse
import logging
import os

from .converter import ConversionOptions, SceneConverter
from .errors import GLTFConversionError
from .logger import setup_logging


def describe_node(node, depth=0):
    """One summary line per node, indented by depth."""
    parts = [f"{'  ' * depth}- {node.name or '<unnamed>'}"]
    if node.index is not None:
        parts.append(f"#{node.index}")
    if node.geometries:
        elements = sum(len(g.elements) for g in node.geometries)
        parts.append(f"[{len(node.geometries)} geometry, {elements} element]")
    if node.camera is not None:
        parts.append(f"[camera: {node.camera.projection}]")
    if node.skin is not None:
        parts.append(f"[skin {node.skin}, not deformed]")
    if node.animation is not None:
        parts.append(f"[{len(node.animation.tracks)} tracks, {node.animation.duration:.2f}s]")
    return " ".join(parts)


def print_tree(node, depth=0):
    print(describe_node(node, depth))
    for child in node.children:
        print_tree(child, depth + 1)


def print_scene(scene):
    print(f"🌳 Scene: {scene.name or '<unnamed>'}")
    for child in scene.root.children:
        print_tree(child)

    bounds = scene.bounds()
    if bounds is not None:
        lo, hi = bounds
        print(f"📦 Bounds: {lo.round(3).tolist()} → {hi.round(3).tolist()}")

    print(f"   Nodes:     {len(scene.nodes)}")
    print(f"   Materials: {len(scene.materials)}")
    print(f"   Animated:  {len(scene.animated_nodes())}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert a glTF 2.0 asset into a scene graph and print a summary"
    )
    parser.add_argument("path", help="Path to a .gltf or .glb file")
    parser.add_argument(
        "--scene", "-s",
        type=int,
        default=None,
        help="Scene index to convert (defaults to the document's scene)"
    )
    parser.add_argument(
        "--split-metallic-roughness",
        action="store_true",
        help="Split packed metallic/roughness textures into single-channel images"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not os.path.exists(args.path):
        print(f"❌ Error: File does not exist: {args.path}")
        return 1

    options = ConversionOptions(
        scene_index=args.scene,
        split_metallic_roughness=args.split_metallic_roughness,
    )

    print(f"🌀 Converting: {os.path.basename(args.path)}")
    try:
        scene = SceneConverter(options).convert_file(args.path)
    except GLTFConversionError as e:
        print(f"❌ Error converting {args.path}: {e}")
        return 1

    print_scene(scene)
    print("✅ Done!")
    return 0


if __name__ == "__main__":
    exit(main())
