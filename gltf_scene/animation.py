"""Keyframe tracks and per-node animation groups from glTF animations."""

import math

import numpy as np

from .document import field, resolve
from .errors import ChannelDataCountMismatch, GLTFConversionError, UnresolvedReference
from .logger import get_logger
from .scene import AnimationGroup, KeyframeTrack

logger = get_logger(__name__)

# glTF target path -> animatable key path
TARGET_PATHS = {
    "translation": "position",
    "rotation": "orientation",
    "scale": "scale",
    "weights": "weights",
}

INTERPOLATIONS = ("LINEAR", "STEP", "CUBICSPLINE")


def normalize_key_times(times):
    """
    Express keyframe times as fractions of the channel duration.

    Returns:
        (key_times in [0, 1], duration)
    """
    times = np.asarray(times, dtype=np.float64).reshape(-1)
    if len(times) == 0:
        return times, 0.0

    if np.any(np.diff(times) < 0):
        logger.warning("Keyframe times are not sorted; normalizing by the largest time")

    duration = float(times.max())
    if duration <= 0:
        return np.zeros_like(times), 0.0
    return times / duration, duration


def split_cubic_spline(values, key_count):
    """Split CUBICSPLINE output into (in tangents, values, out tangents)."""
    if len(values) != 3 * key_count:
        raise ChannelDataCountMismatch(3 * key_count, len(values), "cubic spline triples")
    grouped = values.reshape((key_count, 3) + values.shape[1:])
    return grouped[:, 0], grouped[:, 1], grouped[:, 2]


class AnimationBuilder:
    """Turns animation channels into tracks on already built scene nodes.

    ``state`` is the BuildState filled by NodeGraphBuilder: it maps node
    indices to SceneNodes and to their morph weight paths.
    """

    def __init__(self, document, reader, state):
        self.document = document
        self.reader = reader
        self.state = state
        self.animation_duration = 0.0
        self.groups = {}

    def build(self, animations=None):
        if animations is None:
            animations = self.document.animations or []

        for animation_index, animation in enumerate(animations):
            name = field(animation, "name") or f"animation_{animation_index}"
            samplers = field(animation, "samplers", [])

            for channel_index, channel in enumerate(field(animation, "channels", [])):
                target = field(channel, "target")
                if field(channel, "sampler") is None or field(target, "node") is None:
                    continue
                try:
                    sampler = resolve(samplers, field(channel, "sampler"), "sampler")
                    self.construct_animation(sampler, target, name)
                except GLTFConversionError as e:
                    logger.warning(f"Skipping channel {channel_index} of {name!r}: {e}")

        # Second pass: the longest transform channel drives every group
        for group in self.groups.values():
            if self.animation_duration != 0:
                group.duration = self.animation_duration

        return self.groups

    def construct_animation(self, sampler, target, animation_name=None):
        node_index = field(target, "node")
        node = self.state.nodes.get(node_index)
        if node is None:
            raise UnresolvedReference("node", node_index, len(self.document.nodes or []),
                                      "channel targets a node outside the converted scene")

        path = field(target, "path")
        if path not in TARGET_PATHS:
            raise GLTFConversionError(f"unknown animation target path {path!r}")

        interpolation = field(sampler, "interpolation", "LINEAR")
        if interpolation not in INTERPOLATIONS:
            logger.warning(f"Unknown interpolation {interpolation!r}, using LINEAR")
            interpolation = "LINEAR"

        times = self.reader.read_float(field(sampler, "input"))
        values = self.reader.read_float(field(sampler, "output"))
        if times is None or values is None:
            raise GLTFConversionError("sampler is missing its input or output accessor")
        key_times, duration = normalize_key_times(times)

        if path == "weights":
            tracks = self.weight_tracks(node_index, key_times, values, duration, interpolation)
            group_duration = duration
        else:
            tracks = [self.transform_track(path, key_times, values, duration, interpolation)]
            self.animation_duration = max(self.animation_duration, duration)
            group_duration = self.animation_duration

        for track in tracks:
            track.animation = animation_name

        group = self.groups.get(node_index)
        if group is None:
            group = AnimationGroup(repeat_count=math.inf)
            self.groups[node_index] = group
            node.animation = group
        group.tracks.extend(tracks)
        group.duration = group_duration
        logger.debug(f"Node {node_index}: {len(tracks)} track(s) for {path}")

    def transform_track(self, path, key_times, values, duration, interpolation):
        in_tangents = out_tangents = None
        if interpolation == "CUBICSPLINE":
            in_tangents, values, out_tangents = split_cubic_spline(values, len(key_times))
        elif len(values) != len(key_times):
            raise ChannelDataCountMismatch(len(key_times), len(values), path)

        return KeyframeTrack(
            key_path=TARGET_PATHS[path],
            key_times=key_times,
            values=values,
            duration=duration,
            interpolation=interpolation,
            repeat_count=math.inf,
            in_tangents=in_tangents,
            out_tangents=out_tangents,
        )

    def weight_tracks(self, node_index, key_times, values, duration, interpolation):
        """De-interleave morph weights into one track per weight path."""
        paths = self.state.weight_paths.get(node_index) or []
        if not paths:
            raise UnresolvedReference("morph target", 0, 0,
                                      f"node {node_index} has no morph targets to animate")

        step = len(paths)
        key_count = len(key_times)
        values = np.asarray(values).reshape(-1)
        per_key = 3 * step if interpolation == "CUBICSPLINE" else step

        if len(values) != per_key * key_count:
            raise ChannelDataCountMismatch(
                per_key * key_count, len(values),
                f"{step} morph targets x {key_count} keyframes")

        # (key, [in, value, out], path) for cubic splines, (key, path) otherwise
        if interpolation == "CUBICSPLINE":
            grouped = values.reshape(key_count, 3, step)
            in_tangents, samples, out_tangents = grouped[:, 0], grouped[:, 1], grouped[:, 2]
        else:
            samples = values.reshape(key_count, step)
            in_tangents = out_tangents = None

        tracks = []
        for i, path in enumerate(paths):
            tracks.append(KeyframeTrack(
                key_path=path.key_path,
                key_times=key_times.copy(),
                values=samples[:, i].copy(),
                duration=duration,
                interpolation=interpolation,
                repeat_count=math.inf,
                in_tangents=None if in_tangents is None else in_tangents[:, i].copy(),
                out_tangents=None if out_tangents is None else out_tangents[:, i].copy(),
            ))
        return tracks
