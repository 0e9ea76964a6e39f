"""Tests for animation track construction."""

import math

import numpy as np
import pytest
from pygltflib import Animation, AnimationChannel, AnimationChannelTarget, AnimationSampler

from gltf_scene.accessors import AccessorReader
from gltf_scene.animation import AnimationBuilder, normalize_key_times
from gltf_scene.buffers import BufferResolver, ConversionCache
from gltf_scene.errors import ChannelDataCountMismatch, UnresolvedReference
from gltf_scene.geometry import GeometryBuilder
from gltf_scene.nodes import BuildState, NodeGraphBuilder

from conftest import CountingLoader


def morph_node(builder, target_count=3):
    position = builder.add_accessor(np.zeros((3, 3)), 5126, "VEC3")
    delta = builder.add_accessor(np.ones((3, 3)), 5126, "VEC3")
    mesh = builder.add_mesh({"POSITION": position},
                            targets=[{"POSITION": delta}] * target_count)
    return builder.add_node(name="morph", mesh=mesh)


def add_channel(builder, node, path, times, values, value_type="SCALAR", interpolation="LINEAR"):
    gltf = builder.gltf
    time_accessor = builder.add_accessor(times, 5126, "SCALAR")
    value_accessor = builder.add_accessor(values, 5126, value_type)
    if not gltf.animations:
        gltf.animations.append(Animation(name="clip", channels=[], samplers=[]))
    animation = gltf.animations[0]
    animation.samplers.append(AnimationSampler(
        input=time_accessor, output=value_accessor, interpolation=interpolation))
    animation.channels.append(AnimationChannel(
        sampler=len(animation.samplers) - 1,
        target=AnimationChannelTarget(node=node, path=path),
    ))


def animate(builder):
    gltf = builder.finish()
    buffers = BufferResolver(gltf, CountingLoader(), None, ConversionCache())
    reader = AccessorReader(gltf, buffers)
    state = BuildState()
    nodes = NodeGraphBuilder(gltf, GeometryBuilder(reader), state)
    for index in gltf.scenes[0].nodes:
        nodes.build(index)
    animations = AnimationBuilder(gltf, reader, state)
    animations.build()
    return animations, state


def test_normalize_key_times():
    key_times, duration = normalize_key_times([0, 0.5, 2.0])

    np.testing.assert_allclose(key_times, [0, 0.25, 1.0])
    assert duration == 2.0


def test_normalize_zero_duration():
    key_times, duration = normalize_key_times([0.0])

    assert duration == 0.0
    assert key_times.tolist() == [0.0]


def test_weights_channel_is_deinterleaved(builder):
    node = morph_node(builder, 3)
    values = np.arange(30, dtype=np.float32)
    add_channel(builder, node, "weights", np.linspace(0, 1, 10), values)

    animations, state = animate(builder)

    group = state.nodes[node].animation
    assert len(group.tracks) == 3
    for i, track in enumerate(group.tracks):
        assert track.key_path == f"geometries[0].morpher.weights[{i}]"
        assert len(track.values) == 10
        np.testing.assert_array_equal(track.values, values[i::3])
        assert track.duration == pytest.approx(1.0)


def test_weight_tracks_own_their_key_times(builder):
    node = morph_node(builder, 2)
    add_channel(builder, node, "weights", [0, 1.0], [0, 0, 1, 1])

    animations, state = animate(builder)

    first, second = state.nodes[node].animation.tracks
    first.key_times[1] = 0.5
    np.testing.assert_array_equal(second.key_times, [0, 1.0])


def test_weights_count_mismatch_fails(builder):
    node = morph_node(builder, 3)
    add_channel(builder, node, "weights", np.linspace(0, 1, 10), np.zeros(31))
    gltf = builder.finish()
    reader = AccessorReader(gltf, BufferResolver(gltf, CountingLoader(), None, ConversionCache()))
    state = BuildState()
    NodeGraphBuilder(gltf, GeometryBuilder(reader), state).build(node)
    animation = gltf.animations[0]

    with pytest.raises(ChannelDataCountMismatch) as excinfo:
        AnimationBuilder(gltf, reader, state).construct_animation(
            animation.samplers[0], animation.channels[0].target)

    assert excinfo.value.expected == 30
    assert excinfo.value.actual == 31


def test_failing_channel_is_skipped(builder):
    node = morph_node(builder, 3)
    add_channel(builder, node, "weights", np.linspace(0, 1, 10), np.zeros(31))
    add_channel(builder, node, "translation", [0, 1], [[0, 0, 0], [1, 0, 0]], "VEC3")

    animations, state = animate(builder)

    group = state.nodes[node].animation
    assert [t.key_path for t in group.tracks] == ["position"]


def test_weights_on_node_without_morph_targets(builder):
    node = builder.add_node(name="plain")
    add_channel(builder, node, "weights", [0, 1], [0, 1])
    gltf = builder.finish()
    reader = AccessorReader(gltf, BufferResolver(gltf, CountingLoader(), None, ConversionCache()))
    state = BuildState()
    NodeGraphBuilder(gltf, GeometryBuilder(reader), state).build(node)
    animation = gltf.animations[0]

    with pytest.raises(UnresolvedReference):
        AnimationBuilder(gltf, reader, state).construct_animation(
            animation.samplers[0], animation.channels[0].target)


def test_transform_channels_share_one_group(builder):
    node = builder.add_node(name="mover")
    add_channel(builder, node, "translation", [0, 0.5, 2.0], [[0, 0, 0], [1, 0, 0], [2, 0, 0]], "VEC3")
    add_channel(builder, node, "rotation", [0, 4.0], [[0, 0, 0, 1], [0, 0, 1, 0]], "VEC4")
    add_channel(builder, node, "scale", [0, 1.0], [[1, 1, 1], [2, 2, 2]], "VEC3")

    animations, state = animate(builder)

    group = state.nodes[node].animation
    assert group.paths == ["orientation", "position", "scale"]
    assert group.repeat_count == math.inf
    assert group.duration == pytest.approx(4.0)

    position = group.tracks_for("position")[0]
    np.testing.assert_allclose(position.key_times, [0, 0.25, 1.0])
    assert position.duration == pytest.approx(2.0)
    assert position.repeat_count == math.inf
    assert position.values.shape == (3, 3)
    assert position.animation == "clip"
    np.testing.assert_allclose(position.absolute_times(), [0, 0.5, 2.0])

    assert group.tracks_for("orientation")[0].values.shape == (2, 4)


def test_longest_transform_channel_sets_every_group_duration(builder):
    morph = morph_node(builder, 1)
    mover = builder.add_node(name="mover")
    add_channel(builder, morph, "weights", [0, 1.0], [0, 1])
    add_channel(builder, mover, "translation", [0, 3.0], [[0, 0, 0], [1, 1, 1]], "VEC3")

    animations, state = animate(builder)

    assert animations.animation_duration == pytest.approx(3.0)
    assert state.nodes[morph].animation.duration == pytest.approx(3.0)
    assert state.nodes[morph].animation.tracks[0].duration == pytest.approx(1.0)
    assert state.nodes[mover].animation.duration == pytest.approx(3.0)


def test_weights_only_keep_channel_duration(builder):
    morph = morph_node(builder, 2)
    add_channel(builder, morph, "weights", [0, 1.5], [0, 0, 1, 1])

    animations, state = animate(builder)

    assert state.nodes[morph].animation.duration == pytest.approx(1.5)


def test_cubic_spline_values_and_tangents(builder):
    node = builder.add_node(name="spline")
    values = [
        [0, 0, 0], [1, 1, 1], [0, 0, 0],
        [0, 0, 0], [2, 2, 2], [0, 0, 0],
    ]
    add_channel(builder, node, "translation", [0, 1], values, "VEC3", "CUBICSPLINE")

    animations, state = animate(builder)

    track = state.nodes[node].animation.tracks[0]
    assert track.interpolation == "CUBICSPLINE"
    np.testing.assert_array_equal(track.values, [[1, 1, 1], [2, 2, 2]])
    assert track.in_tangents.shape == (2, 3)
    assert track.out_tangents.shape == (2, 3)


def test_channel_for_node_outside_scene_is_skipped(builder):
    inside = builder.add_node(name="inside")
    outside = builder.add_node(name="outside", root=False)
    add_channel(builder, outside, "translation", [0, 1], [[0, 0, 0], [1, 0, 0]], "VEC3")

    animations, state = animate(builder)

    assert animations.groups == {}
    assert state.nodes[inside].animation is None
