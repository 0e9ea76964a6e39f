"""Logging utilities for gltf_scene."""

import logging
from typing import Optional


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the ``gltf_scene`` namespace."""
    if name.startswith("gltf_scene."):
        name = name[len("gltf_scene."):]
    return logging.getLogger(f"gltf_scene.{name}")


def setup_logging(level: Optional[int] = None) -> None:
    """Set up logging for gltf_scene."""
    if level is None:
        level = logging.INFO

    logger = logging.getLogger("gltf_scene")
    logger.setLevel(level)

    # Only add handler if none exists
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
