"""Image overrides for generated manifests.

Lets a test environment point the generated manifest at mirrored or
pre-release images without rebuilding the application.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from ruamel.yaml import YAML

logger = structlog.get_logger()

DOCKER_IMAGE_KIND = "DockerImage"


def _rewrite(node: Any, overrides: Mapping[str, str], replaced: list[str]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "image" and isinstance(value, str) and value in overrides:
                node[key] = overrides[value]
                replaced.append(value)
            elif (
                key == "name"
                and node.get("kind") == DOCKER_IMAGE_KIND
                and isinstance(value, str)
                and value in overrides
            ):
                node[key] = overrides[value]
                replaced.append(value)
            else:
                _rewrite(value, overrides, replaced)
    elif isinstance(node, list):
        for item in node:
            _rewrite(item, overrides, replaced)


def apply_image_overrides(manifest: Path, overrides: Mapping[str, str]) -> list[str]:
    """Rewrite image references of a manifest file in place.

    Container ``image`` fields and ``DockerImage`` references (image stream
    tags, build sources) whose value is a key of ``overrides`` are replaced
    by the mapped image. Formatting and comments are preserved.

    Returns:
        The original image references that were replaced.
    """
    if not overrides:
        return []

    yaml = YAML(typ="rt")
    yaml.preserve_quotes = True
    documents = list(yaml.load_all(manifest.read_text(encoding="utf-8")))

    replaced: list[str] = []
    for doc in documents:
        _rewrite(doc, overrides, replaced)

    if replaced:
        with manifest.open("w", encoding="utf-8") as stream:
            yaml.dump_all(documents, stream)
        logger.info("applied_image_overrides", manifest=str(manifest), images=sorted(set(replaced)))
    return replaced
