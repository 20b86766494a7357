"""Configuration management with Pydantic validation."""

from openshift_testkit.core.config.models import (
    TestkitConfig,
    load_image_overrides,
)

__all__ = [
    "TestkitConfig",
    "load_image_overrides",
]
