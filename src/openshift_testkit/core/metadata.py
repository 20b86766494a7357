"""Metadata of the application under test.

The build of the application writes ``target/app-metadata.properties``;
test classes may override it with an explicit :class:`AppMetadata`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from openshift_testkit.integrations.openshift.exceptions import ConfigurationError

KNATIVE_TARGET = "knative"

# Property keys written by the application build
PROPERTY_KEYS = {
    "app-name": "app_name",
    "http-root": "http_root",
    "known-endpoint": "known_endpoint",
    "deployment-target": "deployment_target",
}


def parse_properties(text: str) -> dict[str, str]:
    """Parse the subset of the Java properties format the build emits.

    Supports ``key=value`` and ``key: value`` pairs, ``#`` and ``!``
    comments and backslash escapes of ``:``, ``=`` and spaces.
    """
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key_chars: list[str] = []
        index = 0
        while index < len(line):
            char = line[index]
            if char == "\\" and index + 1 < len(line):
                key_chars.append(line[index + 1])
                index += 2
                continue
            if char in "=:":
                break
            key_chars.append(char)
            index += 1
        value = line[index + 1 :] if index < len(line) else ""
        result["".join(key_chars).strip()] = value.strip().replace("\\:", ":").replace("\\=", "=")
    return result


class AppMetadata(BaseModel):
    """Immutable description of the deployed application."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_name: str = Field(min_length=1, description="Application (and route) name")
    http_root: str = Field(default="/", description="HTTP root path of the application")
    known_endpoint: str = Field(default="/", description="Path known to answer 200 when ready")
    deployment_target: str = Field(default="", description="Deployment target tag")

    @property
    def is_knative(self) -> bool:
        """Whether the application is exposed through a Knative route."""
        return KNATIVE_TARGET in self.deployment_target

    @classmethod
    def load(cls, path: Path) -> AppMetadata:
        """Load metadata from a properties file.

        Raises:
            ConfigurationError: If the file is missing or lacks ``app-name``.
        """
        if not path.is_file():
            raise ConfigurationError(
                f"Missing {path}, was the application built with the metadata generator?"
            )
        properties = parse_properties(path.read_text(encoding="utf-8"))
        values = {
            field: properties[key] for key, field in PROPERTY_KEYS.items() if properties.get(key)
        }
        if "app_name" not in values:
            raise ConfigurationError(f"Missing 'app-name' in {path}")
        return cls(**values)
