"""OpenShift resource display models.

Routes, image streams and Knative routes are accessed via
``CustomObjectsApi`` which returns raw ``dict`` objects, so their
``from_k8s_object`` classmethods use ``dict.get()``. Pods come from the
typed ``CoreV1Api`` and use attribute access instead.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


def _safe_get(obj: Any, *attrs: str, default: Any = None) -> Any:
    """Safely traverse nested attributes on kubernetes SDK objects."""
    current = obj
    for attr in attrs:
        if current is None:
            return default
        current = getattr(current, attr, None)
    return current if current is not None else default


class OpenShiftEntityBase(BaseModel):
    """Base class for all OpenShift display models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(description="Resource name")
    namespace: str | None = Field(default=None, description="Resource namespace")
    labels: dict[str, str] | None = Field(default=None, description="Resource labels")

    _entity_name: ClassVar[str] = "entity"


class RouteSummary(OpenShiftEntityBase):
    """OpenShift Route (``route.openshift.io/v1``)."""

    _entity_name: ClassVar[str] = "route"

    host: str | None = Field(default=None, description="Assigned hostname")
    path: str | None = Field(default=None, description="Path the route is bound to")
    tls: bool = Field(default=False, description="Whether TLS termination is configured")
    admitted: bool = Field(default=False, description="Whether a router admitted the route")

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> RouteSummary:
        """Create from a Route dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        spec: dict[str, Any] = obj.get("spec", {})
        status: dict[str, Any] = obj.get("status", {}) or {}

        admitted = False
        for ingress in status.get("ingress", []) or []:
            for condition in ingress.get("conditions", []) or []:
                if condition.get("type") == "Admitted" and condition.get("status") == "True":
                    admitted = True

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            labels=metadata.get("labels"),
            host=spec.get("host") or None,
            path=spec.get("path"),
            tls=spec.get("tls") is not None,
            admitted=admitted,
        )

    @property
    def base_address(self) -> str:
        """Scheme and host, e.g. ``https://app.apps.example.com``."""
        scheme = "https" if self.tls else "http"
        return f"{scheme}://{self.host}"


class ImageStreamTagStatus(BaseModel):
    """Import status of a single image stream tag."""

    model_config = ConfigDict(extra="ignore")

    tag: str = Field(description="Tag name")
    image_count: int = Field(default=0, description="Number of imported images")
    import_failed: bool = Field(default=False, description="Whether the last import failed")
    message: str | None = Field(default=None, description="Import condition message")

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> ImageStreamTagStatus:
        """Create from an entry of ``status.tags``."""
        import_failed = False
        message = None
        for condition in obj.get("conditions", []) or []:
            if condition.get("type") == "ImportSuccess" and condition.get("status") == "False":
                import_failed = True
                message = condition.get("message")
        return cls(
            tag=obj.get("tag", ""),
            image_count=len(obj.get("items", []) or []),
            import_failed=import_failed,
            message=message,
        )


class ImageStreamSummary(OpenShiftEntityBase):
    """OpenShift ImageStream (``image.openshift.io/v1``)."""

    _entity_name: ClassVar[str] = "imagestream"

    spec_tags: list[str] = Field(default_factory=list, description="Tags declared in spec")
    tags: list[ImageStreamTagStatus] = Field(default_factory=list, description="Tag status")

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> ImageStreamSummary:
        """Create from an ImageStream dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        spec: dict[str, Any] = obj.get("spec", {}) or {}
        status: dict[str, Any] = obj.get("status", {}) or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            labels=metadata.get("labels"),
            spec_tags=[tag.get("name", "") for tag in spec.get("tags", []) or []],
            tags=[ImageStreamTagStatus.from_k8s_object(t) for t in status.get("tags", []) or []],
        )

    @property
    def ready(self) -> bool:
        """Whether every declared tag (or, without declarations, any tag) has an image."""
        imported = {t.tag for t in self.tags if t.image_count > 0}
        if self.spec_tags:
            return all(tag in imported for tag in self.spec_tags)
        return bool(imported)

    @property
    def failed_tags(self) -> list[ImageStreamTagStatus]:
        return [t for t in self.tags if t.import_failed and t.image_count == 0]


class KnativeRouteSummary(OpenShiftEntityBase):
    """Knative Serving Route (``serving.knative.dev/v1``)."""

    _entity_name: ClassVar[str] = "knative_route"

    url: str | None = Field(default=None, description="Externally reachable URL")
    ready: bool = Field(default=False, description="Whether the Ready condition is True")

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> KnativeRouteSummary:
        """Create from a Knative Route dict."""
        metadata: dict[str, Any] = obj.get("metadata", {})
        status: dict[str, Any] = obj.get("status", {}) or {}
        ready = any(
            c.get("type") == "Ready" and c.get("status") == "True"
            for c in status.get("conditions", []) or []
        )
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            labels=metadata.get("labels"),
            url=status.get("url"),
            ready=ready,
        )


class PodSummary(OpenShiftEntityBase):
    """Pod readiness summary."""

    _entity_name: ClassVar[str] = "pod"

    phase: str = Field(default="Unknown", description="Pod phase")
    ready: bool = Field(default=False, description="Whether the Ready condition is True")
    restarts: int = Field(default=0, description="Total container restarts")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> PodSummary:
        """Create from a kubernetes V1Pod object."""
        conditions = _safe_get(obj, "status", "conditions", default=[])
        ready = any(c.type == "Ready" and c.status == "True" for c in conditions)
        statuses = _safe_get(obj, "status", "container_statuses", default=[])
        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            namespace=_safe_get(obj, "metadata", "namespace"),
            labels=_safe_get(obj, "metadata", "labels"),
            phase=_safe_get(obj, "status", "phase", default="Unknown"),
            ready=ready,
            restarts=sum(s.restart_count or 0 for s in statuses),
        )
