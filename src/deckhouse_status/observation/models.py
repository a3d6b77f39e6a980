"""Structured models for the Deckhouse pod state read from the cluster."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegistryCreds(BaseModel):
    """Registry credentials from the pull secret."""

    model_config = ConfigDict(frozen=True)

    auth: str = Field(..., description="base64-encoded user:password", repr=False)


class ImageReference(BaseModel):
    """An image reference split into registry host, repository and tag."""

    model_config = ConfigDict(frozen=True)

    host: str = ""
    repository: str = ""
    tag: str = ""

    @classmethod
    def parse(cls, image: str) -> ImageReference:
        """Split ``host/path:tag``.

        The last ``:`` separates the tag and the first ``/`` separates the
        host; a missing separator leaves that component empty.
        """
        rest, sep, tag = image.rpartition(":")
        if not sep:
            rest, tag = image, ""
        host, sep, repository = rest.partition("/")
        if not sep:
            host, repository = "", ""
        return cls(host=host, repository=repository, tag=tag)

    @property
    def complete(self) -> bool:
        return bool(self.host and self.repository and self.tag)


class ClusterSnapshot(BaseModel):
    """The Deckhouse pod as seen once per invocation."""

    model_config = ConfigDict(frozen=True)

    image: str = ""
    reference: ImageReference = Field(default_factory=ImageReference)
    pod_name: str
    pod_created: datetime
    pod_phase: str = "Unknown"
    running_digest: str = Field(default="", description="e.g. sha256:3778e43a...")
    registry_creds: RegistryCreds | None = None

    @property
    def tag(self) -> str:
        return self.reference.tag
