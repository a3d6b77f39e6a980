"""Outcome of probing the registry for the deployed tag."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RegistryVerdict:
    """What the registry says about the deployed tag.

    ``image_exists`` only means something when ``tag_exists`` is False: the
    tag is gone but the running digest can still be pulled.
    """

    tag_exists: bool = False
    digest: str = ""
    digest_match: bool = False
    image_exists: bool = False
    error: Exception | None = None

    @property
    def summary(self) -> str:
        if self.error is not None:
            return f"error ({self.error})"
        if self.tag_exists:
            return "tag available"
        if self.image_exists:
            return "tag removed (image exists by digest)"
        return "tag removed"
