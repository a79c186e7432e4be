"""AR artifacts and the targets that trigger them.

Artifacts arrive as JSON-LD objects::

    {
        "@type": "ARArtifact",
        "arTarget": {"@type": "Barcode", "text": "1234567890"},
        "arContent": "https://example.com/card.html"
    }

``arTarget`` may be a single object or a list.  Targets are dispatched on
``@type``: ``Barcode`` and ``ARImageTarget`` are understood, anything else
is kept as :class:`UnknownTarget` so stores can skip it without failing the
whole artifact.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from perceptkit.models._base import PerceptionBaseModel
from perceptkit.models.targets import MediaEncoding

ARTIFACT_TYPE = "ARArtifact"


class BarcodeTarget(PerceptionBaseModel):
    """Matches markers whose value equals ``text`` (any symbology)."""

    json_ld_type: Literal["Barcode"] = Field(default="Barcode", alias="@type")
    text: str


class ImageTarget(PerceptionBaseModel):
    """Matches detected images whose id equals ``name``."""

    json_ld_type: Literal["ARImageTarget"] = Field(default="ARImageTarget", alias="@type")
    name: str
    image: str | MediaEncoding | None = None
    encoding: list[MediaEncoding] = Field(default_factory=list)

    @field_validator("encoding", mode="before")
    @classmethod
    def _listify_encoding(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value

    def media(self) -> list[MediaEncoding]:
        """All encodings of this image, ``image`` first."""
        media: list[MediaEncoding] = []
        if isinstance(self.image, str):
            media.append(MediaEncoding(content_url=self.image))
        elif isinstance(self.image, MediaEncoding):
            media.append(self.image)
        media.extend(self.encoding)
        return media


class UnknownTarget(PerceptionBaseModel):
    """A target type this package does not understand."""

    json_ld_type: str | None = Field(default=None, alias="@type")


TargetDescriptor = BarcodeTarget | ImageTarget | UnknownTarget


def parse_target(value: Any) -> TargetDescriptor:
    """Build the target descriptor matching a JSON-LD ``@type``."""
    if isinstance(value, (BarcodeTarget, ImageTarget, UnknownTarget)):
        return value
    if not isinstance(value, dict):
        return UnknownTarget()
    json_ld_type = value.get("@type")
    if json_ld_type == "Barcode" and isinstance(value.get("text"), str):
        return BarcodeTarget.model_validate(value)
    if json_ld_type == "ARImageTarget" and isinstance(value.get("name"), str):
        return ImageTarget.model_validate(value)
    return UnknownTarget(json_ld_type=json_ld_type if isinstance(json_ld_type, str) else None)


class ARArtifact(PerceptionBaseModel):
    """Content unlocked by one or more targets.

    Parameters
    ----------
    ar_target : list of TargetDescriptor
        Targets that trigger this artifact.
    ar_content : Any
        Opaque content payload (URL, ``WebPage`` object, ...).
    url : str or None
        Where the artifact was loaded from, if known.
    raw : dict
        Original JSON-LD object.
    """

    json_ld_type: str = Field(default=ARTIFACT_TYPE, alias="@type")
    ar_target: list[TargetDescriptor] = Field(default_factory=list)
    ar_content: Any = None
    url: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        if "raw" in values:
            return values
        stashed = dict(values)
        stashed["raw"] = dict(values)
        return stashed

    @field_validator("ar_target", mode="before")
    @classmethod
    def _parse_targets(cls, value: Any) -> list[TargetDescriptor]:
        if value is None:
            return []
        if not isinstance(value, list):
            value = [value]
        return [parse_target(item) for item in value]

    def barcode_targets(self) -> list[BarcodeTarget]:
        return [target for target in self.ar_target if isinstance(target, BarcodeTarget)]

    def image_targets(self) -> list[ImageTarget]:
        return [target for target in self.ar_target if isinstance(target, ImageTarget)]
