"""Perception targets: what detectors report and what they should look for."""

from __future__ import annotations

from pydantic import Field, field_validator

from perceptkit.models._base import PerceptionBaseModel

#: Separator between the escaped marker type and the raw marker value.
MARKER_ID_SEPARATOR = "__"


def _escape_marker_type(marker_type: str) -> str:
    # After escaping the type holds no "_" so the first "__" is the separator.
    return marker_type.replace("%", "%25").replace("_", "%5F")


def generate_marker_id(marker: Marker) -> str:
    """Return the identity key of a marker.

    The key is ``<type>__<value>`` with the type escaped, so two markers share
    a key only when both type and value are equal, whatever the value holds.
    """
    return f"{_escape_marker_type(marker.type)}{MARKER_ID_SEPARATOR}{marker.value}"


class Marker(PerceptionBaseModel):
    """A barcode-like marker reported by a marker detector.

    Parameters
    ----------
    type : str
        Detector symbology (e.g. ``"qr_code"``).
    value : str
        Decoded payload.  Opaque: never trimmed or normalized.
    """

    type: str
    value: str

    @property
    def marker_id(self) -> str:
        return generate_marker_id(self)


class DetectedImage(PerceptionBaseModel):
    """A live sighting of a catalog image, produced by an image detector."""

    id: str

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        if not value:
            raise ValueError("id must be non-empty")
        return value


class MediaEncoding(PerceptionBaseModel):
    """One encoding of a detectable image (JSON-LD ``ImageObject``)."""

    content_url: str | None = None
    encoding_format: str | None = None


class DetectableImage(PerceptionBaseModel):
    """A catalog image the image detector should be armed for.

    ``media`` lists every known encoding; choosing one is the detector's job.
    """

    id: str
    media: list[MediaEncoding] = Field(default_factory=list)


class GeoCoordinates(PerceptionBaseModel):
    """Raw geolocation.  Never debounced; always the caller's current fix."""

    latitude: float | None = None
    longitude: float | None = None
