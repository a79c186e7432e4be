"""Base model shared by all perceptkit data models.

Every model inherits from :class:`PerceptionBaseModel` which provides:

* frozen instances, so a store can hand out the same object on every
  query without callers mutating it underneath the result differ.
* ``alias_generator=to_camel`` so JSON-LD keys such as ``arTarget``
  and ``contentUrl`` map to snake_case fields.
* ``extra="ignore"`` so unknown JSON-LD properties do not fail parsing.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PerceptionBaseModel(BaseModel):
    """Base for perceptkit models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
