from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from calendar_feeds.core.constants import (
    DEFAULT_ASSIGNMENTS_RULE,
    DEFAULT_SCOPE,
    DEFAULT_TIMEZONE,
    FEED_KINDS,
)


def normalize_feed_mode(value) -> str:
    return "combined" if value == "combined" else "separate"


def normalize_feed_kinds(values) -> List[str]:
    """Known kinds in first-seen order; anything else is dropped."""
    if not isinstance(values, (list, tuple)):
        return []
    kinds: List[str] = []
    for value in values:
        if value in FEED_KINDS and value not in kinds:
            kinds.append(value)
    return kinds


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- state returned by GET and every POST action ---

class IntegrationSettingsRead(CamelModel):
    feed_mode: Literal["separate", "combined"] = "separate"
    timezone: str = DEFAULT_TIMEZONE
    scope: Literal["selected_term"] = DEFAULT_SCOPE
    assignments_rule: Literal["incomplete_only"] = DEFAULT_ASSIGNMENTS_RULE


class FeedLinks(CamelModel):
    https_url: str
    webcal_url: str
    google_subscribe_url: str


class FeedLinkRead(FeedLinks):
    kind: Literal["courses", "assignments", "combined"]


class IntegrationState(CamelModel):
    status: Literal["connected", "not_connected"]
    settings: IntegrationSettingsRead
    feeds: List[FeedLinkRead] = []


# --- POST actions ---

class EnsureFeedsAction(CamelModel):
    action: Literal["ensure_feeds"]
    feed_mode: Literal["separate", "combined"] = "separate"

    @field_validator("feed_mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value):
        return normalize_feed_mode(value)


class RotateFeedsAction(CamelModel):
    action: Literal["rotate_feeds"]
    kinds: Optional[List[str]] = None

    @field_validator("kinds", mode="before")
    @classmethod
    def _known_kinds(cls, value):
        return normalize_feed_kinds(value) or None


class DisconnectAllAction(CamelModel):
    action: Literal["disconnect_all"]


IntegrationAction = Annotated[
    Union[EnsureFeedsAction, RotateFeedsAction, DisconnectAllAction],
    Field(discriminator="action"),
]

integration_action_adapter = TypeAdapter(IntegrationAction)


class ErrorResponse(BaseModel):
    error: str
