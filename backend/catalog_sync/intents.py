"""Update intents computed by the reconciler and applied by a catalog store."""
from __future__ import annotations

import builtins
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from .episodes import episode_key

MediaType = Literal["movie", "tv"]

MOVIE: MediaType = "movie"
TV: MediaType = "tv"


@dataclass(slots=True)
class UpdateIntent:
    """A targeted write against one movie, show, season or episode document.

    ``season_number`` / ``episode_number`` select the embedded element the
    ``set`` and ``unset`` paths are relative to.
    """

    media_type: MediaType
    title: str
    family: str
    set: dict[str, Any] = field(default_factory=dict)
    # The "set" field shadows the builtin inside the class body.
    unset: builtins.set[str] = field(default_factory=builtins.set)
    season_number: int | None = None
    episode_number: int | None = None
    upsert: bool = False

    @property
    def level(self) -> str:
        if self.episode_number is not None:
            return "episode"
        if self.season_number is not None:
            return "season"
        return "media"

    @property
    def is_empty(self) -> bool:
        return not self.set and not self.unset

    def describe(self) -> str:
        target = self.title
        if self.season_number is not None and self.episode_number is not None:
            target += f" {episode_key(self.season_number, self.episode_number)}"
        elif self.season_number is not None:
            target += f" S{self.season_number:02d}"
        return f"{self.family}: {self.media_type} {target}"


def _locked_node(locked: Mapping[str, Any], path: str) -> Any:
    node: Any = locked
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
        if node is True:
            return True
    return node


def filter_locked_fields(
    document: Mapping[str, Any] | None,
    set_fields: Mapping[str, Any],
    unset_fields: set[str] | None = None,
) -> tuple[dict[str, Any], set[str]]:
    """Drop writes that touch paths flagged in the document's ``lockedFields``.

    When only part of a dict-valued field is locked, the write is split into
    dotted sub-paths so the unlocked parts still update.
    """

    locked = (document or {}).get("lockedFields") or {}
    if not locked:
        return dict(set_fields), set(unset_fields or ())

    allowed: dict[str, Any] = {}

    def visit(path: str, value: Any) -> None:
        node = _locked_node(locked, path)
        if node is True:
            return
        if isinstance(node, Mapping) and node and isinstance(value, Mapping):
            for key, sub_value in value.items():
                visit(f"{path}.{key}", sub_value)
            return
        allowed[path] = value

    for path, value in set_fields.items():
        visit(path, value)

    unset_allowed = {path for path in (unset_fields or ()) if _locked_node(locked, path) is not True}
    return allowed, unset_allowed


def build_intent(
    document: Mapping[str, Any] | None,
    *,
    media_type: MediaType,
    title: str,
    family: str,
    set_fields: Mapping[str, Any] | None = None,
    unset_fields: set[str] | None = None,
    season_number: int | None = None,
    episode_number: int | None = None,
    upsert: bool = False,
) -> UpdateIntent | None:
    """Create an intent after lock filtering, or ``None`` when nothing is left to write."""

    allowed_set, allowed_unset = filter_locked_fields(document, set_fields or {}, unset_fields)
    intent = UpdateIntent(
        media_type=media_type,
        title=title,
        family=family,
        set=allowed_set,
        unset=allowed_unset,
        season_number=season_number,
        episode_number=episode_number,
        upsert=upsert,
    )
    return None if intent.is_empty else intent
