"""Explicit mapping of filter definition ids to their handlers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from quizgraph.errors import UnknownFilterError
from quizgraph.filters.anime_type import AnimeTypeFilter
from quizgraph.filters.base import FilterKind
from quizgraph.filters.difficulty import SongDifficultyFilter
from quizgraph.filters.score import anime_score_filter, player_score_filter
from quizgraph.filters.song_categories import SongCategoriesFilter
from quizgraph.filters.songs_and_types import SongsAndTypesFilter
from quizgraph.filters.tag_sets import genres_filter, tags_filter
from quizgraph.filters.vintage import VintageFilter


class FilterRegistry:
    """Filter kinds keyed by definition id.

    Registries are built and passed around explicitly; nothing registers
    itself on import.
    """

    def __init__(self, kinds: Iterable[FilterKind] = ()) -> None:
        self._kinds: dict[str, FilterKind] = {}
        for kind in kinds:
            self.register(kind)

    def register(self, kind: FilterKind) -> None:
        """Add a filter kind.

        Raises:
            ValueError: If the kind has no id or the id is already taken.
        """
        if not kind.definition_id:
            raise ValueError("filter kind has no definition_id")
        if kind.definition_id in self._kinds:
            raise ValueError(f"filter '{kind.definition_id}' is already registered")
        self._kinds[kind.definition_id] = kind

    def get(self, definition_id: str) -> FilterKind:
        """Look up a filter kind.

        Raises:
            UnknownFilterError: If no kind has this id.
        """
        try:
            return self._kinds[definition_id]
        except KeyError:
            raise UnknownFilterError(f"Unknown filter type: {definition_id}") from None

    def ids(self) -> list[str]:
        return list(self._kinds)

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._kinds

    def __iter__(self) -> Iterator[FilterKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


def default_registry() -> FilterRegistry:
    """Registry with every built-in filter kind."""
    return FilterRegistry(
        [
            SongsAndTypesFilter(),
            VintageFilter(),
            SongDifficultyFilter(),
            player_score_filter(),
            anime_score_filter(),
            AnimeTypeFilter(),
            SongCategoriesFilter(),
            genres_filter(),
            tags_filter(),
        ]
    )
