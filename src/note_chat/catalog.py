"""Model catalog ranking and user model selection."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import logging
from typing import Any

from .completion import ClientCache
from .models import ModelCatalogEntry, SizeTier

LOGGER = logging.getLogger(__name__)

ModelListener = Callable[[str, str], None]


def _rank_key(entry: ModelCatalogEntry) -> tuple[int, str]:
    tier_rank = entry.size_tier.rank if entry.size_tier is not None else len(SizeTier)
    return (tier_rank, entry.id)


class ModelCatalog:
    """Immutable, ranked list of the models a user may pick from.

    Entries sort by size tier (small, medium, large, experimental, then
    untiered) and by id within a tier. Ranking happens once at construction.
    """

    def __init__(self, entries: Iterable[ModelCatalogEntry] = ()) -> None:
        self._ranked: tuple[ModelCatalogEntry, ...] = tuple(sorted(entries, key=_rank_key))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ModelCatalog:
        """Build a catalog from the validated ``catalog`` config list."""
        entries: list[ModelCatalogEntry] = []
        for item in config.get("catalog", []):
            tier = item.get("size_tier")
            entries.append(
                ModelCatalogEntry(
                    id=item["id"],
                    size_tier=SizeTier(tier) if tier else None,
                )
            )
        return cls(entries)

    def __len__(self) -> int:
        return len(self._ranked)

    def ranked_catalog(self) -> tuple[ModelCatalogEntry, ...]:
        return self._ranked

    def default_model(self) -> str:
        return self._ranked[0].id if self._ranked else ""

    def get(self, model_id: str) -> ModelCatalogEntry | None:
        for entry in self._ranked:
            if entry.id == model_id:
                return entry
        return None


class ModelSelector:
    """Hold the selected model and broadcast changes.

    A change invalidates the cached completion client and notifies listeners
    with ``(previous, current)`` so sessions can start fresh.
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        client_cache: ClientCache | None = None,
    ) -> None:
        self.catalog = catalog
        self.client_cache = client_cache
        self._selected = catalog.default_model()
        self._listeners: list[ModelListener] = []

    @property
    def selected_model(self) -> str:
        return self._selected

    def ranked_catalog(self) -> tuple[ModelCatalogEntry, ...]:
        return self.catalog.ranked_catalog()

    def default_model(self) -> str:
        return self.catalog.default_model()

    def add_listener(self, listener: ModelListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ModelListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def select(self, model_id: str) -> bool:
        """Select ``model_id``; return False when it is already selected."""
        if model_id == self._selected:
            return False

        previous = self._selected
        self._selected = model_id
        if self.client_cache is not None:
            self.client_cache.invalidate()
        LOGGER.info(
            "model.selected",
            extra={"event": "model.selected", "previous": previous, "model": model_id},
        )
        for listener in list(self._listeners):
            listener(previous, model_id)
        return True

    def current_label(self) -> str:
        entry = self.catalog.get(self._selected)
        if entry is not None:
            return entry.label
        return self._selected
