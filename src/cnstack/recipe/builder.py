"""
Recipe resolution: base + matching overlays → Recipe.

Manifesto:
    Resolution must be deterministic and isolated. Two builds of the same
    query produce the same measurements and matched rules, and nothing a
    caller does to one recipe can leak into the shared store or into the
    next build.

    - **Clone first:** The base is deep-copied before any overlay touches it
    - **Document order:** Overlays apply in the order they are declared,
      later ones winning on reading-key collisions
    - **One measurement per type:** Overlay measurements merge into an
      existing type or are appended as a new one

Architecture:
    ::

        build(query)
          1. store = load_store()                 (or the injected Store)
          2. working = clone(store.base)
          3. index   = {type: measurement}
          4. for overlay in store.overlays:       (declared order)
                 if matches(overlay.key, query):
                     matched_rules.append(str(overlay.key))
                     for m in overlay.types:
                         index[m.type].merge(m)   or   append(m.clone())
          5. Recipe(request, working, matched_rules, now, payload_version)

Examples:
    >>> builder = RecipeBuilder(store=Store.from_yaml(text))
    >>> recipe = builder.build(Query(service="eks"))
    >>> recipe.matched_rules
    ['OS: any any, Kernel: any, Service: eks, K8s: any, GPU: any, Intent: any']

Tags:
    resolver, overlays, merge, clone-on-read, cnstack

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cnstack import __version__
from cnstack.core.context import RunContext
from cnstack.core.errors import InvalidRequestError
from cnstack.core.logging import get_logger
from cnstack.measurement.types import Measurement, MeasurementType, clone_measurements
from cnstack.recipe.matcher import matches
from cnstack.recipe.query import Query
from cnstack.recipe.recipe import Recipe
from cnstack.recipe.store import Store, load_store

if TYPE_CHECKING:
    from cnstack.core.settings import CnsSettings

logger = get_logger(__name__)


class RecipeBuilder:
    """
    Resolves queries against an overlay store.

    Pass ``store`` to resolve against an explicit snapshot; without one the
    process-wide packaged store is loaded on first use.
    """

    def __init__(self, store: Store | None = None, *, version: str | None = None):
        self._store = store
        self.version = version or __version__

    @classmethod
    def from_settings(cls, settings: CnsSettings, store: Store | None = None) -> RecipeBuilder:
        return cls(store=store, version=settings.payload_version)

    @property
    def store(self) -> Store:
        if self._store is None:
            return load_store()
        return self._store

    def build(
        self,
        query: Query | None,
        *,
        ctx: RunContext | None = None,
        include_context: bool = True,
    ) -> Recipe:
        """
        Resolve ``query`` into a fresh Recipe.

        Args:
            query: Platform to resolve for
            ctx: Optional run context; checked before resolution starts
            include_context: Keep per-field provenance notes on subtypes

        Raises:
            InvalidRequestError: query missing or not a Query
            StoreLoadError: the store could not be loaded
            DeadlineExceededError: ``ctx`` already expired or cancelled
        """
        if query is None:
            raise InvalidRequestError("query is required").with_context(field="query")
        if not isinstance(query, Query):
            raise InvalidRequestError(
                f"expected Query, got {type(query).__name__}"
            ).with_context(field="query")

        if ctx is not None:
            ctx.check("recipe.build")

        store = self.store
        logger.debug("recipe.build.start", query=str(query))

        measurements = clone_measurements(store.base)
        index: dict[MeasurementType, Measurement] = {m.type: m for m in measurements}
        matched_rules: list[str] = []

        for overlay in store.overlays:
            if not matches(overlay.key, query):
                continue
            matched_rules.append(overlay.rule)
            logger.debug("recipe.overlay.matched", rule=overlay.rule)

            for incoming in overlay.types:
                existing = index.get(incoming.type)
                if existing is not None:
                    existing.merge(incoming)
                    continue
                copied = incoming.clone()
                measurements.append(copied)
                index[copied.type] = copied

        if not matched_rules:
            logger.warning("recipe.build.no_overlays", query=str(query))

        if not include_context:
            for m in measurements:
                for subtype in m.subtypes:
                    subtype.context = {}

        recipe = Recipe(
            request=query,
            measurements=measurements,
            matched_rules=matched_rules,
            generated_at=datetime.now(UTC),
            payload_version=self.version,
        )
        logger.info(
            "recipe.build.complete",
            matched_rules=len(matched_rules),
            measurements=len(measurements),
        )
        return recipe


def build_recipe(query: Query | None, *, store: Store | None = None) -> Recipe:
    """Resolve a query with a default builder."""
    return RecipeBuilder(store=store).build(query)


__all__ = ["RecipeBuilder", "build_recipe"]
