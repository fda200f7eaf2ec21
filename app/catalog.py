"""Model catalog: fetch Raycast models, apply feature flags, map public ids."""

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import ValidationError

from .config import Settings
from .raycast_client import RaycastApiClient
from .raycast_models import ApiError, ModelEntry, RaycastModelsResponse, RaycastRawModel

logger = logging.getLogger(__name__)

FALLBACK_MODEL = ModelEntry(
    public_id="openai-gpt-4o-mini",
    provider="openai",
    internal_model="gpt-4o-mini",
)


def filter_models(
    raw_models: Iterable[Any],
    show_premium: bool = True,
    include_deprecated: bool = True,
) -> Dict[str, ModelEntry]:
    """
    Keep a model iff it passes both the premium and the deprecated gate.

    Entries are validated one at a time; a malformed entry is logged and
    skipped without affecting the rest of the listing.
    """
    models: Dict[str, ModelEntry] = {}
    for item in raw_models:
        try:
            raw = RaycastRawModel.model_validate(item)
        except ValidationError as e:
            logger.warning("Skipping malformed model entry %r: %s", item, e)
            continue

        is_premium = bool(raw.requires_better_ai)
        is_deprecated = raw.is_deprecated
        if (show_premium or not is_premium) and (include_deprecated or not is_deprecated):
            models[raw.id] = ModelEntry(
                public_id=raw.id,
                provider=raw.provider,
                internal_model=raw.model,
            )
        else:
            logger.debug(
                "Filtering out model: %s (Premium: %s, Deprecated: %s)",
                raw.id, is_premium, is_deprecated,
            )
    return models


async def resolve_catalog(client: RaycastApiClient, settings: Settings) -> Dict[str, ModelEntry]:
    """
    Fetch and filter the Raycast model list.

    Never raises: any fetch or parse failure is logged and yields an empty
    mapping, which callers treat as "no models available".
    """
    try:
        payload = await client.fetch_models()
        parsed = RaycastModelsResponse.model_validate(payload)
    except ApiError as e:
        logger.error("Error fetching models: %s", e.message)
        return {}
    except ValidationError as e:
        logger.error("Invalid Raycast models API response structure: %s", e)
        return {}

    show_premium = settings.show_premium
    include_deprecated = settings.include_deprecated
    logger.debug(
        "Filtering flags: show_premium=%s, include_deprecated=%s",
        show_premium, include_deprecated,
    )

    models = filter_models(parsed.models, show_premium, include_deprecated)
    logger.info("Fetched and filtered %d models.", len(models))
    if not models:
        logger.warning("No models available after filtering.")
    return models


def resolve_provider_info(public_id: str, catalog: Dict[str, ModelEntry]) -> ModelEntry:
    """Return the catalog entry for public_id, or the hardcoded fallback model."""
    entry = catalog.get(public_id)
    if entry is not None:
        return entry

    logger.warning('Model ID "%s" not found. Falling back to %s.', public_id, FALLBACK_MODEL.public_id)
    return FALLBACK_MODEL


class ModelCatalog:
    """
    Owner of the resolved catalog between requests.

    ttl <= 0 refetches on every call. Otherwise a non-empty catalog is reused
    for ttl seconds; failed (empty) fetches are never stored.
    """

    def __init__(self, ttl: float = 0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._models: Optional[Dict[str, ModelEntry]] = None
        self._fetched_at = 0.0

    def _fresh(self) -> bool:
        return (
            self.ttl > 0
            and self._models is not None
            and self._clock() - self._fetched_at < self.ttl
        )

    async def resolve(self, client: RaycastApiClient, settings: Settings) -> Dict[str, ModelEntry]:
        if self._fresh():
            return dict(self._models)

        models = await resolve_catalog(client, settings)
        if self.ttl > 0 and models:
            self._models = models
            self._fetched_at = self._clock()
        return dict(models)

    def invalidate(self) -> None:
        self._models = None
