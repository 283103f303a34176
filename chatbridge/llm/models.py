"""Friendly tier names for Claude model ids."""

import logging

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-1-20250805",
}

# Reverse lookup: full model string → friendly name
FRIENDLY_NAMES: dict[str, str] = {v: k for k, v in MODEL_MAP.items()}


def resolve(name_or_id: str) -> str | None:
    """Resolve a friendly name or full model ID. Returns full ID or None."""
    if name_or_id in MODEL_MAP:
        return MODEL_MAP[name_or_id]
    if name_or_id in FRIENDLY_NAMES:
        return name_or_id
    return None


def friendly(model_id: str) -> str:
    """Return the friendly name for a model ID, or the ID itself."""
    return FRIENDLY_NAMES.get(model_id, model_id)


def resolve_tiers(names: list[str]) -> list[str]:
    """Resolve configured tiers in order, dropping unknown names and duplicates."""
    tiers: list[str] = []
    for name in names:
        model_id = resolve(name.lower())
        if model_id is None:
            logger.warning("Ignoring unknown model tier '%s'", name)
            continue
        if model_id not in tiers:
            tiers.append(model_id)
    return tiers
