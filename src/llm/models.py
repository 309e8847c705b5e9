"""Model roles: the chat model writes replies, the fast model does the rest."""

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
    if name_or_id.startswith("claude-"):
        # Pinned ids we don't know about are passed through untouched.
        return name_or_id
    return None


def friendly(model_id: str) -> str:
    """Return the friendly name for a model ID, or the ID itself."""
    return FRIENDLY_NAMES.get(model_id, model_id)


class ModelRoles:
    """Which model serves each role.

    ``chat`` generates the user-facing reply. ``fast`` runs the short
    orchestration calls: tool selection, context summarisation and the
    wearable health analysis.
    """

    def __init__(self, chat: str = "sonnet", fast: str = "haiku") -> None:
        self.chat = resolve(chat) or MODEL_MAP["sonnet"]
        self.fast = resolve(fast) or MODEL_MAP["haiku"]
        logger.info("Models: chat=%s, fast=%s", friendly(self.chat), friendly(self.fast))
