"""Conversation normalization.

Turns the UI's raw turn list into the minimal message list chat backends
accept: no error turns, no user turn whose reply failed, no adjacent messages
from the same role, and the system instruction first.
"""

from __future__ import annotations

from collections.abc import Sequence

from shigen.core.generation.models import (
    MessageRole,
    NormalizedMessage,
    Turn,
    TurnKind,
    TurnRole,
)

_ROLE_MAP = {TurnRole.USER: MessageRole.USER, TurnRole.BOT: MessageRole.ASSISTANT}


def _is_error(turn: Turn | None) -> bool:
    return turn is not None and turn.kind == TurnKind.ERROR


def drop_failed_exchanges(turns: Sequence[Turn]) -> list[Turn]:
    """Remove error turns and any user turn answered by an error turn."""
    kept: list[Turn] = []
    for i, turn in enumerate(turns):
        successor = turns[i + 1] if i + 1 < len(turns) else None
        if _is_error(turn):
            continue
        if turn.role == TurnRole.USER and successor is not None:
            if successor.role == TurnRole.BOT and _is_error(successor):
                continue
        kept.append(turn)
    return kept


def text_turns(turns: Sequence[Turn]) -> list[Turn]:
    """Text turns with non-blank content."""
    return [t for t in turns if t.kind == TurnKind.TEXT and t.text.strip()]


def normalize_conversation(
    turns: Sequence[Turn], system_instruction: str | None = None
) -> list[NormalizedMessage]:
    """Build a backend-safe message list from conversation turns.

    Args:
        turns: Conversation turns in display order
        system_instruction: Optional directive sent as the first message

    Returns:
        Ordered messages, or an empty list when there is nothing to send
        (callers treat that as "nothing to send", not as an error)
    """
    usable = text_turns(drop_failed_exchanges(turns))
    if not usable:
        return []

    messages: list[NormalizedMessage] = []
    if system_instruction:
        messages.append(NormalizedMessage(role=MessageRole.SYSTEM, content=system_instruction))

    for turn in usable:
        role = _ROLE_MAP[turn.role]
        if messages and messages[-1].role == role:
            messages[-1].content += f"\n\n{turn.text}"
        else:
            messages.append(NormalizedMessage(role=role, content=turn.text))
    return messages


def latest_prompt(turns: Sequence[Turn]) -> str | None:
    """Content of the most recent usable text turn (for non-chat models)."""
    usable = text_turns(drop_failed_exchanges(turns))
    return usable[-1].text if usable else None
