"""Tests for conversation normalization."""

from __future__ import annotations

from shigen.core.generation.conversation import (
    drop_failed_exchanges,
    latest_prompt,
    normalize_conversation,
)
from shigen.core.generation.models import MessageRole, Turn, TurnKind, TurnRole


def _pairs(turns: list[Turn], system: str | None = None) -> list[tuple[str, str]]:
    return [(m.role.value, m.content) for m in normalize_conversation(turns, system)]


class TestNormalizeConversation:
    def test_alternating_turns_only_rename_roles(self) -> None:
        turns = [Turn.user("hi"), Turn.bot("hello"), Turn.user("how are you?")]
        assert _pairs(turns) == [
            ("user", "hi"),
            ("assistant", "hello"),
            ("user", "how are you?"),
        ]

    def test_system_instruction_first(self) -> None:
        messages = normalize_conversation([Turn.user("hi")], "Be brief.")
        assert messages[0].role == MessageRole.SYSTEM
        assert messages[0].content == "Be brief."
        assert len(messages) == 2

    def test_failed_exchange_removed(self) -> None:
        turns = [
            Turn.user("first"),
            Turn.bot("answer"),
            Turn.user("broken question"),
            Turn.error("Model failed"),
            Turn.user("retry"),
        ]
        pairs = _pairs(turns)
        contents = " ".join(content for _, content in pairs)
        assert "broken question" not in contents
        assert "Model failed" not in contents
        assert pairs == [("user", "first"), ("assistant", "answer"), ("user", "retry")]

    def test_same_role_merged_in_order(self) -> None:
        turns = [Turn.user("one"), Turn.user("two"), Turn.bot("a"), Turn.bot("b")]
        assert _pairs(turns) == [("user", "one\n\ntwo"), ("assistant", "a\n\nb")]

    def test_merge_after_dropping_failed_exchange(self) -> None:
        turns = [Turn.user("keep"), Turn.bot("reply"), Turn.user("lost"), Turn.error("x"), Turn.bot("late")]
        assert _pairs(turns) == [("user", "keep"), ("assistant", "reply\n\nlate")]

    def test_non_text_and_blank_turns_ignored(self) -> None:
        turns = [
            Turn(role=TurnRole.BOT, kind=TurnKind.IMAGE, text="https://img"),
            Turn(role=TurnRole.BOT, kind=TurnKind.LOADING),
            Turn.user("   "),
            Turn.user("real"),
        ]
        assert _pairs(turns) == [("user", "real")]

    def test_nothing_to_send_is_empty_even_with_system(self) -> None:
        assert normalize_conversation([Turn.error("x")], "system") == []
        assert normalize_conversation([]) == []

    def test_system_never_merged(self) -> None:
        messages = normalize_conversation([Turn.user("a")], "sys")
        assert [m.role for m in messages] == [MessageRole.SYSTEM, MessageRole.USER]

    def test_input_turns_untouched(self) -> None:
        turns = [Turn.user("one"), Turn.user("two")]
        normalize_conversation(turns)
        assert [t.text for t in turns] == ["one", "two"]


def test_drop_failed_exchanges_keeps_user_before_bot_text() -> None:
    turns = [Turn.user("q"), Turn.bot("a")]
    assert drop_failed_exchanges(turns) == turns


def test_latest_prompt() -> None:
    turns = [Turn.user("first"), Turn.bot("reply"), Turn.user("second"), Turn.error("oops")]
    assert latest_prompt(turns) == "reply"
    assert latest_prompt([Turn.user("only")]) == "only"
    assert latest_prompt([]) is None
