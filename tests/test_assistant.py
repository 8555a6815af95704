from __future__ import annotations
import logging

from app import create_app
from assistant import (
    ASSISTANT_NAME, FALLBACK_REPLY, GREETING_REPLY, MAX_REPLY_CHARS,
    ChatAssistant, ContextTurn, GeminiReplyGenerator, get_assistant, init_assistant,
)

class ScriptedGenerator:
    """Детерминированный генератор: возвращает заданный ответ и запоминает вызовы."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def generate_reply(self, persona, prior_context, message):
        self.calls.append((persona, list(prior_context), message))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply

def test_reply_passes_persona_history_and_message():
    gen = ScriptedGenerator("  Sure, the library opens at 8.  ")
    history = [ContextTurn("hi", True), ContextTurn("hello!", False)]

    text = ChatAssistant(gen).reply("Pulkit", "When does the library open?", history)

    assert text == "Sure, the library opens at 8."
    persona, context, message = gen.calls[0]
    assert "Pulkit" in persona and ASSISTANT_NAME in persona
    assert context == history
    assert message == "When does the library open?"

def test_failure_degrades_to_fallback(caplog):
    gen = ScriptedGenerator(TimeoutError("deadline exceeded"))
    with caplog.at_level(logging.ERROR):
        text = ChatAssistant(gen).reply("Pulkit", "Hello")
    assert text == FALLBACK_REPLY
    assert any("AI reply generation failed" in r.getMessage() for r in caplog.records)

def test_empty_candidate_gives_greeting():
    assert ChatAssistant(ScriptedGenerator("")).reply("Pulkit", "Hello") == GREETING_REPLY
    assert ChatAssistant(ScriptedGenerator("   ")).reply("Pulkit", "Hello") == GREETING_REPLY
    assert ChatAssistant(ScriptedGenerator(None)).reply("Pulkit", "Hello") == GREETING_REPLY

def test_long_reply_truncated():
    text = ChatAssistant(ScriptedGenerator("x" * (MAX_REPLY_CHARS + 500))).reply("Pulkit", "essay please")
    assert len(text) == MAX_REPLY_CHARS

def test_missing_api_key_is_a_failure_not_an_error():
    assistant = ChatAssistant(GeminiReplyGenerator(api_key=""))
    assert assistant.reply("Pulkit", "Hello") == FALLBACK_REPLY

def test_init_assistant_registers_extension():
    app = create_app("test")
    gen = ScriptedGenerator("ok")
    assistant = init_assistant(app, gen)
    with app.app_context():
        assert get_assistant() is assistant
        assert get_assistant().reply("P", "ping") == "ok"

def test_default_generator_uses_config():
    app = create_app("test")
    app.config.update(GEMINI_API_KEY="k", GEMINI_MODEL="gemini-test", AI_TIMEOUT_SECONDS=3)
    gen = init_assistant(app).generator
    assert isinstance(gen, GeminiReplyGenerator)
    assert (gen.api_key, gen.model_name, gen.timeout) == ("k", "gemini-test", 3.0)
