# assistant.py
"""
Ответы AI-ассистента в чате.

Провайдер спрятан за ``ReplyGenerator``; ``ChatAssistant.reply`` никогда не
бросает исключений наружу: при любом сбое пишет в лог и возвращает
``FALLBACK_REPLY``, чтобы чату всегда было что показать.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from flask import Flask, current_app

log = logging.getLogger(__name__)

ASSISTANT_NAME = "CampusAI Assistant"
FALLBACK_REPLY = "I'm having trouble connecting to my AI services right now. Please try again in a moment."
GREETING_REPLY = "hey there! I am CampusAI Assistant. How can I help you?"
MAX_REPLY_CHARS = 4000  # совпадает с лимитом ChatMessageIn.content

PERSONA_TEMPLATE = """You are an AI assistant for a campus app called CampusAI. Your name is {assistant}.
You are chatting with a student named {user_name}. Be friendly, helpful, and concise in your responses.
You can help with questions about courses, campus resources, events, study tips, and general academic advice.
If asked about specific campus information that you don't know, suggest where they might find that information.
Keep responses under 150 words when possible."""


@dataclass(frozen=True)
class ContextTurn:
    content: str
    is_user_message: bool


class ReplyGenerator(Protocol):
    def generate_reply(self, persona: str, prior_context: Sequence[ContextTurn], message: str) -> str:
        ...


class GeminiReplyGenerator:
    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash", timeout: float = 20.0):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout

    def generate_reply(self, persona: str, prior_context: Sequence[ContextTurn], message: str) -> str:
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY is not configured")
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name, system_instruction=persona)
        contents = [
            {"role": "user" if turn.is_user_message else "model", "parts": [turn.content]}
            for turn in prior_context
        ]
        contents.append({"role": "user", "parts": [message]})
        response = model.generate_content(contents, request_options={"timeout": self.timeout})

        # нет кандидатов -> IndexError, это сбой; пустой кандидат -> ""
        candidate = response.candidates[0]
        parts = getattr(candidate.content, "parts", None) or []
        return getattr(parts[0], "text", "") if parts else ""


def build_persona(user_name: str) -> str:
    return PERSONA_TEMPLATE.format(assistant=ASSISTANT_NAME, user_name=user_name)


class ChatAssistant:
    def __init__(self, generator: ReplyGenerator):
        self.generator = generator

    def reply(self, user_name: str, message: str, history: Sequence[ContextTurn] = ()) -> str:
        try:
            text = self.generator.generate_reply(build_persona(user_name), list(history), message)
        except Exception:
            log.exception("AI reply generation failed")
            return FALLBACK_REPLY
        if not isinstance(text, str) or not text.strip():
            return GREETING_REPLY
        return text.strip()[:MAX_REPLY_CHARS]


def init_assistant(app: Flask, generator: Optional[ReplyGenerator] = None) -> ChatAssistant:
    generator = generator or GeminiReplyGenerator(
        api_key=app.config.get("GEMINI_API_KEY", ""),
        model_name=app.config.get("GEMINI_MODEL", "gemini-2.0-flash"),
        timeout=float(app.config.get("AI_TIMEOUT_SECONDS", 20)),
    )
    assistant = ChatAssistant(generator)
    app.extensions["chat_assistant"] = assistant
    return assistant


def get_assistant() -> ChatAssistant:
    return current_app.extensions["chat_assistant"]
