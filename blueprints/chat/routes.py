# blueprints/chat/routes.py
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify, request

from assistant import ContextTurn, get_assistant
from blueprints.auth.routes import SessionContext, auth_required
from blueprints.core.responses import api_call
from schemas import ChatExchange, ChatMessageIn, parse
from storage import storage

log = logging.getLogger(__name__)

api_bp = Blueprint("chat_api", __name__)


@api_bp.get("/chat/messages")
@auth_required
@api_call("Failed to fetch chat messages")
def list_messages(ctx: SessionContext):
    return jsonify([m.to_json() for m in storage.get_chat_messages_by_user(ctx.user_id)])


@api_bp.post("/chat/messages")
@auth_required
@api_call("Failed to send message")
def send_message(ctx: SessionContext):
    """
    1) сохранить сообщение пользователя
    2) узнать имя для обращения
    3) получить ответ ассистента (никогда не падает, в худшем случае fallback-строка)
    4) сохранить ответ и вернуть оба сообщения
    """
    data = parse(ChatMessageIn, request.get_json(silent=True) or {}, user_id=ctx.user_id, is_user_message=True)

    limit = int(current_app.config.get("CHAT_CONTEXT_MESSAGES", 6))
    history = storage.get_chat_messages_by_user(ctx.user_id, limit=limit) if limit > 0 else []

    user_message = storage.create_chat_message(data)

    user = storage.get_user(ctx.user_id)
    name = (user.full_name.split() or [user.username])[0] if user else ctx.display_name

    reply = get_assistant().reply(
        name,
        data.content,
        [ContextTurn(content=m.content, is_user_message=m.is_user_message) for m in history],
    )

    ai_response = storage.create_chat_message(
        ChatMessageIn(user_id=ctx.user_id, content=reply, is_user_message=False)
    )
    log.info("chat exchange stored", extra={"user_id": ctx.user_id})
    return jsonify(ChatExchange(user_message=user_message, ai_response=ai_response).to_json()), 201
