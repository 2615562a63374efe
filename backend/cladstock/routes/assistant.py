# Overview: Flask API routes for AI counting, inventory Q&A and chat history.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError
from ..services import assistant_service, item_service
from ..services.assistant_service import AssistantError, AssistantNotConfigured
from ..storage import get_storage
from ..validation import ValidationError, optional_text, require_int
from . import fail, json_body, unexpected

assistant_bp = Blueprint("assistant", __name__, url_prefix="/api")


@assistant_bp.post("/ai-count")
@require_auth
@require_permission("USE_ASSISTANT")
def ai_count_route():
    """
    Request body: {"image": "data:image/jpeg;base64,..."}

    Returns:
        200: {"count": int, "confidence": str, "notes"/"message": str}
        400: no image
        502: AI call failed
    """
    image = json_body().get("image")
    if not image or not isinstance(image, str):
        return jsonify({"error": "No image provided"}), 400

    try:
        return jsonify(assistant_service.estimate_count(image))
    except AssistantError as e:
        current_app.logger.warning("AI count failed: %s", e)
        return jsonify({"error": str(e)}), 502


@assistant_bp.get("/ai-count/logs")
@require_auth
@require_permission("USE_ASSISTANT")
def list_ai_logs_route():
    logs = assistant_service.list_ai_count_logs(item_id=request.args.get("item_id"))
    return jsonify({"logs": [log.to_dict() for log in logs]})


@assistant_bp.post("/ai-count/logs")
@require_auth
@require_permission("USE_ASSISTANT")
def create_ai_log_route():
    """
    Request body:
    {
        "image_url": str,
        "ai_count": int,
        "confirmed_count": int,
        "item_id": str (optional),
        "profile_name": str (optional)
    }
    """
    data = json_body()
    try:
        image_url = optional_text(data, "image_url")
        if not image_url:
            raise ValidationError("Missing required field: image_url")
        log = assistant_service.log_ai_count(
            image_url=image_url,
            ai_count=require_int(data, "ai_count", minimum=0),
            confirmed_count=require_int(data, "confirmed_count", minimum=0),
            actor=g.current_user,
            item_id=optional_text(data, "item_id"),
            profile_name=optional_text(data, "profile_name"),
        )
        get_storage().commit()
        return jsonify({"log": log.to_dict()}), 201
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Log AI count")


@assistant_bp.post("/assistant")
@require_auth
@require_permission("USE_ASSISTANT")
def assistant_route():
    """
    Request body:
    {
        "question": str,
        "conversation_history": [{"role": "user" | "assistant", "content": str}] (optional)
    }

    The inventory snapshot is read from storage, not taken from the client.
    """
    data = json_body()
    question = optional_text(data, "question")
    if not question:
        return jsonify({"error": "No question provided"}), 400

    history = data.get("conversation_history") or data.get("conversationHistory") or []
    if not isinstance(history, list):
        return jsonify({"error": "conversation_history must be a list"}), 400

    try:
        answer = assistant_service.answer_question(question, item_service.list_items(), history)
    except AssistantNotConfigured as e:
        return jsonify({"answer": str(e), "error": "API key not configured"}), 503
    except AssistantError as e:
        current_app.logger.warning("Assistant failed: %s", e)
        return jsonify({"error": str(e)}), 502

    return jsonify({"answer": answer})


@assistant_bp.get("/chat/messages")
@require_auth
@require_permission("USE_ASSISTANT")
def list_chat_route():
    """The caller's own chat history, oldest first."""
    messages = assistant_service.list_chat_messages(user_id=g.current_user.id)
    return jsonify({"messages": [m.to_dict() for m in messages]})


@assistant_bp.post("/chat/messages")
@require_auth
@require_permission("USE_ASSISTANT")
def add_chat_route():
    """Request body: {"role": "user" | "assistant", "content": str}"""
    data = json_body()
    content = optional_text(data, "content")
    if not content:
        return jsonify({"error": "content is required"}), 400

    try:
        message = assistant_service.add_chat_message(g.current_user, data.get("role") or "user", content)
        get_storage().commit()
        return jsonify({"message": message.to_dict()}), 201
    except ValueError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Add chat message")


@assistant_bp.delete("/chat/messages")
@require_auth
@require_permission("USE_ASSISTANT")
def clear_chat_route():
    try:
        deleted = assistant_service.clear_chat_messages(g.current_user.id)
        get_storage().commit()
        return jsonify({"success": True, "deleted": deleted})
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Clear chat")
