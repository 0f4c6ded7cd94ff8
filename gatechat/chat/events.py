"""
Outbound control-channel frames. Every frame is a JSON object with a ``type`` key.
"""
import time
from typing import Any, Dict, Iterable, List

from gatechat.model.message import KIND_FILE, Message


def now_ms() -> int:
    return int(time.time() * 1000)


def error(message: str) -> Dict[str, Any]:
    return {"type": "error", "error": message}


def state(kind: str) -> Dict[str, Any]:
    """Bare confirmations: waiting, joined, denied, admin-attached, chat-cleared."""
    return {"type": kind}


def message_payload(msg: Message) -> Dict[str, Any]:
    """Serialize a stored message the same way it was broadcast live."""
    if msg.kind == KIND_FILE:
        return {
            "type": "file",
            "sender": msg.sender,
            "url": msg.url,
            "mime": msg.mime,
            "name": msg.name,
            "ts": msg.ts,
        }
    return {"type": "chat", "sender": msg.sender, "text": msg.text, "ts": msg.ts}


def history(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "history", "messages": messages}


def join_request(request_id: str, sender: str, ts: int) -> Dict[str, Any]:
    return {"type": "join-request", "requestId": request_id, "sender": sender, "ts": ts}


def join_request_closed(request_id: str) -> Dict[str, Any]:
    return {"type": "join-request-closed", "requestId": request_id}


def pending_list(requests: Iterable[Any]) -> Dict[str, Any]:
    return {
        "type": "pending-list",
        "requests": [
            {"requestId": r.request_id, "sender": r.sender, "ts": r.created_at}
            for r in requests
        ],
    }


def system(text: str) -> Dict[str, Any]:
    return {"type": "system", "text": text, "ts": now_ms()}


def room_status(enabled: bool) -> Dict[str, Any]:
    return {"type": "room-status", "enabled": enabled}


def kicked(reason: str) -> Dict[str, Any]:
    return {"type": "kicked", "reason": reason}
