from __future__ import annotations

import math
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..game.codes import normalize_code
from ..game.errors import ValidationError
from ..game.service import RoomService
from ..game.visibility import room_public_state

bp = Blueprint("rooms", __name__)


def get_room_service() -> RoomService:
    return current_app.extensions["census"]


def _body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", code="invalid_payload")
    return value.strip()


def _parse_duration(data: dict[str, Any]) -> float | None:
    raw = data.get("questionDurationSeconds")
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationError("questionDurationSeconds must be a number", code="invalid_duration")
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            pass
    raise ValidationError("questionDurationSeconds must be a number", code="invalid_duration")


def _parse_index(data: dict[str, Any]) -> int:
    raw = data.get("questionIndex")
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("questionIndex is required", code="invalid_question_index")
    if isinstance(raw, float) and math.isfinite(raw) and raw.is_integer():
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise ValidationError("questionIndex must be an integer", code="invalid_question_index")


@bp.post("/rooms")
def create_room():
    data = _body()
    host_name = data.get("hostName")
    if not isinstance(host_name, str):
        host_name = ""
    room, player_id = get_room_service().create_room(host_name, _parse_duration(data))
    return jsonify({"room": room_public_state(room), "playerId": player_id})


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = get_room_service().get_room(code)
    return jsonify(room_public_state(room))


@bp.delete("/rooms/<code>")
def delete_room(code: str):
    data = _body()
    get_room_service().delete_room(code, _require_str(data, "playerId"))
    return jsonify({"ok": True})


@bp.post("/rooms/<code>/join")
def join_room(code: str):
    data = _body()
    name = data.get("name")
    if not isinstance(name, str):
        name = ""
    room, player_id = get_room_service().join_room(code, name)
    return jsonify({"room": room_public_state(room), "playerId": player_id})


@bp.post("/rooms/<code>/start-question")
def start_question(code: str):
    data = _body()
    room = get_room_service().start_question_phase(code, _require_str(data, "playerId"))
    return jsonify(room_public_state(room))


@bp.post("/rooms/<code>/submit-question")
def submit_question(code: str):
    data = _body()
    text = data.get("text")
    if not isinstance(text, str):
        text = ""
    room = get_room_service().submit_question(code, _require_str(data, "playerId"), text)
    return jsonify(room_public_state(room))


@bp.post("/rooms/<code>/start-review")
def start_review(code: str):
    data = _body()
    room = get_room_service().start_review_phase(code, _require_str(data, "playerId"))
    return jsonify(room_public_state(room))


@bp.post("/rooms/<code>/vote")
def vote(code: str):
    data = _body()
    room = get_room_service().submit_vote(
        code,
        _require_str(data, "playerId"),
        _require_str(data, "targetPlayerId"),
        _parse_index(data),
    )
    return jsonify(room_public_state(room))


@bp.post("/rooms/<code>/next-question")
def next_question(code: str):
    # Kept for older clients; ends the review for everyone.
    data = _body()
    room = get_room_service().end_review_early(code, _require_str(data, "playerId"))
    return jsonify(room_public_state(room))


@bp.post("/rooms/<code>/complete")
def complete(code: str):
    data = _body()
    room = get_room_service().complete_room(code, _require_str(data, "playerId"))
    return jsonify(room_public_state(room))


@bp.get("/rooms/<code>/results")
def results(code: str):
    service = get_room_service()
    return jsonify({"roomCode": normalize_code(code), "results": service.get_results(code)})
