#!/usr/bin/env python3
"""
Task Board Server
-----------------
JSON API over the board controller. Browser drag/drop and category-button
handlers post resolved identifiers here; every response carries the fresh
board snapshot so the page can redraw from it.

Usage:
    python board_server.py --port 3000 --db ~/.local/share/taskboard/board.db

API:
    GET    /api/board                                  → snapshot
    POST   /api/tasks                                  → create { title, container?, ... }
    POST   /api/tasks/<id>/drop                        → { target: "target-done-table" }
    POST   /api/tasks/<id>/category                    → { category: "done-category" }
    POST   /api/tasks/<id>/subtasks/<subtask_id>/toggle
    DELETE /api/tasks/<id>
    DELETE /api/tasks                                  → clear board
    GET    /health
"""

import asyncio
import logging
import os
import sys
import threading
from typing import Optional

from flask import Flask, jsonify, request

from pkg.taskboard.classifier import UnknownContainer
from pkg.taskboard.config import Config
from pkg.taskboard.controller import BoardController
from pkg.taskboard.persistence import PersistenceSynchronizer, make_backend
from pkg.taskboard.progress import SubtaskNotFound
from pkg.taskboard.projection import board_snapshot, task_card
from pkg.taskboard.schema import Assignee
from pkg.taskboard.store import DuplicateTask, TaskNotFound

logger = logging.getLogger(__name__)

app = Flask(__name__)

# One board operation at a time: mutate → flush must finish before the next starts
_board_lock = threading.Lock()
_controller: Optional[BoardController] = None


def _install(controller: BoardController, load: bool) -> None:
    global _controller
    _controller = controller
    if load:
        asyncio.run(controller.load())


def init_board(controller: BoardController, load: bool = True) -> BoardController:
    """Install the controller the routes act on (and load persisted state)."""
    with _board_lock:
        _install(controller, load)
    return controller


def get_controller() -> BoardController:
    if _controller is None:
        with _board_lock:
            # Another request may have built it while we waited
            if _controller is None:
                config = Config.load()
                _install(BoardController(PersistenceSynchronizer(make_backend(config))), load=True)
    return _controller


def run_board(operation, *args, **kwargs):
    """Run one controller coroutine to completion under the board lock."""
    controller = get_controller()
    with _board_lock:
        return asyncio.run(operation(controller, *args, **kwargs))


def board_response(status: int = 200, **extra):
    body = dict(extra)
    body["board"] = board_snapshot(get_controller().store)
    body["persisted"] = get_controller().last_flush_ok
    return jsonify(body), status


# ── Routes ───────────────────────────────────────────────────────────────────

@app.route("/api/board")
def api_board():
    return jsonify(board_snapshot(get_controller().store))


@app.route("/api/tasks", methods=["POST"])
def api_create_task():
    data = request.get_json(force=True, silent=True) or {}
    title = str(data.get("title", "")).strip()
    if not title:
        return jsonify({"error": "title is required"}), 400

    task_id = data.get("id")
    if task_id is not None and (isinstance(task_id, bool) or not isinstance(task_id, (str, int))):
        return jsonify({"error": "id must be a string or integer"}), 400

    raw_subtasks = data.get("subtasks") or []
    if not isinstance(raw_subtasks, list):
        return jsonify({"error": "subtasks must be a list"}), 400
    raw_assignees = data.get("assignees") or []
    if not isinstance(raw_assignees, list):
        return jsonify({"error": "assignees must be a list"}), 400

    assignees = [
        Assignee(name=str(a.get("name") or ""), color=str(a.get("color") or ""))
        for a in raw_assignees if isinstance(a, dict)
    ]
    try:
        task = run_board(
            BoardController.create_task,
            title,
            container=data.get("container", "to_do"),
            task_id=task_id,
            description=data.get("description", ""),
            category=data.get("category", ""),
            category_color=data.get("category_color", ""),
            priority=data.get("priority", "low"),
            created_at=data.get("created_at", ""),
            assignees=assignees,
            subtasks=[str(s) for s in raw_subtasks],
        )
    except UnknownContainer as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateTask as e:
        return jsonify({"error": str(e)}), 409
    return board_response(201, task=task_card(task))


@app.route("/api/tasks/<task_id>/drop", methods=["POST"])
def api_drop(task_id):
    data = request.get_json(force=True, silent=True) or {}
    try:
        task = run_board(BoardController.drop, task_id, data.get("target", ""))
    except TaskNotFound as e:
        return jsonify({"error": str(e)}), 404
    return board_response(moved=task is not None)


@app.route("/api/tasks/<task_id>/category", methods=["POST"])
def api_move_to_category(task_id):
    data = request.get_json(force=True, silent=True) or {}
    try:
        task = run_board(BoardController.move_to_category, task_id, data.get("category", ""))
    except TaskNotFound as e:
        return jsonify({"error": str(e)}), 404
    return board_response(moved=task is not None)


@app.route("/api/tasks/<task_id>/subtasks/<subtask_id>/toggle", methods=["POST"])
def api_toggle_subtask(task_id, subtask_id):
    try:
        done = run_board(BoardController.toggle_subtask, task_id, subtask_id)
    except (TaskNotFound, SubtaskNotFound) as e:
        return jsonify({"error": str(e)}), 404
    return board_response(done=done)


@app.route("/api/tasks/<task_id>", methods=["DELETE"])
def api_delete_task(task_id):
    try:
        run_board(BoardController.delete_task, task_id)
    except TaskNotFound as e:
        return jsonify({"error": str(e)}), 404
    return board_response(deleted=task_id)


@app.route("/api/tasks", methods=["DELETE"])
def api_clear_all():
    run_board(BoardController.clear_all)
    return board_response()


@app.route("/health")
def health():
    controller = get_controller()
    return jsonify({
        "status": "ok",
        "tasks": len(controller.store),
        "partition_errors": controller.store.partition_errors(),
    })


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--config", help="Path to taskboard.yaml (overrides TASKBOARD_CONFIG)")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to board.db (overrides TASKBOARD_DB env var)")
    args = parser.parse_args()

    if args.db:
        os.environ["TASKBOARD_DB"] = args.db

    config = Config.load(args.config)
    host = args.host or config.host
    port = args.port or config.port

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    controller = init_board(BoardController(PersistenceSynchronizer(make_backend(config))))
    logger.info(
        "Serving %d tasks on http://%s:%s (backend: %s)",
        len(controller.store), host, port, config.backend,
    )
    app.run(host=host, port=port, debug=False, threaded=True)
