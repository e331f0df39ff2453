from __future__ import annotations

from flask import Flask

from ..common.http import json_body, login_required, ok
from ..container import Container
from ..employees.model import Actor


def register(app: Flask, container: Container) -> None:
    handler = container.bot_commands

    @app.route("/api/bot/command", methods=["POST"], endpoint="bot_command")
    @login_required
    def bot_command(actor: Actor):
        text = str(json_body().get("text") or "")
        return ok({"reply": handler.handle(actor, text)})
