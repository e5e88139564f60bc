"""HTTP entry point for tracker webhooks.

Every registered path accepts POST, stores the delivery in the inbox and
nudges the dispatcher. Nothing is processed inline: a 202 only means the
delivery is persisted.
"""
import json
import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def create_app(inbox, dispatcher):
    app = FastAPI(title="tracker-messenger-bridge")

    def make_receiver(path):
        async def receive(request: Request):
            try:
                body = await request.body()
            except Exception:
                logger.exception("unable to read webhook body on %s", path)
                return JSONResponse({"error": "internal error"}, status_code=500)
            if not body:
                return JSONResponse({"error": "empty body"}, status_code=400)

            try:
                # Names come back lowercased and a repeated header keeps its
                # first value. GitHub sends neither case that matters.
                headers = dict(request.headers)
                json.dumps(headers)
            except (TypeError, ValueError):
                logger.exception("unable to encode headers on %s", path)
                return JSONResponse({"error": "internal error"}, status_code=500)

            try:
                envelope_id = inbox.enqueue(path, headers, body)
            except sqlite3.Error:
                logger.exception("unable to store webhook on %s", path)
                return JSONResponse({"error": "internal error"}, status_code=500)

            logger.info("[envelope %d] accepted %d bytes on %s", envelope_id, len(body), path)
            dispatcher.notify()
            return JSONResponse({"id": envelope_id}, status_code=202)

        return receive

    for path in dispatcher.paths():
        app.add_api_route(path, make_receiver(path), methods=["POST"])

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "pending": inbox.count()}

    return app
