"""FastAPI application receiving Telegram webhook callbacks.

``POST <path>`` decodes the body into an :class:`~sdk.models.Update`,
answers ``200 Received`` and hands the update to the dispatcher as a
background task, so Telegram gets its acknowledgement before any handler
runs and each delivery is dispatched at most once.  A body that cannot be
read or decoded is answered with 500; other methods on the path get 405.
"""

from __future__ import annotations

import asyncio
import hmac
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.requests import ClientDisconnect

from bot.dispatcher import UpdateDispatcher
from core.logger import CourierLogger
from sdk.codec import decode_update
from sdk.exceptions import DecodeError, TelegramError

logger = CourierLogger.get_logger()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def verify_secret_token(headers: Mapping[str, str], expected_secret: Optional[str]) -> bool:
    """Validate the Telegram webhook secret token header.

    Telegram echoes the ``secret_token`` given to ``setWebhook`` in every
    delivery.  Without a configured secret every request is accepted.
    """
    if not expected_secret:
        return True
    provided = headers.get(SECRET_HEADER)
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected_secret.encode("utf-8"))


def create_app(
    dispatcher: UpdateDispatcher,
    *,
    path: str = "/webhook",
    secret_token: Optional[str] = None,
    scope: Optional[asyncio.Event] = None,
    public_url: Optional[str] = None,
) -> FastAPI:
    """Build the webhook application around *dispatcher*.

    Args:
        dispatcher: Receives every decoded update.
        path: Route the webhook is mounted at.
        secret_token: Required value of the secret header, if any.
        scope: Cancellation scope of the client; set on shutdown so
            in-flight API calls abort.
        public_url: When given, ``setWebhook`` is called with
            ``public_url + path`` at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup / shutdown hooks."""
        if public_url:
            webhook_url = public_url.rstrip("/") + path
            try:
                await dispatcher.client.set_webhook(webhook_url, secret_token=secret_token)
                logger.info("Webhook registered", extra={"webhook_url": webhook_url})
            except TelegramError as exc:
                logger.warning("Webhook registration failed", extra={"webhook_url": webhook_url, "error": str(exc)})
        yield
        if scope is not None:
            scope.set()
        logger.info("Webhook server stopped")

    app = FastAPI(title="tgcourier", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post(path, response_class=PlainTextResponse)
    async def receive_update(request: Request, background: BackgroundTasks) -> PlainTextResponse:
        """Receive one Telegram update."""
        if not verify_secret_token(request.headers, secret_token):
            logger.warning("Webhook secret mismatch", extra={"client": request.client.host if request.client else None})
            return PlainTextResponse("Forbidden", status_code=403)

        try:
            body = await request.body()
        except ClientDisconnect:
            logger.warning("Webhook body could not be read")
            return PlainTextResponse("Failed to read request body", status_code=500)

        try:
            update = decode_update(body)
        except DecodeError as exc:
            logger.warning("Webhook body is not a valid update", extra={"error": str(exc), "body_size": len(body)})
            return PlainTextResponse("Failed to decode update", status_code=500)

        background.add_task(dispatcher.process_update, update)
        return PlainTextResponse("Received")

    return app
