"""Process entrypoint — build the client, dispatcher and webhook app, then serve."""

import asyncio

import uvicorn

from config import (
    BOT_TOKEN,
    LOG_LEVEL,
    REQUEST_TIMEOUT,
    TELEGRAM_API_BASE,
    TLS_SKIP_VERIFY,
    WEBHOOK_HOST,
    WEBHOOK_PATH,
    WEBHOOK_PORT,
    WEBHOOK_PUBLIC_URL,
    WEBHOOK_SECRET,
)
from bot.handlers import create_dispatcher
from bot.webhook import create_app
from core.logger import CourierLogger
from sdk.client import CourierClient

logger = CourierLogger.get_logger(LOG_LEVEL)


def main() -> None:
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    CourierLogger.capture("sdk")
    CourierLogger.capture("uvicorn")

    scope = asyncio.Event()
    client = CourierClient(
        BOT_TOKEN,
        scope=scope,
        timeout=REQUEST_TIMEOUT,
        skip_tls_verify=TLS_SKIP_VERIFY,
        api_base=TELEGRAM_API_BASE,
    )
    app = create_app(
        create_dispatcher(client),
        path=WEBHOOK_PATH,
        secret_token=WEBHOOK_SECRET,
        scope=scope,
        public_url=WEBHOOK_PUBLIC_URL,
    )

    logger.info("Webhook server starting", extra={"host": WEBHOOK_HOST, "port": WEBHOOK_PORT, "path": WEBHOOK_PATH})
    try:
        uvicorn.run(app, host=WEBHOOK_HOST, port=WEBHOOK_PORT, log_config=None)
    finally:
        client.close()


if __name__ == "__main__":
    main()
