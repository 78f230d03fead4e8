from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher

from modbot.core.config import Settings
from modbot.core.container import Container, build_container
from modbot.core.logging import configure_logging, get_logger
from modbot.telegram.bot_factory import build_bots
from modbot.telegram.callbacks import callbacks_router
from modbot.telegram.middlewares.error_handler import ErrorHandlerMiddleware
from modbot.telegram.routers import messages as messages_router

logger = get_logger(__name__)


def build_dispatcher(container: Container) -> Dispatcher:
    dp = Dispatcher()
    dp.update.outer_middleware(ErrorHandlerMiddleware(logger=logger))

    dp.include_router(callbacks_router(container))
    dp.include_router(messages_router.router(container))
    return dp


async def _close(bots: list[Bot]) -> None:
    for bot in bots:
        await bot.session.close()


async def run_polling() -> None:
    settings = Settings()
    configure_logging(settings)

    container = build_container(settings)
    await container.startup()

    bots = build_bots(settings)
    dp = build_dispatcher(container)

    logger.info("bot_start", mode="polling", bots=len(bots))
    try:
        for bot in bots:
            await bot.delete_webhook(drop_pending_updates=False)
        await dp.start_polling(*bots, allowed_updates=dp.resolve_used_update_types())
    finally:
        await container.shutdown()
        await _close(bots)


def webhook_path(settings: Settings, bot: Bot) -> str:
    return f"{settings.webhook_path.rstrip('/')}/{bot.id}"


async def run_webhook() -> None:
    from aiohttp import web  # local import to keep polling lightweight
    from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

    settings = Settings()
    configure_logging(settings)

    if not settings.webhook_url:
        raise RuntimeError("WEBHOOK_URL must be set for webhook mode")

    container = build_container(settings)
    await container.startup()

    bots = build_bots(settings)
    dp = build_dispatcher(container)

    app = web.Application()
    for bot in bots:
        path = webhook_path(settings, bot)
        await bot.set_webhook(settings.webhook_url.rstrip("/") + path, allowed_updates=dp.resolve_used_update_types())
        SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path=path)
    setup_application(app, dp, bots=bots)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=settings.webhook_host, port=settings.webhook_port)

    logger.info("bot_start", mode="webhook", host=settings.webhook_host, port=settings.webhook_port, bots=len(bots))
    try:
        await site.start()
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
        await container.shutdown()
        await _close(bots)


def main() -> None:
    settings = Settings()
    if settings.bot_mode == "webhook":
        asyncio.run(run_webhook())
    else:
        asyncio.run(run_polling())


if __name__ == "__main__":
    main()
