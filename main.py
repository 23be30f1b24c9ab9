"""
Operations Bot server.

FastAPI, the Discord bot and the APScheduler jobs (reminders, roster
refresh, scheduled-operation purge) share one asyncio loop. The FastAPI
lifespan loads persisted operations before the bot connects and shuts
everything down in reverse order.

Run with: python main.py [--no-bot] [--port PORT]
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Cogs are loaded as "cogs.<name>", so discord_bot/ goes on the path last
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))
sys.path.append(str(project_root / "discord_bot"))

from dotenv import load_dotenv

load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI

from core.config import (
    check_required_env_vars,
    get_api_port,
    get_data_dir,
    get_reminder_hours,
    is_dev_mode,
)
from core.discord_outbound import DiscordPlatform, set_bot
from core.operations.runtime import build_runtime, get_runtime, set_runtime
from discord_bot.main import bot
from web_api.routes.operations import router as operations_router

logging.basicConfig(
    level=logging.DEBUG if is_dev_mode() else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("ENVIRONMENT", "development"),
        traces_sample_rate=0.1,
    )
    print("Sentry error tracking initialized")

_bot_task: asyncio.Task | None = None


def bot_disabled() -> bool:
    return os.getenv("DISABLE_DISCORD_BOT", "").lower() in ("true", "1", "yes")


async def run_bot():
    """Connect the bot with bot.start() so the API keeps the loop."""
    if bot_disabled():
        print("Discord bot disabled (--no-bot)")
        return

    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Warning: DISCORD_BOT_TOKEN not set, running without the bot")
        return

    try:
        await bot.start(token)
    except Exception as e:
        logger.error(f"Discord bot stopped with an error: {e}")
        sentry_sdk.capture_exception(e)
        raise


async def close_bot():
    if not bot.is_closed():
        await bot.close()
        print("Discord bot stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _bot_task

    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    data_dir = get_data_dir()
    set_bot(bot)
    runtime = build_runtime(data_dir, DiscordPlatform(bot), reminder_hours=get_reminder_hours())
    set_runtime(runtime)
    runtime.start()
    print(f"Loaded {len(runtime.registry.all_operations())} operation(s) from {data_dir}")

    _bot_task = asyncio.create_task(run_bot())

    yield

    print("Shutting down...")
    runtime.shutdown()
    await close_bot()
    if _bot_task:
        _bot_task.cancel()
        try:
            await _bot_task
        except asyncio.CancelledError:
            pass
    set_runtime(None)


app = FastAPI(title="Operations Bot API", lifespan=lifespan)
app.include_router(operations_router)


@app.get("/health")
async def health():
    runtime = get_runtime()
    ready = bot.is_ready()
    return {
        "status": "healthy",
        "bot_connected": ready,
        "bot_latency_ms": round(bot.latency * 1000) if ready else None,
        "scheduler_running": runtime.reminders.scheduler.running if runtime else False,
        "active_operations": len(runtime.registry.list_active()) if runtime else 0,
    }


if __name__ == "__main__":
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Operations Bot server")
    parser.add_argument("--no-bot", action="store_true", help="Serve the API without connecting to Discord")
    parser.add_argument("--port", type=int, default=get_api_port(), help="HTTP port (default: API_PORT or 8000)")
    args = parser.parse_args()

    if args.no_bot:
        os.environ["DISABLE_DISCORD_BOT"] = "true"

    uvicorn.run(app, host="0.0.0.0", port=args.port)
