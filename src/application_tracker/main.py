import argparse
import asyncio
import json
import os
import signal
import sys

from loguru import logger

from .settings import Settings, load_settings
from .pipeline import poll_once, digest_once
from .scheduler import Scheduler
from .server import create_app

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>"


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def build_scheduler(cfg: Settings) -> Scheduler:
    # collaborators are rebuilt every tick so a bad credential only fails that tick
    return Scheduler(
        poll_job=lambda: poll_once(cfg),
        digest_job=lambda: digest_once(cfg),
        poll_interval=float(cfg.app.get("poll_interval_minutes", 30)) * 60,
        digest_hour=int(cfg.digest.get("hour", 9)),
        digest_minute=int(cfg.digest.get("minute", 0)),
        tz_name=cfg.timezone,
    )


async def serve(cfg: Settings) -> None:
    scheduler = build_scheduler(cfg)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            pass  # Windows
    logger.info(
        "Email processing every {} minutes; daily summary at {:02d}:{:02d} {}",
        cfg.app.get("poll_interval_minutes", 30), scheduler.digest_hour, scheduler.digest_minute, cfg.timezone,
    )
    await scheduler.run()


def main():
    parser = argparse.ArgumentParser(description="Job application email tracker")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Process new emails once and exit (default)")
    mode.add_argument("--digest", action="store_true", help="Send the daily summary once and exit")
    mode.add_argument("--serve", action="store_true", help="Run the poll and daily-summary timers until terminated")
    mode.add_argument("--http", action="store_true", help="Serve the HTTP trigger endpoints")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")))
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    args = parser.parse_args()

    configure_logging(args.log_level)
    cfg = load_settings(args.config)
    missing = cfg.missing_secrets()
    if missing:
        logger.warning("Missing environment variables: {}", ", ".join(missing))

    if args.serve:
        asyncio.run(serve(cfg))
        return 0
    if args.http:
        app = create_app(lambda: poll_once(cfg), lambda: digest_once(cfg))
        app.run(host=args.host, port=args.port)
        return 0

    try:
        result = digest_once(cfg) if args.digest else poll_once(cfg)
    except Exception as exc:
        logger.exception("Run failed")
        print(json.dumps({"error": "Internal server error", "message": str(exc)}, indent=2))
        return 1
    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
