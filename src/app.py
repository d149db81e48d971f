"""Application entry point for the goldwatch notifier."""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional
from zoneinfo import ZoneInfo

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.apscheduler_triggers import APSchedulerTriggers, build_scheduler
from adapters.health import build_health_server
from adapters.price_source import TreasuryPriceSource
from adapters.sqlite_storage import SQLiteStorage
from adapters.supabase_storage import SupabaseStorage, get_supabase_client
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_channel import TelegramChannel
from adapters.telegram_notifier import TelegramNotifier
from client import build_client
from core.channel import ChannelLifecycle, ChannelState
from core.config import DedupConfig
from core.errors import ScheduleParseError
from core.processor import NotificationPipeline
from core.reconciler import ScheduleReconciler
from core.schedule import parse_trigger_time, parse_trigger_times, split_trigger_times
from login import login
from session_archive import pull_session, push_session, restore_session_if_missing

NAME = "GOLDWATCH"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/goldwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_storage():
    # Select the storage adapter based on configuration to keep the core
    # independent from persistence details.
    if settings.STORAGE_BACKEND == "sqlite":
        storage = SQLiteStorage(settings.SQLITE_PATH)
        storage.init_db()
        return storage
    if settings.STORAGE_BACKEND == "supabase":
        client = get_supabase_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        return SupabaseStorage(
            client,
            config_table=settings.CONFIG_TABLE,
            notifications_table=settings.NOTIFICATIONS_TABLE,
        )
    raise RuntimeError("storage.backend must be 'supabase' or 'sqlite'")


def _session_store():
    """Supabase client for session sync, or None when sync is off."""

    if not settings.SESSION_AUTO_SYNC:
        return None
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        logging.getLogger(__name__).warning("session.auto_sync is on but Supabase credentials are missing")
        return None
    return get_supabase_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def _build_channel(lifecycle: ChannelLifecycle, session_store=None) -> Optional[TelegramChannel]:
    # The Bot API needs no user session, so bot mode has no channel to
    # supervise and is ready from the start.
    if settings.NOTIFICATION_METHOD == "bot":
        return None

    on_authenticated = None
    if session_store is not None:
        # Telethon opens the session file when the client is built.
        restore_session_if_missing(
            session_store, settings.SESSION_PATH, settings.SESSION_BUCKET, settings.SESSION_ARCHIVE_NAME
        )
        on_authenticated = functools.partial(
            push_session,
            session_store,
            settings.SESSION_PATH,
            settings.SESSION_BUCKET,
            settings.SESSION_ARCHIVE_NAME,
        )
    return TelegramChannel(
        build_client(settings.SESSION_PATH),
        lifecycle,
        reconnect_delay=settings.RECONNECT_DELAY_SECONDS,
        on_authenticated=on_authenticated,
    )


def _build_notifier(channel: Optional[TelegramChannel]):
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        return TelegramBotNotifier(bot_token=bot_token)
    if settings.NOTIFICATION_METHOD == "telegram" and channel is not None:
        return TelegramNotifier(channel.client)
    raise RuntimeError("notification_method must be 'telegram' or 'bot'")


def _build_pipeline(storage, channel: Optional[TelegramChannel], lifecycle: ChannelLifecycle) -> NotificationPipeline:
    logger = logging.getLogger(__name__)
    notifier = _build_notifier(channel)
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)
    logger.info("%s recipients are configured", len(settings.RECIPIENTS))

    return NotificationPipeline(
        price_source=TreasuryPriceSource(settings.PRICE_SOURCE_URL, timeout=settings.PRICE_SOURCE_TIMEOUT),
        config_store=storage,
        notification_store=storage,
        notifier=notifier,
        lifecycle=lifecycle,
        recipients=settings.RECIPIENTS,
        dedup_config=DedupConfig(scope=settings.DEDUP_SCOPE),
        local_timezone=ZoneInfo(settings.TIMEZONE),
    )


async def _serve() -> None:
    logger = logging.getLogger(__name__)

    storage = _build_storage()
    lifecycle = ChannelLifecycle()
    channel = _build_channel(lifecycle, _session_store())
    pipeline = _build_pipeline(storage, channel, lifecycle)

    scheduler = build_scheduler(settings.SCHEDULER_TIMEZONE)
    triggers = APSchedulerTriggers(scheduler)
    reconciler = ScheduleReconciler(
        config_store=storage,
        scheduler=triggers,
        pipeline=pipeline,
        lifecycle=lifecycle,
        local_timezone=ZoneInfo(settings.TIMEZONE),
        scheduler_timezone=ZoneInfo(settings.SCHEDULER_TIMEZONE),
    )

    # Re-sync on a fixed cadence regardless of config changes, and right away
    # whenever the channel becomes ready.
    triggers.add_interval(settings.RESYNC_MINUTES, reconciler.reconcile, name="reconcile")
    reconciler.reconcile_on_ready()

    scheduler.start()
    health_server = build_health_server(settings.PORT)
    logger.info("Health endpoint listening on port %s", settings.PORT)

    tasks = [asyncio.create_task(health_server.serve())]
    if channel is None:
        lifecycle.transition(ChannelState.READY)
    else:
        tasks.append(asyncio.create_task(channel.run()))

    # The health server owns signal handling; when it stops, everything stops.
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        scheduler.shutdown(wait=False)
        if channel is not None:
            await channel.close()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting goldwatch")
    asyncio.run(_serve())


async def _check_once() -> None:
    storage = _build_storage()
    lifecycle = ChannelLifecycle()
    channel = _build_channel(lifecycle)
    pipeline = _build_pipeline(storage, channel, lifecycle)
    if channel is None:
        lifecycle.transition(ChannelState.READY)
        report = await pipeline.run_once()
    else:
        await channel.connect()
        try:
            report = await pipeline.run_once()
        finally:
            await channel.close()

    print(f"Outcome: {report.outcome.value}")
    if report.latest is not None:
        print(f"Latest: #{report.latest.id} buying_rate={report.latest.buying_rate} threshold={report.threshold}")
    for recipient in report.sent:
        print(f"  sent -> {recipient}")
    for recipient, reason in report.failed.items():
        print(f"  failed -> {recipient}: {reason}")
    if report.detail:
        print(f"Detail: {report.detail}")


def _check() -> None:
    _print_banner()
    _configure_logging()
    asyncio.run(_check_once())


async def _login_once() -> None:
    # The Telethon client must be created inside the loop it will run on.
    await login(build_client(settings.SESSION_PATH))


def _login() -> None:
    _print_banner()
    _configure_logging()
    asyncio.run(_login_once())


def _set_config(threshold: int, times: str) -> None:
    _configure_logging()
    # Reject bad input here instead of letting the reconciler skip it later.
    for entry in split_trigger_times(times):
        try:
            parse_trigger_time(entry)
        except ScheduleParseError as exc:
            raise SystemExit(f"{exc}; use HH:MM,HH:MM") from exc
    valid = parse_trigger_times(split_trigger_times(times))
    if not valid:
        raise SystemExit("At least one trigger time is required")
    storage = _build_storage()
    storage.insert_config(threshold, ",".join(trigger.label for trigger in valid))
    print(f"Saved threshold={threshold} times={', '.join(trigger.label for trigger in valid)}")


def _session(action: str) -> None:
    _configure_logging()
    client = get_supabase_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    if action == "push":
        push_session(client, settings.SESSION_PATH, settings.SESSION_BUCKET, settings.SESSION_ARCHIVE_NAME)
    else:
        pull_session(client, settings.SESSION_PATH, settings.SESSION_BUCKET, settings.SESSION_ARCHIVE_NAME)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="goldwatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the scheduler, channel and health endpoint")
    subparsers.add_parser("check", help="Run one price check now and exit")
    subparsers.add_parser("login", help="Log in to Telegram and store the session")

    config_parser = subparsers.add_parser("config", help="Store a new threshold and trigger times")
    config_parser.add_argument("--threshold", type=int, required=True)
    config_parser.add_argument("--times", required=True, help="Comma-separated local HH:MM times")

    session_parser = subparsers.add_parser("session", help="Archive the Telegram session in object storage")
    session_parser.add_argument("action", choices=["push", "pull"])

    args = parser.parse_args(argv)
    if args.command == "check":
        _check()
        return
    if args.command == "login":
        _login()
        return
    if args.command == "config":
        _set_config(args.threshold, args.times)
        return
    if args.command == "session":
        _session(args.action)
        return
    _run()


if __name__ == "__main__":
    main()
