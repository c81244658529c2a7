#!/usr/bin/env python3
"""
Notifier command line
=====================

Usage:
    notifier serve                          # Host app with the worker inside
    notifier worker                         # Standalone worker
    notifier send --target ALL --title T --body M
    notifier send --target USERS --user-id u1 --user-id u2 --title T --body M
    notifier resend <log-id>                # Re-queue a FAILED notification
    notifier logs --limit 20                # Most recent notification logs
    notifier register-token --user-id u1 --token abc --platform android --subscribe
"""

import argparse
import asyncio
import json
import signal
import sys
import logging
from contextlib import suppress
from pydantic import ValidationError

from notifier.core.config import settings
from notifier.core.database import get_db_context, init_db, close_db
from notifier.core.exceptions import NotifierException
from notifier.core.firebase import initialize_firebase
from notifier.core.monitoring import setup_logging
from notifier.core.redis import redis_manager
from notifier.schemas.notification import DeviceTokenRegister, NotificationCreate, NotificationLogRead
from notifier.services.producer import NotificationProducer
from notifier.services.push_gateway import FirebasePushGateway
from notifier.services.push_notification_service import PushNotificationService
from notifier.services.notification_log import NotificationLogStore
from notifier.services.queue import NotificationQueue
from notifier.services.worker import NotificationWorker

logger = logging.getLogger(__name__)

def print_log(log) -> None:
    print(NotificationLogRead.model_validate(log).model_dump_json(indent=2))

async def cmd_send(args, db, queue) -> int:
    payload = NotificationCreate(
        title=args.title,
        body=args.body,
        target_type=args.target,
        user_ids=args.user_ids or [],
        data=json.loads(args.data) if args.data else {}
    )
    log = await NotificationProducer(db, queue).create_and_queue(payload)
    print_log(log)
    return 0 if log.status != "FAILED" else 1

async def cmd_resend(args, db, queue) -> int:
    log = await NotificationProducer(db, queue).resend(args.log_id)
    print_log(log)
    return 0 if log.status != "FAILED" else 1

async def cmd_logs(args, db, queue) -> int:
    for log in await NotificationLogStore(db).list_recent(args.limit):
        print(
            f"{log.id}  {log.status:<7}  {log.target_type:<5}  "
            f"retries={log.retry_count}  {log.title}"
            + (f"  error={log.error}" if log.error else "")
        )
    return 0

async def cmd_register_token(args, db, queue) -> int:
    registration = DeviceTokenRegister(token=args.token, platform=args.platform, device_id=args.device_id)
    service = PushNotificationService(db, FirebasePushGateway(initialize_firebase()))
    await service.register_device_token(
        args.user_id, registration.token, registration.platform.value, registration.device_id
    )
    print(f"Token registered for user {args.user_id}")
    if args.subscribe and not await service.subscribe_to_broadcast(args.token):
        print(f"Token could not be subscribed to '{service.broadcast_topic}'")
        return 1
    return 0

async def run_command(handler, args) -> int:
    """Run a command with a database session and a connected queue"""
    await init_db()
    client = await redis_manager.connect()
    try:
        async with get_db_context() as db:
            return await handler(args, db, NotificationQueue(client))
    finally:
        await redis_manager.disconnect()
        await close_db()

async def run_worker() -> int:
    """Run the worker until SIGINT or SIGTERM"""
    await init_db()
    client = await redis_manager.connect()
    worker = NotificationWorker(NotificationQueue(client), FirebasePushGateway(initialize_firebase()))

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_requested.set)

    worker.start()
    try:
        await stop_requested.wait()
    finally:
        await worker.stop()
        await redis_manager.disconnect()
        await close_db()
    return 0

def run_server(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run(
        "notifier.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower()
    )
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notifier",
        description="Push notification dispatch pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the host app with the worker")
    serve.add_argument("--host", default=settings.HOST)
    serve.add_argument("--port", type=int, default=settings.PORT)
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")

    subparsers.add_parser("worker", help="Run the standalone worker")

    send = subparsers.add_parser("send", help="Create and queue a notification")
    send.add_argument("--target", choices=["USER", "USERS", "ALL"], required=True)
    send.add_argument("--user-id", dest="user_ids", action="append", help="Recipient (repeatable)")
    send.add_argument("--title", required=True)
    send.add_argument("--body", required=True)
    send.add_argument("--data", help="JSON object of extra data")

    resend = subparsers.add_parser("resend", help="Re-queue a FAILED notification")
    resend.add_argument("log_id")

    logs = subparsers.add_parser("logs", help="Show recent notification logs")
    logs.add_argument("--limit", type=int, default=100)

    register = subparsers.add_parser("register-token", help="Register a device token")
    register.add_argument("--user-id", required=True)
    register.add_argument("--token", required=True)
    register.add_argument("--platform", choices=["web", "android", "ios"], required=True)
    register.add_argument("--device-id")
    register.add_argument("--subscribe", action="store_true", help="Also subscribe to the broadcast topic")

    return parser

COMMANDS = {
    "send": cmd_send,
    "resend": cmd_resend,
    "logs": cmd_logs,
    "register-token": cmd_register_token,
}

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "serve":
        return run_server(args.host, args.port, args.reload)
    if args.command == "worker":
        return asyncio.run(run_worker())

    try:
        return asyncio.run(run_command(COMMANDS[args.command], args))
    except NotifierException as e:
        print(f"Error: {e.detail}", file=sys.stderr)
        return 2
    except (ValidationError, json.JSONDecodeError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
