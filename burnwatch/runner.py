#!/usr/bin/env python3
"""
burnwatch runner: wires config, clients, classifier, queue and poll loop.

Usage:
    python3 -m burnwatch                      # run until SIGINT/SIGTERM
    python3 -m burnwatch --dry-run            # log captions instead of posting
    python3 -m burnwatch --once               # single poll cycle, then exit
    python3 -m burnwatch --config path.yaml

Exit codes:
    0 = clean shutdown
    2 = configuration error (nothing was started)
"""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from telegram.ext import Application
from telegram.request import HTTPXRequest

from burnwatch.alerts import AlertBuilder
from burnwatch.classifier import TransactionClassifier
from burnwatch.clients.dexscreener import DexScreenerClient
from burnwatch.clients.solana_rpc import SolanaRPCClient
from burnwatch.clients.telegram import Channel, LogChannel, TelegramChannel
from burnwatch.commands import CommandReplies, register_commands
from burnwatch.config import ConfigError, Settings, load_settings
from burnwatch.dedup import DedupCursor
from burnwatch.notifier import NotificationQueue
from burnwatch.oracles import PriceOracle, SupplyOracle
from burnwatch.poll_loop import BackoffPolicy, PollLoop
from burnwatch.ranks import RankTable

log = logging.getLogger("burnwatch.runner")


@dataclass
class Components:
    rpc: SolanaRPCClient
    dexscreener: DexScreenerClient
    prices: PriceOracle
    supply: SupplyOracle
    ranks: RankTable
    queue: NotificationQueue
    loop: PollLoop
    replies: CommandReplies

    async def close(self) -> None:
        await self.rpc.close()
        await self.dexscreener.close()


def build_components(settings: Settings, channel: Channel) -> Components:
    """Construct every process-scoped object from validated settings."""
    mint = settings.token.mint
    rpc = SolanaRPCClient(
        settings.rpc.url,
        commitment=settings.rpc.commitment,
        timeout=settings.rpc.timeout_seconds,
        rate_limit=settings.rpc.rate_limit,
    )
    dexscreener = DexScreenerClient(timeout=settings.price.timeout_seconds)
    prices = PriceOracle(dexscreener, mint, ttl=settings.price.cache_ttl_seconds)
    supply = SupplyOracle(rpc, mint, settings.token.total_supply)
    ranks = RankTable(
        image_range=settings.alerts.rank_image_range,
        image_url=settings.alerts.rank_image_url,
    )
    queue = NotificationQueue(channel, min_interval=settings.telegram.send_interval_seconds)
    alerts = AlertBuilder(settings.token, settings.alerts, prices, supply, ranks)
    loop = PollLoop(
        rpc=rpc,
        mint=mint,
        cursor=DedupCursor(capacity=settings.poll.dedup_capacity),
        classifier=TransactionClassifier(mint, settings.pools.all, settings.classifier),
        alerts=alerts,
        queue=queue,
        backoff=BackoffPolicy(
            base_interval=settings.poll.interval_seconds,
            initial=settings.poll.backoff_initial_seconds,
            maximum=settings.poll.backoff_max_seconds,
        ),
        page_limit=settings.poll.page_limit,
    )
    replies = CommandReplies(settings.token, settings.alerts, prices, supply, ranks)
    return Components(rpc, dexscreener, prices, supply, ranks, queue, loop, replies)


def build_application(settings: Settings) -> Application:
    timeout = settings.telegram.timeout_seconds
    return (
        Application.builder()
        .token(settings.telegram.bot_token)
        .request(HTTPXRequest(connect_timeout=timeout, read_timeout=timeout, write_timeout=timeout))
        .build()
    )


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass  # not supported on this platform / not the main thread


async def _unless_stopped(aw, stop: asyncio.Event) -> bool:
    """Await ``aw`` unless ``stop`` is set first. False means it was cancelled."""
    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(stop.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        raise
    finally:
        waiter.cancel()
    if task.done():
        task.result()
        return True
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    return False


async def run(settings: Settings, once: bool = False) -> None:
    application: Application | None = None
    if settings.dry_run:
        channel: Channel = LogChannel()
    else:
        application = build_application(settings)
        channel = TelegramChannel(application.bot, settings.telegram.chat_id)

    components = build_components(settings, channel)
    stop = asyncio.Event()
    _install_signal_handlers(stop)

    log.info("Starting burnwatch for %s (%s)", settings.token.symbol, settings.token.mint)
    log.info("Tracking %d pool(s), polling the mint", len(settings.pools.all))
    log.info("Poll interval: %.0fs | Min buy: $%.2f | Min arb: $%.2f",
             settings.poll.interval_seconds, settings.alerts.min_buy_usd, settings.alerts.min_arb_usd)

    try:
        if application is not None:
            await application.initialize()
            if settings.telegram.commands:
                register_commands(application, components.replies)
                await application.start()
                await application.updater.start_polling()

        if not await _unless_stopped(components.loop.start(), stop):
            log.info("Stopped before the first poll")
            return
        log.info("burnwatch running")
        if once:
            await components.loop.tick()
        else:
            await components.loop.run_forever(stop)
        await components.queue.join()
    finally:
        if application is not None:
            if application.updater is not None and application.updater.running:
                await application.updater.stop()
            if application.running:
                await application.stop()
            await application.shutdown()
        await components.close()
        log.info("burnwatch stopped")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="burnwatch", description="Buy/burn watcher for one SPL token")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--dry-run", action="store_true", help="log notifications instead of posting")
    parser.add_argument("--once", action="store_true", help="run a single poll cycle and exit")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        settings = load_settings(args.config, dry_run=args.dry_run)
    except ConfigError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 2

    asyncio.run(run(settings, once=args.once))
    return 0


if __name__ == "__main__":
    sys.exit(main())
