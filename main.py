import argparse
import asyncio
import sys

# --- Settings/Logging ---
from src.config.settings import AppSettings, load_settings
from src.logging.setup import setup_logging

from loguru import logger
from rich import print
from rich.panel import Panel

from src.bot.client import RaidOversightBot, describe_report
from src.models.enums import RefreshTrigger
from src.models.summary import RefreshReport


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Aggregate Raid-Helper signups into the raid oversight posts."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh, print the artifacts and exit instead of staying online.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --once: render the posts without editing or creating any message.",
    )
    return parser.parse_args(argv)


def show_report(report: RefreshReport) -> None:
    for artifact in report.artifacts:
        print(Panel(artifact.text, title=artifact.destination.value, expand=False))
    print(describe_report(report))


async def run_once(settings: AppSettings, publish: bool) -> RefreshReport:
    """Logs in over REST only, refreshes once and disconnects."""
    bot = RaidOversightBot(settings, schedule=False)
    async with bot:
        await bot.login(settings.discord_token)
        return await bot.pipeline.run(trigger=RefreshTrigger.STARTUP, publish=publish)


def main(argv=None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    settings = load_settings()
    setup_logging(settings)

    if not settings.discord_token:
        logger.critical("DISCORD_TOKEN is not configured. Exiting.")
        return 1

    logger.info(f"Starting Raid Oversight for {len(settings.teams)} team(s)")
    if args.once:
        report = asyncio.run(run_once(settings, publish=not args.dry_run))
        show_report(report)
        return 0

    if args.dry_run:
        logger.warning("--dry-run only applies together with --once; ignoring it.")
    bot = RaidOversightBot(settings)
    # Logging is already routed through loguru, so keep discord.py from adding a handler
    bot.run(settings.discord_token, log_handler=None)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unhandled exception in main execution: {e}")
        sys.exit(1)
