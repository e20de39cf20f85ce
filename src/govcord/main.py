"""
Govcord Discord Bot
===================

Entrypoint: loads the environment, opens the database, runs the legacy
ballot migration, wires the governance engines to py-cord collaborators,
registers the cogs and connects to Discord.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. GOVCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("GOVCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from govcord.configuration.app_configuration import app_config
from govcord.database.db_connection import db_connection
from govcord.database.db_schema import SchemaManager
from govcord.database.migration import migrate_legacy_reelection_votes
from govcord.governance.collaborators import DiscordNotificationSink, DiscordPrivilegeGateway, SqliteProfileStore
from govcord.governance.service import GovernanceService
from govcord.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def resolve_db_path() -> Path:
    if env_path := os.getenv("GOVCORD_DB_PATH"):
        return Path(env_path).resolve()
    return app_config.database_path


def build_intents() -> discord.Intents:
    """Guild and member intents; members are needed for role changes and membership counts."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, governance: GovernanceService) -> None:
    """Register all governance cogs with the bot."""
    from govcord.cog.commands import election_cmds, impeachment_cmds, reelection_cmds
    from govcord.cog.listener import governance_scan_cog

    election_cmds.setup(discord_bot_instance, governance)
    reelection_cmds.setup(discord_bot_instance, governance)
    impeachment_cmds.setup(discord_bot_instance, governance)
    governance_scan_cog.setup(discord_bot_instance, governance)

    logger.info("All cogs loaded successfully.")


def create_bot() -> tuple[discord.Bot, GovernanceService]:
    """Instantiate the Discord bot, the governance service and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    settings = app_config.governance
    governance = GovernanceService.build(
        db=db_connection,
        settings=settings,
        profiles=SqliteProfileStore(db_connection),
        gateway=DiscordPrivilegeGateway(bot, settings),
        notifier=DiscordNotificationSink(bot, settings),
    )
    load_cogs(bot, governance)
    return bot, governance


async def initialize_database() -> None:
    db_path = resolve_db_path()
    logger.info("Opening database at %s", db_path)
    await db_connection.open(db_path)
    await SchemaManager.initialize_schema(db_connection.connection)
    await migrate_legacy_reelection_votes(db_connection, app_config.governance.reelection_required_votes)


async def shutdown_runtime(bot: discord.Bot | None, governance: GovernanceService | None) -> None:
    """Stop scans, close the bot and the database."""
    if governance is not None:
        try:
            await governance.scheduler.shutdown()
        except Exception as exc:
            logger.exception("Error during scheduler shutdown: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    await db_connection.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and bot, returning an exit code."""
    token = load_environment()

    try:
        await initialize_database()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        bot, governance = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await db_connection.close()
        return 1

    exit_code = 0
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, governance)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Govcord…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
