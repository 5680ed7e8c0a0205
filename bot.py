import logging
import os
from pathlib import Path

import discord
from discord.ext import commands
from dotenv import load_dotenv

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def get_cog_module_names(cogs_path: Path) -> list[str]:
    return [
        f"cogs.{path.stem}"
        for path in sorted(cogs_path.glob("*.py"))
        if not path.name.startswith("__")
    ]


def load_environment() -> str:
    load_dotenv()
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise RuntimeError(
            "DISCORD_TOKEN environment variable is required. "
            "Set it in the .env file before starting the bot."
        )
    return token


class LayoutInspectorBot(commands.Bot):
    """Slash-command-only bot serving the dungeon layout cogs."""

    def __init__(self) -> None:
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=discord.Intents.default(),
            help_command=None,
        )
        self._cogs_path = Path(__file__).parent / "cogs"

    async def setup_hook(self) -> None:  # type: ignore[override]
        for module_name in get_cog_module_names(self._cogs_path):
            await self.load_extension(module_name)
            logging.info("Loaded cog: %s", module_name)
        synced_commands = await self.tree.sync()
        logging.info("Synced %s application commands", len(synced_commands))


def main() -> None:
    configure_logging()
    token = load_environment()
    bot = LayoutInspectorBot()
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logging.info("Shutting down bot")


if __name__ == "__main__":
    main()
