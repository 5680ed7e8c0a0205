"""Slash commands for inspecting stored dungeon layouts."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, List

import discord
from discord import app_commands
from discord.ext import commands

from dungeonmap import UNREACHABLE, DungeonGraph
from dungeonmap.config import ConfigError, VisualizationSettings, load_settings
from dungeonmap.loader import SUPPORTED_EXTENSIONS, DungeonLoadError, LayoutDocument, find_layout, load_layout
from dungeonmap.visualization import (
    GraphvizLayoutProvider,
    LayoutProvider,
    MiniMapConfig,
    render_minimap,
    resolve_layout,
)

log = logging.getLogger(__name__)

MINIMAP_FILENAME = "dungeon_minimap.png"


def _default_data_path() -> Path:
    return Path(__file__).resolve().parent.parent / "data"


class LayoutCog(commands.Cog):
    """Report statistics, routes and minimaps for stored layouts."""

    layout_group = app_commands.Group(name="layout", description="Inspect stored dungeon layouts")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        layouts_path: Path | None = None,
        settings: VisualizationSettings | None = None,
    ) -> None:
        self.bot = bot
        self.layouts_path = layouts_path or _default_data_path() / "layouts"
        if settings is None:
            try:
                settings = load_settings()
            except ConfigError as exc:
                log.warning("Invalid visualization settings, using defaults: %s", exc)
                settings = VisualizationSettings()
        self.settings = settings
        self.layout_providers: List[LayoutProvider] = [
            GraphvizLayoutProvider(settings.layout_engines, timeout=settings.graphviz_timeout)
        ]

    def cog_unload(self) -> None:  # noqa: D401 - discord.py hook
        try:
            self.bot.tree.remove_command(
                self.layout_group.name,
                type=discord.AppCommandType.chat_input,
            )
        except (app_commands.CommandTreeException, KeyError):
            pass

    # ------------------------------------------------------------------
    def _layout_names(self) -> list[str]:
        if not self.layouts_path.is_dir():
            return []
        return sorted(
            path.stem
            for path in self.layouts_path.iterdir()
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS
        )

    def _load_document(self, name: str) -> LayoutDocument:
        path = find_layout(self.layouts_path, name)
        if path is None:
            raise DungeonLoadError(f"No stored layout named '{name}'")
        return load_layout(path)

    def _build_stats_embed(self, document: LayoutDocument) -> discord.Embed:
        graph = document.graph
        statistics = graph.statistics()
        colour = discord.Color.green() if statistics.is_connected else discord.Color.red()
        embed = discord.Embed(title=f"Layout — {document.name}", color=colour)
        embed.add_field(name="Rooms", value=str(statistics.room_count))
        embed.add_field(name="Connections", value=str(statistics.connection_count))
        embed.add_field(
            name="Avg. connections",
            value=f"{statistics.average_connections_per_room:.2f}",
        )
        embed.add_field(
            name="Connected",
            value="Yes" if statistics.is_connected else "No",
        )

        type_lines = [
            f"{room_type.display_name}: {count}"
            for room_type, count in statistics.rooms_by_type.items()
            if count
        ]
        embed.add_field(
            name="Room types",
            value="\n".join(type_lines) if type_lines else "(no rooms)",
            inline=False,
        )

        start = graph.start_room()
        boss = graph.boss_room()
        if start is not None and boss is not None:
            embed.add_field(
                name="Start → Boss",
                value=self._describe_route(graph, start.id, boss.id),
                inline=False,
            )
        return embed

    @staticmethod
    def _describe_route(graph: DungeonGraph, from_room: str, to_room: str) -> str:
        missing = [room_id for room_id in (from_room, to_room) if room_id not in graph]
        if missing:
            return "Unknown room: " + ", ".join(missing)
        distance = graph.shortest_distance(from_room, to_room)
        if distance == UNREACHABLE:
            return f"{to_room} cannot be reached from {from_room}."
        plural = "" if distance == 1 else "s"
        return f"{from_room} → {to_room}: {distance} step{plural}"

    def _build_minimap_buffer(self, graph: DungeonGraph) -> BytesIO:
        if not len(graph):
            raise ValueError("No rooms available to render the minimap")
        layout = resolve_layout(graph, self.layout_providers)
        image = render_minimap(
            graph,
            layout,
            MiniMapConfig(
                size=self.settings.minimap_size,
                transparent_background=self.settings.transparent_minimap,
            ),
        )
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        buffer.seek(0)
        return buffer

    async def _send_load_error(self, interaction: discord.Interaction, exc: DungeonLoadError) -> None:
        names = self._layout_names()
        message = str(exc)
        if names:
            message = f"{message}. Available layouts: {', '.join(names)}."
        await interaction.response.send_message(message, ephemeral=True)

    def _layout_choices(self, current: str) -> list[app_commands.Choice[str]]:
        filtered = [name for name in self._layout_names() if current.lower() in name.lower()][:25]
        return [app_commands.Choice(name=name, value=name) for name in filtered]

    # ------------------------------------------------------------------
    @layout_group.command(name="stats", description="Show statistics for a stored layout.")
    @app_commands.describe(name="Name of the stored layout")
    async def stats(self, interaction: discord.Interaction, name: str) -> None:
        try:
            document = self._load_document(name)
        except DungeonLoadError as exc:
            await self._send_load_error(interaction, exc)
            return
        await interaction.response.send_message(embed=self._build_stats_embed(document))

    @stats.autocomplete("name")
    async def stats_name_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> Iterable[app_commands.Choice[str]]:
        return self._layout_choices(current)

    @layout_group.command(name="route", description="Measure the distance between two rooms.")
    @app_commands.describe(
        name="Name of the stored layout",
        from_room="Room to start from",
        to_room="Room to reach",
    )
    async def route(
        self,
        interaction: discord.Interaction,
        name: str,
        from_room: str,
        to_room: str,
    ) -> None:
        try:
            document = self._load_document(name)
        except DungeonLoadError as exc:
            await self._send_load_error(interaction, exc)
            return
        message = self._describe_route(document.graph, from_room, to_room)
        await interaction.response.send_message(message)

    @route.autocomplete("name")
    async def route_name_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> Iterable[app_commands.Choice[str]]:
        return self._layout_choices(current)

    @layout_group.command(name="map", description="Render a minimap for a stored layout.")
    @app_commands.describe(name="Name of the stored layout")
    async def map_command(self, interaction: discord.Interaction, name: str) -> None:
        try:
            document = self._load_document(name)
        except DungeonLoadError as exc:
            await self._send_load_error(interaction, exc)
            return

        await interaction.response.defer()
        embed = self._build_stats_embed(document)
        files: List[discord.File] = []
        try:
            buffer = await asyncio.to_thread(self._build_minimap_buffer, document.graph)
        except (ValueError, OSError) as exc:
            log.warning("Minimap unavailable for %s: %s", document.name, exc)
        else:
            files.append(discord.File(buffer, filename=MINIMAP_FILENAME))
            embed.set_image(url=f"attachment://{MINIMAP_FILENAME}")
        if files:
            await interaction.followup.send(embed=embed, files=files)
        else:
            await interaction.followup.send(embed=embed)

    @map_command.autocomplete("name")
    async def map_name_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> Iterable[app_commands.Choice[str]]:
        return self._layout_choices(current)


async def setup(bot: commands.Bot) -> None:
    cog = LayoutCog(bot)
    await bot.add_cog(cog)
    existing = bot.tree.get_command(
        cog.layout_group.name,
        type=discord.AppCommandType.chat_input,
    )
    if existing is None:
        bot.tree.add_command(cog.layout_group)
