"""
CLI Router: Centralized command group registration.

Each command group is a Typer app that handles its own subcommands and
arguments. Registration is explicit so the CLI structure stays discoverable.
"""

from __future__ import annotations

import typer


class CliRouter:
    """Registers command groups on a root Typer application."""

    def __init__(self, root_app: typer.Typer) -> None:
        self.root_app = root_app
        self._registered_groups: set[str] = set()

    def register(
        self,
        name: str,
        command_group: typer.Typer,
        *,
        help_text: str | None = None,
    ) -> None:
        """
        Register a command group with the router.

        Args:
            name: Command group name (e.g., "manifest")
            command_group: Typer app instance for this command group
            help_text: Help text for the command group
        """
        if name in self._registered_groups:
            raise ValueError(f"Command group '{name}' is already registered")

        self.root_app.add_typer(command_group, name=name, help=help_text)
        self._registered_groups.add(name)


def get_router(root_app: typer.Typer) -> CliRouter:
    return CliRouter(root_app)
