"""
Command registry for the dashboard control plane.

Commands are registered explicitly at service start-up; anything not
registered is refused with CommandNotAvailableError, which lists what is
available so the status message is actionable.

Registration takes a lock (it may race with the MQTT thread looking up
commands); lookups read a single dict entry.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

CommandHandler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """Raised for a command name that was never registered."""
    pass


@dataclass(frozen=True)
class RegisteredCommand:
    name: str
    handler: CommandHandler
    description: str


class CommandRegistry:
    """
    Name -> handler table for control commands.

    Handlers receive the whole decoded payload (the "command" key included).

    Example:
        registry = CommandRegistry()
        registry.register('set_window', on_set_window, "Set temporal window {start, end}")
        registry.execute('set_window', {'command': 'set_window', 'start': 0, 'end': 48})
    """

    def __init__(self):
        self._entries: Dict[str, RegisteredCommand] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: CommandHandler, description: str) -> None:
        """
        Raises:
            ValueError: If the name is empty, not lowercase, contains spaces,
                or is already taken
        """
        if not command or command != command.lower() or ' ' in command:
            raise ValueError(f"Invalid command name: {command!r}")

        with self._lock:
            if command in self._entries:
                raise ValueError(f"Command '{command}' already registered")
            self._entries[command] = RegisteredCommand(command, handler, description)

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call the handler registered for command.

        Returns:
            The handler's return value

        Raises:
            CommandNotAvailableError: If command is not registered
        """
        entry = self._entries.get(command)
        if entry is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self._entries))}"
            )
        return entry.handler(command_data or {})

    def is_available(self, command: str) -> bool:
        return command in self._entries

    @property
    def available_commands(self) -> Set[str]:
        return set(self._entries)

    def get_help(self) -> Dict[str, str]:
        return {name: entry.description for name, entry in self._entries.items()}

    def count(self) -> int:
        return len(self._entries)
