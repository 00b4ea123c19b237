from rich.console import Console

from buildtree.logging import Logger, LogLevel

REDACTED = "***"


class ConsoleLogger(Logger):
    """Logger that prints through a Rich console.

    A message is printed when its level is at least as severe as the level on
    top of the stack; ``push_level``/``pop_level`` change verbosity for a
    stretch of output and restore it afterwards.

    Secrets registered with ``add_secret`` are replaced by ``***`` in every
    string argument before printing. Rich renderables such as tables are
    passed through untouched, so secrets must never be put into them.
    """

    def __init__(self, console: Console, level: LogLevel = LogLevel.INFO) -> None:
        """
        Args:
            console: Where output goes
            level: Base level, which can't be popped
        """
        self._console = console
        self._levels = [level]
        self._secrets: list[str] = []

    @property
    def level(self) -> LogLevel:
        return self._levels[-1]

    def add_secret(self, secret: str | None) -> None:
        """Register a value to redact; empty values are ignored."""
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def redact(self, value: str) -> str:
        for secret in self._secrets:
            value = value.replace(secret, REDACTED)
        return value

    def log(self, level: LogLevel = LogLevel.INFO, *args, **kwargs) -> None:
        # Lower values are more severe
        if level.value > self.level.value:
            return
        if self._secrets:
            args = tuple(self.redact(a) if isinstance(a, str) else a for a in args)
        self._console.print(*args, **kwargs)

    def push_level(self, level: LogLevel) -> None:
        self._levels.append(level)

    def pop_level(self) -> LogLevel:
        """Restore the previous level and return the one removed.

        Raises:
            RuntimeError: When only the base level is left
        """
        if len(self._levels) == 1:
            raise RuntimeError("Cannot pop the base log level")
        return self._levels.pop()
