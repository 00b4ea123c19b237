from buildtree.logging import Logger, LogLevel


class LoggerStub(Logger):
    """
    Logger that discards everything.
    """

    def log(self, _level: LogLevel = LogLevel.INFO, *args, **kwargs) -> None:
        pass

    def push_level(self, level: LogLevel) -> None:
        pass

    def pop_level(self) -> LogLevel:
        return LogLevel.INFO


class RecordingLogger(LoggerStub):
    """
    Logger that keeps string messages for assertions.
    """

    def __init__(self) -> None:
        self.messages: list[tuple[LogLevel, str]] = []

    def log(self, level: LogLevel = LogLevel.INFO, *args, **kwargs) -> None:
        self.messages.append((level, " ".join(str(a) for a in args)))

    def text(self) -> str:
        return "\n".join(message for _, message in self.messages)


logger_stub = LoggerStub()
