from __future__ import annotations


class CoreError(Exception):
    pass


class ModuleValidationError(CoreError):
    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source


class ModuleInstallError(CoreError):
    pass


class GateError(CoreError):
    """Raised by a dispatch gate. ``notice`` is shown to the user, ``None`` keeps the denial silent."""

    def __init__(self, notice: str | None = None, *, outcome: str | None = None) -> None:
        super().__init__(notice or self.__class__.__name__)
        self.notice = notice
        self.outcome = outcome


class ResolutionError(GateError):
    pass


class MaintenanceBlocked(GateError):
    pass


class PrefixMismatch(GateError):
    pass


class PermissionDenied(GateError):
    def __init__(self, level: str, notice: str | None = None, *, outcome: str | None = None) -> None:
        super().__init__(notice, outcome=outcome)
        self.level = level


class CooldownActive(GateError):
    def __init__(self, remaining: float, notice: str | None = None, *, outcome: str | None = None) -> None:
        super().__init__(notice, outcome=outcome)
        self.remaining = remaining


class HandlerRuntimeError(CoreError):
    def __init__(self, command: str, original: BaseException) -> None:
        super().__init__(f"{command}: {original}")
        self.command = command
        self.original = original


class CallbackMalformed(CoreError):
    pass
