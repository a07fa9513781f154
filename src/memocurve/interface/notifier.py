"""Terminal implementation of the Notifier port."""

import typer

from memocurve.domain.ports import NotificationPermission, Notifier


class ConsoleNotifier(Notifier):
    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.DEFAULT,
        interactive: bool = True,
    ):
        self._permission = NotificationPermission(permission)
        self.interactive = interactive

    def permission(self) -> NotificationPermission:
        return self._permission

    def request_permission(self) -> NotificationPermission:
        if self._permission is not NotificationPermission.DEFAULT:
            return self._permission
        if not self.interactive:
            return self._permission
        granted = typer.confirm("Show review reminders in this terminal?", default=True)
        self._permission = (
            NotificationPermission.GRANTED if granted else NotificationPermission.DENIED
        )
        return self._permission

    def notify(self, title: str, body: str) -> None:
        typer.secho(f"[{title}] {body}", fg="cyan", bold=True)

    def explain(self, message: str) -> None:
        typer.secho(message, fg="yellow")
