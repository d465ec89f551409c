"""
Best-effort notification fan-out
"""
import asyncio
import logging
from typing import List, Optional, Protocol, Sequence, Set

from contactrelay.config import SmtpConfig
from contactrelay.core.validation import ContactSubmission


class Notifier(Protocol):
    """Secondary side effect triggered after a successful delivery"""

    name: str

    @property
    def enabled(self) -> bool:
        ...

    async def notify(
        self,
        submission: ContactSubmission,
        client_ip: str,
        smtp_config: SmtpConfig,
    ) -> None:
        ...


class NotificationDispatcher:
    """Run notifiers as detached tasks.

    The request handler never awaits these tasks. Failures are logged here and
    go nowhere else. Strong references are kept until each task finishes so
    the event loop does not drop them.
    """

    def __init__(
        self,
        notifiers: Sequence[Notifier],
        logger: Optional[logging.Logger] = None,
    ):
        self.notifiers = list(notifiers)
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self,
        submission: ContactSubmission,
        client_ip: str,
        smtp_config: SmtpConfig,
    ) -> List[asyncio.Task]:
        """Start every enabled notifier

        Returns:
            The spawned tasks, for callers that want to observe them
        """
        tasks = []
        for notifier in self.notifiers:
            if not notifier.enabled:
                continue
            task = asyncio.create_task(
                self._run(notifier, submission, client_ip, smtp_config),
                name=f"notify-{notifier.name}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def _run(
        self,
        notifier: Notifier,
        submission: ContactSubmission,
        client_ip: str,
        smtp_config: SmtpConfig,
    ) -> None:
        try:
            await notifier.notify(submission, client_ip, smtp_config)
        except Exception as e:
            self.logger.error("%s notification failed: %s", notifier.name, e)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for outstanding notifications, cancelling any that overrun"""
        if not self._tasks:
            return

        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self.logger.warning("Cancelled %d notifications still running at shutdown", len(pending))
