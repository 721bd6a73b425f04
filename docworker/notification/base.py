from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docworker.pipeline.models import Execution


class BaseNotifier(ABC):
    """Output channel for terminal executions."""

    @abstractmethod
    async def notify(self, execution: "Execution") -> None:
        """Publish the outcome of a finished execution.

        Raises:
            NotificationError: if the outcome cannot be published.
        """
