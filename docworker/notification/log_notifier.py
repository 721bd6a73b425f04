from docworker.logging.logger import Log
from docworker.notification.base import BaseNotifier
from docworker.pipeline.models import Execution
from docworker.pipeline.states import ExecutionStatus


class LogNotifier(BaseNotifier):
    """Writes each terminal execution to the application log."""

    async def notify(self, execution: Execution) -> None:
        summary = execution.summary()
        if execution.status is ExecutionStatus.COMPLETED:
            Log.info(f"Document {execution.document_id} processed", **summary)
        else:
            Log.warning(f"Document {execution.document_id} processing failed", **summary)
