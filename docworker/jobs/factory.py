from typing import ClassVar

from docworker.config.settings import Settings
from docworker.jobs.base import BaseJobService
from docworker.jobs.local_adapter import LocalTextDetectionService
from docworker.jobs.textract_adapter import TextractJobService
from docworker.pdf.factory import PdfExtractorFactory
from docworker.storage.base import BaseObjectStore
from docworker.storage.factory import build_aws_client


class JobServiceFactory:
    """Creates the configured text detection job service."""

    SERVICES: ClassVar[tuple[str, ...]] = ("textract", "local")

    @classmethod
    def create(cls, settings: Settings, object_store: BaseObjectStore) -> BaseJobService:
        service = settings.job_service.lower()
        if service == "textract":
            return TextractJobService(build_aws_client("textract", settings))
        if service == "local":
            return LocalTextDetectionService(
                object_store=object_store,
                pdf_extractor=PdfExtractorFactory.create(settings),
            )
        raise ValueError(
            f"Unknown job service '{service}'. Choose from: {list(cls.SERVICES)}"
        )
