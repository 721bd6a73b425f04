import pytest

from docworker.config.settings import Settings
from docworker.pipeline.exceptions import PayloadConflictError
from docworker.pipeline.models import Execution, RetryPolicy, document_id_for
from docworker.pipeline.states import ExecutionStatus, FailureReason, Stage


def _make_execution() -> Execution:
    return Execution(document_id="doc-1", payload={"source_ref": "s3://uploads/a.pdf"})


class TestRetryPolicy:
    def test_default_delays_double(self) -> None:
        policy = RetryPolicy()
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [5.0, 10.0, 20.0, 40.0]

    def test_delays_are_uncapped(self) -> None:
        policy = RetryPolicy()
        assert policy.delay_for(20) == 5.0 * 2**19

    def test_constant_interval_with_multiplier_one(self) -> None:
        policy = RetryPolicy(base_interval=3.0, backoff_multiplier=1.0)
        assert policy.delay_for(1) == policy.delay_for(50) == 3.0

    def test_attempt_is_one_based(self) -> None:
        with pytest.raises(ValueError, match="1-based"):
            RetryPolicy().delay_for(0)

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_interval(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(base_interval=-1)

    def test_from_settings(self) -> None:
        settings = Settings(
            poll_max_attempts=3, poll_base_interval_seconds=1.5, poll_backoff_multiplier=3.0
        )
        policy = RetryPolicy.from_settings(settings)
        assert policy == RetryPolicy(max_attempts=3, base_interval=1.5, backoff_multiplier=3.0)


class TestExecutionMerge:
    def test_adds_new_fields(self) -> None:
        execution = _make_execution()
        execution.merge({"job_id": "job-1"})
        assert execution.payload["job_id"] == "job-1"

    def test_rewriting_same_value_is_noop(self) -> None:
        execution = _make_execution()
        execution.merge({"source_ref": "s3://uploads/a.pdf"})
        assert execution.payload == {"source_ref": "s3://uploads/a.pdf"}

    def test_overwrite_raises_conflict(self) -> None:
        execution = _make_execution()
        with pytest.raises(PayloadConflictError, match="source_ref"):
            execution.merge({"source_ref": "s3://uploads/b.pdf"})

    def test_conflict_leaves_payload_untouched(self) -> None:
        execution = _make_execution()
        with pytest.raises(PayloadConflictError):
            execution.merge({"job_id": "job-1", "source_ref": "other"})
        assert "job_id" not in execution.payload

    def test_merge_bumps_updated_at(self) -> None:
        execution = _make_execution()
        before = execution.updated_at
        execution.merge({"pages": 1})
        assert execution.updated_at >= before


class TestExecutionLifecycle:
    def test_starts_running_at_init(self) -> None:
        execution = _make_execution()
        assert execution.stage is Stage.INIT
        assert execution.status is ExecutionStatus.RUNNING

    def test_complete(self) -> None:
        execution = _make_execution()
        execution.complete()
        assert execution.stage is Stage.COMPLETED
        assert execution.status is ExecutionStatus.COMPLETED

    def test_fail_keeps_stage(self) -> None:
        execution = _make_execution()
        execution.advance(Stage.TEXT_DETECTION_SUBMIT)
        execution.fail(FailureReason.SUBMISSION_ERROR, "rejected")
        assert execution.stage is Stage.TEXT_DETECTION_SUBMIT
        assert execution.status is ExecutionStatus.FAILED
        assert execution.failure_reason is FailureReason.SUBMISSION_ERROR
        assert execution.failure_detail == "rejected"

    def test_context_reflects_attempt(self) -> None:
        execution = _make_execution()
        execution.attempt = 4
        context = execution.context()
        assert context.execution_id == execution.id
        assert context.document_id == "doc-1"
        assert context.attempt == 4

    def test_summary(self) -> None:
        execution = _make_execution()
        execution.merge({"thumbnail_ref": "s3://assets/thumbnails/doc-1.png"})
        execution.fail(FailureReason.MALFORMED_RESULT, "bad blocks")
        summary = execution.summary()
        assert summary["status"] == "failed"
        assert summary["failure_reason"] == "MalformedResult"
        assert summary["thumbnail_ref"] == "s3://assets/thumbnails/doc-1.png"
        assert summary["stage"] == "Init"


class TestDocumentIdFor:
    def test_same_object_same_id(self) -> None:
        ref = "s3://uploads/abc123.pdf"
        assert document_id_for(ref) == document_id_for(ref)

    def test_different_objects_differ(self) -> None:
        first = document_id_for("s3://uploads/a/report.pdf")
        assert first != document_id_for("s3://uploads/b/report.pdf")

    def test_is_hex(self) -> None:
        assert len(document_id_for("file://uploads/a.pdf")) == 32
