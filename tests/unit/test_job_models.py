from __future__ import annotations

import pytest
from pydantic import ValidationError

from mcqgen.jobs.models import InvalidJobTransition, JobPayload, JobRecord, NamedRef, TopicSummary
from mcqgen.jobs.registry import JobRegistry
from tests.support import make_topic, sample_payload


def test_lifecycle_allows_retry_from_failed() -> None:
  record = JobRecord(job_id="job-1", payload=sample_payload())

  record.transition("processing")
  record.transition("failed")
  record.transition("processing")
  record.transition("succeeded")

  assert record.status == "succeeded"


@pytest.mark.parametrize(("path", "target"), [((), "succeeded"), (("processing", "succeeded"), "processing"), (("processing",), "pending")])
def test_forbidden_transitions_raise(path: tuple[str, ...], target: str) -> None:
  record = JobRecord(job_id="job-2", payload=sample_payload())
  for step in path:
    record.transition(step)

  with pytest.raises(InvalidJobTransition) as excinfo:
    record.transition(target)

  assert excinfo.value.current == record.status


def test_append_log_prefixes_timestamp() -> None:
  record = JobRecord(job_id="job-3", payload=sample_payload())

  record.append_log("Queued.")

  assert record.logs[0].startswith("[")
  assert record.logs[0].endswith("] Queued.")


def test_snapshot_requires_generated_topics() -> None:
  record = JobRecord(job_id="job-4", payload=sample_payload())
  assert not record.has_snapshot

  record.generated_topics = [make_topic("Cells", 10)]
  assert record.has_snapshot


def test_topic_summary_accepts_topic_alias_and_strips() -> None:
  assert TopicSummary.model_validate({"topic": "  Cells  "}).name == "Cells"

  with pytest.raises(ValidationError):
    TopicSummary.model_validate({"name": "   "})


def test_payload_rejects_duplicate_topics_and_blank_store() -> None:
  base = {"chapter_number": 1, "chapter_title": "Cells", "class_level": 7, "subject": NamedRef(id=1, name="Science"), "syllabus": NamedRef(id=2, name="CBSE")}

  with pytest.raises(ValidationError, match="unique"):
    JobPayload(**base, topics=(TopicSummary(name="A"), TopicSummary(name="A")), vector_store_id="vs_1")

  with pytest.raises(ValidationError):
    JobPayload(**base, topics=(TopicSummary(name="A"),), vector_store_id="  ")

  with pytest.raises(ValidationError):
    JobPayload(**base, topics=(), vector_store_id="vs_1")


def test_registry_creates_distinct_pending_jobs() -> None:
  registry = JobRegistry()

  first = registry.create(sample_payload())
  second = registry.create(sample_payload())

  assert first.job_id != second.job_id
  assert first.status == "pending"
  assert first.job_id in registry
  assert registry.get(second.job_id) is second
  assert registry.get("missing") is None
  assert len(registry) == 2


def test_each_record_owns_its_lock() -> None:
  registry = JobRegistry()

  first = registry.create(sample_payload())
  second = registry.create(sample_payload())

  assert first.lock is not second.lock
  assert not first.lock.locked()
  assert "lock" not in repr(first)
