from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from mcqgen.ai.errors import PersistenceError
from mcqgen.schema.sql import Chapter
from mcqgen.storage.mcq_repo import ChapterContext, PostgresMcqRepository, question_rows
from tests.support import make_topic

CHAPTER = ChapterContext(subject_id=11, class_level=7, chapter_number=3, chapter_title="Life Processes", syllabus="CBSE")


def _result(row=None, scalar=1) -> MagicMock:
  result = MagicMock()
  result.scalars.return_value.first.return_value = row
  result.scalar_one.return_value = scalar
  return result


def _statement_kinds(session) -> list[str]:
  return [type(call.args[0]).__name__ for call in session.execute.call_args_list]


def test_question_rows_map_options_and_letter() -> None:
  topic = make_topic("Cells", 2, correct_index=3)

  rows = question_rows(5, 7, topic)

  assert rows[0]["topic_id"] == 5
  assert rows[0]["class_level"] == 7
  assert rows[0]["option_a"] == "Q0 option A"
  assert rows[0]["option_d"] == "Q0 option D"
  assert rows[1]["correct_answer"] == "D"
  assert rows[1]["image_url"] is None


def test_legacy_chapter_label_uses_chapter_number() -> None:
  assert CHAPTER.legacy_chapter_name == "Chapter 3: Life Processes"


@pytest.mark.anyio
async def test_creates_chapter_then_replaces_questions_per_topic(mock_db_session, session_factory) -> None:
  mock_db_session.add.side_effect = lambda row: setattr(row, "id", 9)
  repo = PostgresMcqRepository(session_factory)

  report = await repo.persist_topics(CHAPTER, [make_topic("Cells", 10), make_topic("Plants", 12)])

  assert report.chapter_id == 9
  assert report.topic_ids == {"Cells": 1, "Plants": 1}
  assert report.question_count == 22
  added = mock_db_session.add.call_args.args[0]
  assert isinstance(added, Chapter)
  assert added.chapter_name == "Life Processes"
  assert added.syllabus == "CBSE"
  # Two chapter lookups, then upsert, delete and insert for each topic.
  assert _statement_kinds(mock_db_session) == ["Select", "Select", "Insert", "Delete", "Insert", "Insert", "Delete", "Insert"]
  insert_call = mock_db_session.execute.call_args_list[4]
  assert len(insert_call.args[1]) == 10
  mock_db_session.commit.assert_awaited_once()
  mock_db_session.rollback.assert_not_awaited()


@pytest.mark.anyio
async def test_legacy_chapter_row_is_renamed(mock_db_session, session_factory) -> None:
  legacy = Chapter(id=4, subject_id=11, class_level=7, chapter_name="Chapter 3: Life Processes", syllabus="CBSE")
  mock_db_session.execute.side_effect = [_result(None), _result(legacy), _result(scalar=21), _result(), _result()]
  repo = PostgresMcqRepository(session_factory)

  report = await repo.persist_topics(CHAPTER, [make_topic("Cells", 10)])

  assert report.chapter_id == 4
  assert report.topic_ids == {"Cells": 21}
  assert legacy.chapter_name == "Life Processes"
  mock_db_session.add.assert_not_called()
  mock_db_session.flush.assert_awaited()


@pytest.mark.anyio
async def test_existing_chapter_syllabus_is_updated(mock_db_session, session_factory) -> None:
  existing = Chapter(id=2, subject_id=11, class_level=7, chapter_name="Life Processes", syllabus="ICSE")
  mock_db_session.execute.side_effect = [_result(existing), _result(scalar=3), _result(), _result()]

  await PostgresMcqRepository(session_factory).persist_topics(CHAPTER, [make_topic("Cells", 10)])

  assert existing.syllabus == "CBSE"


@pytest.mark.anyio
async def test_failure_rolls_back_and_raises_persistence_error(mock_db_session, session_factory) -> None:
  mock_db_session.execute.side_effect = [_result(None), _result(None), ConnectionError("connection reset")]
  mock_db_session.add.side_effect = lambda row: setattr(row, "id", 9)

  with pytest.raises(PersistenceError, match="connection reset"):
    await PostgresMcqRepository(session_factory).persist_topics(CHAPTER, [make_topic("Cells", 10)])

  mock_db_session.rollback.assert_awaited_once()
  mock_db_session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_missing_database_configuration_raises() -> None:
  repo = PostgresMcqRepository(lambda: None)

  with pytest.raises(PersistenceError, match="not configured"):
    await repo.persist_topics(CHAPTER, [make_topic("Cells", 10)])
