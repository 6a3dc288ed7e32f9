"""Transactional writer for generated chapters, topics and questions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mcqgen.ai.errors import PersistenceError
from mcqgen.ai.pipeline.contracts import OPTION_LETTERS, TopicMcqs, pad_options
from mcqgen.core.database import get_session_factory
from mcqgen.schema.sql import Chapter, Question, Topic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChapterContext:
  """Chapter coordinates that key every persisted row of a job."""

  subject_id: int
  class_level: int
  chapter_number: int
  chapter_title: str
  syllabus: str | None = None

  @property
  def legacy_chapter_name(self) -> str:
    return f"Chapter {self.chapter_number}: {self.chapter_title}"


@dataclass(frozen=True)
class PersistenceReport:
  """Row identifiers written by one persistence run."""

  chapter_id: int
  topic_ids: dict[str, int] = field(default_factory=dict)
  question_count: int = 0


class McqRepository(Protocol):
  """Repository contract for MCQ persistence."""

  async def persist_topics(self, chapter: ChapterContext, topics: list[TopicMcqs]) -> PersistenceReport:
    """Replace the stored questions of every topic in a single transaction."""


def question_rows(topic_id: int, class_level: int, topic: TopicMcqs) -> list[dict]:
  """Map a topic's items onto ``questions`` insert parameters."""
  rows: list[dict] = []
  for item in topic.items:
    option_a, option_b, option_c, option_d = pad_options(item.options)
    rows.append(
      {
        "topic_id": topic_id,
        "class_level": class_level,
        "question_text": item.stem,
        "option_a": option_a,
        "option_b": option_b,
        "option_c": option_c,
        "option_d": option_d,
        "correct_answer": OPTION_LETTERS[item.correct_index],
        "explanation": item.explanation,
        "image_url": None,
      }
    )
  return rows


class PostgresMcqRepository:
  """Persist MCQ sets to Postgres with full-replace semantics per topic."""

  def __init__(self, session_factory: Callable[[], async_sessionmaker[AsyncSession] | None] = get_session_factory) -> None:
    self._session_factory_provider = session_factory

  def _sessions(self) -> async_sessionmaker[AsyncSession]:
    factory = self._session_factory_provider()
    if factory is None:
      raise PersistenceError("Database is not configured; set MCQGEN_PG_DSN.")
    return factory

  async def persist_topics(self, chapter: ChapterContext, topics: list[TopicMcqs]) -> PersistenceReport:
    sessions = self._sessions()
    # One session and one transaction per attempt; no topic is committed on its own.
    async with sessions() as session:
      try:
        chapter_id = await self._resolve_chapter(session, chapter)
        topic_ids: dict[str, int] = {}
        question_count = 0

        for topic in topics:
          # Topics are keyed by subject, name and class; the upsert re-points them at this chapter.
          topic_id = await self._upsert_topic(session, chapter, chapter_id, topic.topic)
          topic_ids[topic.topic] = topic_id
          # Full replace: the previous question set of this topic/class goes away.
          await session.execute(delete(Question).where(Question.topic_id == topic_id, Question.class_level == chapter.class_level))
          rows = question_rows(topic_id, chapter.class_level, topic)
          if rows:
            await session.execute(insert(Question), rows)
          question_count += len(rows)

        await session.commit()
      except Exception as exc:
        # Roll back before wrapping so the connection returns to the pool clean.
        await session.rollback()
        logger.error("Rolled back MCQ persistence for chapter %r: %s", chapter.chapter_title, exc)
        raise PersistenceError(f"Failed to persist MCQs: {exc}") from exc

    logger.info("Persisted %d questions across %d topic(s) for chapter id %s", question_count, len(topic_ids), chapter_id)
    return PersistenceReport(chapter_id=chapter_id, topic_ids=topic_ids, question_count=question_count)

  async def _find_chapter(self, session: AsyncSession, chapter: ChapterContext, name: str) -> Chapter | None:
    stmt = select(Chapter).where(Chapter.subject_id == chapter.subject_id, Chapter.class_level == chapter.class_level, Chapter.chapter_name == name).limit(1)
    result = await session.execute(stmt)
    return result.scalars().first()

  async def _resolve_chapter(self, session: AsyncSession, chapter: ChapterContext) -> int:
    row = await self._find_chapter(session, chapter, chapter.chapter_title)

    if row is None:
      # Older runs stored the chapter as "Chapter N: Title"; migrate those rows in place.
      row = await self._find_chapter(session, chapter, chapter.legacy_chapter_name)
      if row is not None:
        logger.info("Migrating legacy chapter label %r to %r", row.chapter_name, chapter.chapter_title)
        row.chapter_name = chapter.chapter_title

    if row is None:
      row = Chapter(subject_id=chapter.subject_id, class_level=chapter.class_level, chapter_name=chapter.chapter_title, syllabus=chapter.syllabus)
      session.add(row)
    elif chapter.syllabus and row.syllabus != chapter.syllabus:
      # The incoming syllabus label is authoritative.
      row.syllabus = chapter.syllabus

    # Flush so a newly added chapter gets its id before topics reference it.
    await session.flush()
    return row.id

  async def _upsert_topic(self, session: AsyncSession, chapter: ChapterContext, chapter_id: int, name: str) -> int:
    stmt = pg_insert(Topic).values(subject_id=chapter.subject_id, name=name, class_level=chapter.class_level, chapter_id=chapter_id)
    stmt = stmt.on_conflict_do_update(index_elements=[Topic.subject_id, Topic.name, Topic.class_level], set_={"chapter_id": stmt.excluded.chapter_id}).returning(Topic.id)
    result = await session.execute(stmt)
    return int(result.scalar_one())
