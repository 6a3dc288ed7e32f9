from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mcqgen.core.database import Base


class Chapter(Base):
  __tablename__ = "chapters"
  __table_args__ = (Index("ix_chapters_subject_class_name", "subject_id", "class", "chapter_name"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  subject_id: Mapped[int] = mapped_column(Integer, nullable=False)
  class_level: Mapped[int] = mapped_column("class", Integer, nullable=False)
  chapter_name: Mapped[str] = mapped_column(Text, nullable=False)
  syllabus: Mapped[str | None] = mapped_column(String, nullable=True)


class Topic(Base):
  __tablename__ = "topics"
  __table_args__ = (UniqueConstraint("subject_id", "name", "class", name="ux_topics_subject_name_class"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  subject_id: Mapped[int] = mapped_column(Integer, nullable=False)
  name: Mapped[str] = mapped_column(Text, nullable=False)
  class_level: Mapped[int] = mapped_column("class", Integer, nullable=False)
  chapter_id: Mapped[int | None] = mapped_column(ForeignKey("chapters.id", ondelete="SET NULL"), nullable=True, index=True)


class Question(Base):
  __tablename__ = "questions"
  __table_args__ = (Index("ix_questions_topic_class", "topic_id", "class"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
  class_level: Mapped[int] = mapped_column("class", Integer, nullable=False)
  question_text: Mapped[str] = mapped_column(Text, nullable=False)
  option_a: Mapped[str] = mapped_column(Text, nullable=False)
  option_b: Mapped[str] = mapped_column(Text, nullable=False)
  option_c: Mapped[str] = mapped_column(Text, nullable=False)
  option_d: Mapped[str] = mapped_column(Text, nullable=False)
  correct_answer: Mapped[str] = mapped_column(String(1), nullable=False)
  explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
  image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
