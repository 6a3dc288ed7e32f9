"""Create chapters, topics and questions tables.

Revision ID: 7c1e4a9d2b60
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "7c1e4a9d2b60"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "chapters",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("subject_id", sa.Integer(), nullable=False),
    sa.Column("class", sa.Integer(), nullable=False),
    sa.Column("chapter_name", sa.Text(), nullable=False),
    sa.Column("syllabus", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_chapters_subject_class_name", "chapters", ["subject_id", "class", "chapter_name"], unique=False)

  op.create_table(
    "topics",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("subject_id", sa.Integer(), nullable=False),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("class", sa.Integer(), nullable=False),
    sa.Column("chapter_id", sa.Integer(), nullable=True),
    sa.ForeignKeyConstraint(["chapter_id"], ["chapters.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("subject_id", "name", "class", name="ux_topics_subject_name_class"),
  )
  op.create_index(op.f("ix_topics_chapter_id"), "topics", ["chapter_id"], unique=False)

  op.create_table(
    "questions",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("topic_id", sa.Integer(), nullable=False),
    sa.Column("class", sa.Integer(), nullable=False),
    sa.Column("question_text", sa.Text(), nullable=False),
    sa.Column("option_a", sa.Text(), nullable=False),
    sa.Column("option_b", sa.Text(), nullable=False),
    sa.Column("option_c", sa.Text(), nullable=False),
    sa.Column("option_d", sa.Text(), nullable=False),
    sa.Column("correct_answer", sa.String(length=1), nullable=False),
    sa.Column("explanation", sa.Text(), nullable=True),
    sa.Column("image_url", sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(["topic_id"], ["topics.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_questions_topic_class", "questions", ["topic_id", "class"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_questions_topic_class", table_name="questions")
  op.drop_table("questions")
  op.drop_index(op.f("ix_topics_chapter_id"), table_name="topics")
  op.drop_table("topics")
  op.drop_index("ix_chapters_subject_class_name", table_name="chapters")
  op.drop_table("chapters")
