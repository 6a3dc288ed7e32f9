"""CSV artifact for a finished MCQ job."""

from __future__ import annotations

import csv
import io

from mcqgen.ai.pipeline.contracts import TopicMcqs, pad_options

CSV_HEADERS: tuple[str, ...] = ("Topic", "Question_text", "Option A", "Option B", "Option C", "Option D", "Correct_Answer", "Explanation")
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def output_filename(chapter_number: int) -> str:
  return f"chapter-{chapter_number}-mcqs.csv"


def render_csv(topics: list[TopicMcqs]) -> str:
  """Render one row per question with every cell quoted."""
  buffer = io.StringIO()
  writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
  writer.writerow(CSV_HEADERS)
  for topic in topics:
    for item in topic.items:
      writer.writerow([topic.topic, item.stem, *pad_options(item.options), item.correct_letter, item.explanation])
  return buffer.getvalue()


def build_csv_bytes(topics: list[TopicMcqs]) -> bytes:
  """Encode the CSV as UTF-8 with a byte-order mark."""
  return render_csv(topics).encode("utf-8-sig")
