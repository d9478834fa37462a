"""In-memory question list fed from spreadsheet rows."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Iterable, Optional
import logging

logger = logging.getLogger(__name__)


class QuestionStatus(str, Enum):
    """Moderation status of a question."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PROJECTED = "Projected"


@dataclass
class Question:
    """A submitted question. ``id`` is its row index in the sheet."""

    id: int
    name: str
    question: str
    status: QuestionStatus = QuestionStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class QuestionStore:
    """
    Questions in sheet order.

    Rows are only ever appended: a sheet read that returns more rows than are
    already known adds the extra ones as pending, everything else is ignored.
    """

    def __init__(self) -> None:
        self._questions: list[Question] = []

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def ingest(self, rows: Iterable[dict[str, Any]]) -> list[Question]:
        """
        Add the rows beyond the ones already known.

        Args:
            rows: Every row of the sheet, as dicts with ``Name`` and ``Question``

        Returns:
            The newly added questions
        """
        rows = list(rows)
        known = len(self._questions)
        if len(rows) <= known:
            return []

        added = []
        for index in range(known, len(rows)):
            row = rows[index]
            question = Question(
                id=index,
                name=row.get("Name") or "",
                question=row.get("Question") or "",
            )
            self._questions.append(question)
            added.append(question)

        logger.debug(f"Ingested {len(added)} rows ({len(self._questions)} total)")
        return added

    def get(self, question_id: Any) -> Optional[Question]:
        """Look up a question by id; unknown or malformed ids give None."""
        if isinstance(question_id, bool):
            return None
        for question in self._questions:
            if question.id == question_id:
                return question
        return None

    def set_status(self, question_id: Any, status: QuestionStatus) -> Optional[Question]:
        question = self.get(question_id)
        if question is None:
            logger.debug(f"Ignoring {status.value} for unknown question {question_id!r}")
            return None
        question.status = status
        return question

    def approve(self, question_id: Any) -> Optional[Question]:
        return self.set_status(question_id, QuestionStatus.APPROVED)

    def decline(self, question_id: Any) -> Optional[Question]:
        return self.set_status(question_id, QuestionStatus.REJECTED)

    def project(self, question_id: Any) -> Optional[Question]:
        return self.set_status(question_id, QuestionStatus.PROJECTED)

    def with_status(self, status: QuestionStatus) -> list[Question]:
        return [q for q in self._questions if q.status == status]

    def lists(self) -> dict[str, list[dict[str, Any]]]:
        """Pending and approved questions, ready to send to clients."""
        return {
            "pending": [q.to_dict() for q in self.with_status(QuestionStatus.PENDING)],
            "approved": [q.to_dict() for q in self.with_status(QuestionStatus.APPROVED)],
        }
