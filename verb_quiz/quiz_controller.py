"""
Quiz controller for the Verb Quiz Bot.
Owns the quiz state, applies user actions, and keeps progress persisted.
"""
import json
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from .models import Question, QuizPhase, QuizState, Score, SubmitOutcome
from .progress_store import ProgressStore
from .question_bank import QuestionBank


INDEX_KEY = "quizIndex"
SCORE_KEY = "quizScore"

WRONG_ANSWER_MESSAGE = "Wrong answer. Try again."
REVEALED_MESSAGE = "Answer revealed. Type the correct answer to continue."


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class QuizCompletedError(QuizControllerError):
    """Raised when an answering or navigation action is attempted on a completed quiz."""
    pass


class EmptyQuestionBankError(QuizControllerError):
    """Raised when the controller is given a bank with no questions."""
    pass


def normalize_answer(text: str) -> str:
    """Normalize an answer for comparison: trim surrounding whitespace and lowercase."""
    return text.strip().lower()


class QuizController:
    """
    State machine over a fixed question bank.

    The quiz is in progress while ``current_index`` is below the number of
    questions, and complete once it reaches it. A completed quiz only
    accepts ``reset``. The current index and the score are written to the
    progress store after every change and restored on construction.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        progress_store: ProgressStore,
        confirm: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            question_bank: Ordered questions to ask
            progress_store: Persistence for the current index and score
            confirm: Default confirmation callback used by reset

        Raises:
            EmptyQuestionBankError: If the bank holds no questions
        """
        self.logger = logging.getLogger(__name__)

        if len(question_bank) == 0:
            raise EmptyQuestionBankError("Question bank has no questions")

        self.question_bank = question_bank
        self.progress_store = progress_store
        self._confirm = confirm
        self._state = QuizState()

        self._restore_progress()

        self.logger.info(
            f"QuizController initialized at question {self._state.current_index + 1}/{self.total_questions}",
            extra={
                'event_type': 'controller_initialized',
                'current_index': self._state.current_index,
                'total_questions': self.total_questions,
                'timestamp': time.time()
            }
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def total_questions(self) -> int:
        return len(self.question_bank)

    @property
    def phase(self) -> QuizPhase:
        if self._state.current_index >= self.total_questions:
            return QuizPhase.COMPLETE
        return QuizPhase.IN_PROGRESS

    @property
    def is_complete(self) -> bool:
        return self.phase is QuizPhase.COMPLETE

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def score(self) -> Score:
        return replace(self._state.score)

    @property
    def draft_answer(self) -> str:
        return self._state.draft_answer

    @property
    def error_message(self) -> str:
        return self._state.error_message

    @property
    def is_revealed(self) -> bool:
        return self._state.is_revealed

    @property
    def current_question(self) -> Optional[Question]:
        """The question being asked, or None once the quiz is complete."""
        if self.is_complete:
            return None
        return self.question_bank[self._state.current_index]

    @property
    def revealed_answer(self) -> Optional[str]:
        """The current answer if it has been revealed, otherwise None."""
        question = self.current_question
        if question is None or not self._state.is_revealed:
            return None
        return question.answer

    def get_state(self) -> QuizState:
        """Return a copy of the current state."""
        return replace(self._state, score=replace(self._state.score))

    def get_progress(self) -> Dict[str, Any]:
        """
        Get display information for the current state.

        Returns:
            Dictionary with prompt, feedback, score and position
        """
        question = self.current_question
        return {
            'phase': self.phase.value,
            'is_complete': self.is_complete,
            'current_index': self._state.current_index,
            'current_question': min(self._state.current_index + 1, self.total_questions),
            'total_questions': self.total_questions,
            'prompt': question.prompt if question else None,
            'draft_answer': self._state.draft_answer,
            'error_message': self._state.error_message,
            'is_revealed': self._state.is_revealed,
            'revealed_answer': self.revealed_answer,
            'can_go_back': not self.is_complete and self._state.current_index > 0,
            'score': self._state.score.to_dict()
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_draft(self, text: str) -> None:
        """Store the answer as currently typed."""
        self._require_in_progress("set_draft")
        self._state.draft_answer = text

    def submit(self, draft_answer: Optional[str] = None) -> SubmitOutcome:
        """
        Check the draft answer against the current question.

        Args:
            draft_answer: Text to submit; the stored draft is used if None

        Returns:
            Outcome of the submission

        Raises:
            QuizCompletedError: If the quiz is already complete
        """
        self._require_in_progress("submit")

        if draft_answer is not None:
            self._state.draft_answer = draft_answer

        question = self.question_bank[self._state.current_index]
        if normalize_answer(self._state.draft_answer) != normalize_answer(question.answer):
            # The typed text stays in place so the user can correct it
            self._state.error_message = WRONG_ANSWER_MESSAGE
            self.logger.info(
                f"Wrong answer for question {self._state.current_index + 1}",
                extra={
                    'event_type': 'answer_wrong',
                    'current_index': self._state.current_index,
                    'timestamp': time.time()
                }
            )
            return SubmitOutcome.WRONG

        if self._state.is_revealed:
            outcome = SubmitOutcome.CORRECT_AFTER_REVEAL
        else:
            self._state.score.correct += 1
            outcome = SubmitOutcome.CORRECT

        self.logger.info(
            f"Answer accepted for question {self._state.current_index + 1} ({outcome.value})",
            extra={
                'event_type': 'answer_accepted',
                'current_index': self._state.current_index,
                'outcome': outcome.value,
                'timestamp': time.time()
            }
        )
        self._advance()
        return outcome

    def surrender(self) -> bool:
        """
        Reveal the current answer and count it as surrendered.

        Returns:
            True if the answer was revealed now, False if it already was

        Raises:
            QuizCompletedError: If the quiz is already complete
        """
        self._require_in_progress("surrender")

        if self._state.is_revealed:
            return False

        self._state.is_revealed = True
        self._state.score.surrendered += 1
        self._state.error_message = REVEALED_MESSAGE

        self.logger.info(
            f"Answer revealed for question {self._state.current_index + 1}",
            extra={
                'event_type': 'answer_revealed',
                'current_index': self._state.current_index,
                'timestamp': time.time()
            }
        )
        self._save_progress()
        return True

    def go_back(self) -> bool:
        """
        Move to the previous question, clamped at the first one.

        Returns:
            True if the index moved, False if already at the first question

        Raises:
            QuizCompletedError: If the quiz is already complete
        """
        self._require_in_progress("go_back")

        previous_index = self._state.current_index
        self._clear_question_state()
        self._state.current_index = max(previous_index - 1, 0)

        if self._state.current_index == previous_index:
            return False

        self.logger.info(
            f"Moved back to question {self._state.current_index + 1}",
            extra={
                'event_type': 'question_back',
                'current_index': self._state.current_index,
                'timestamp': time.time()
            }
        )
        self._save_progress()
        return True

    def reset(self, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """
        Start over from the first question with a zero score.

        The reset only happens if the confirmation callback returns True.
        Persisted progress is removed from the store on reset.

        Args:
            confirm: Confirmation callback; the one given at construction is used if None

        Returns:
            True if the quiz was reset, False if the reset was declined
        """
        gate = confirm if confirm is not None else self._confirm
        if gate is None or not gate():
            self.logger.info(
                "Reset declined",
                extra={'event_type': 'reset_declined', 'timestamp': time.time()}
            )
            return False

        self._state = QuizState()
        self._clear_progress()

        self.logger.info(
            "Quiz progress reset",
            extra={'event_type': 'reset_confirmed', 'timestamp': time.time()}
        )
        return True

    def _advance(self) -> None:
        self._clear_question_state()
        self._state.current_index = min(self._state.current_index + 1, self.total_questions)

        if self.is_complete:
            self.logger.info(
                f"Quiz completed: {self._state.score.correct} correct, "
                f"{self._state.score.surrendered} surrendered",
                extra={
                    'event_type': 'quiz_completed',
                    'score': self._state.score.to_dict(),
                    'timestamp': time.time()
                }
            )
        self._save_progress()

    def _clear_question_state(self) -> None:
        self._state.error_message = ""
        self._state.draft_answer = ""
        self._state.is_revealed = False

    def _require_in_progress(self, operation: str) -> None:
        if self.is_complete:
            raise QuizCompletedError(f"Cannot {operation}: the quiz is complete")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _restore_progress(self) -> None:
        """Load the saved index and score, using defaults for anything missing or malformed."""
        self._state.current_index = self._parse_saved_index(self.progress_store.get(INDEX_KEY))
        self._state.score = self._parse_saved_score(self.progress_store.get(SCORE_KEY))

    def _parse_saved_index(self, raw: Optional[str]) -> int:
        if raw is None:
            return 0

        # Plain ASCII digits only; int() would also accept " 3 ", "+3" and "1_0"
        if not isinstance(raw, str) or not (raw.isascii() and raw.isdigit()):
            self.logger.warning(f"Ignoring malformed saved index: {raw!r}")
            return 0

        index = int(raw)
        if not 0 <= index <= self.total_questions:
            self.logger.warning(
                f"Ignoring saved index {index} outside 0..{self.total_questions}"
            )
            return 0

        return index

    def _parse_saved_score(self, raw: Optional[str]) -> Score:
        if raw is None:
            return Score()

        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            self.logger.warning(f"Ignoring malformed saved score: {raw!r}")
            return Score()

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring saved score that is not an object: {raw!r}")
            return Score()

        counts = []
        for key in ("correct", "surrendered"):
            value = data.get(key)
            # bool is an int subclass and is not a valid count
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                self.logger.warning(f"Ignoring saved score with invalid '{key}': {raw!r}")
                return Score()
            counts.append(value)

        return Score(correct=counts[0], surrendered=counts[1])

    def _save_progress(self) -> None:
        try:
            self.progress_store.set_many({
                INDEX_KEY: str(self._state.current_index),
                SCORE_KEY: json.dumps(self._state.score.to_dict())
            })
        except OSError as e:
            self.logger.error(f"Failed to save quiz progress: {e}")

    def _clear_progress(self) -> None:
        try:
            self.progress_store.remove_many([INDEX_KEY, SCORE_KEY])
        except OSError as e:
            self.logger.error(f"Failed to clear saved quiz progress: {e}")
