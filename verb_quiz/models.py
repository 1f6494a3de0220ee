"""
Core data models for the Verb Quiz Bot.
"""
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Question:
    """A single vocabulary question: the prompt to translate and its answer."""
    prompt: str
    answer: str


@dataclass
class Score:
    """Running tally of answers given without help and answers surrendered."""
    correct: int = 0
    surrendered: int = 0

    def to_dict(self) -> dict:
        return {"correct": self.correct, "surrendered": self.surrendered}


@dataclass
class QuizState:
    """All mutable state of the quiz, owned by QuizController."""
    current_index: int = 0
    draft_answer: str = ""
    error_message: str = ""
    is_revealed: bool = False
    score: Score = field(default_factory=Score)


class QuizPhase(Enum):
    """Super-states of the quiz."""
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class SubmitOutcome(Enum):
    """Result of submitting a draft answer."""
    CORRECT = "correct"
    CORRECT_AFTER_REVEAL = "correct_after_reveal"
    WRONG = "wrong"


@dataclass
class QuizSettings:
    """Configuration settings for the quiz."""
    question_file: str = "./questions.json"
    progress_file: str = "./progress.json"
    confirmation_timeout: int = 30
