"""
Question bank loading and validation for the Verb Quiz Bot.
"""
import json
import os
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from pathlib import Path

from .models import Question


# Accepted keys for the prompt field, in order of preference
PROMPT_KEYS = ("word", "prompt", "question")

SAMPLE_QUIZ_DATA = {
    "quiz": [
        {"word": "run", "answer": "lari"},
        {"word": "eat", "answer": "makan"},
        {"word": "drink", "answer": "minum"},
        {"word": "sleep", "answer": "tidur"},
        {"word": "write", "answer": "menulis"},
        {"word": "read", "answer": "membaca"},
        {"word": "swim", "answer": "berenang"},
        {"word": "sing", "answer": "bernyanyi"},
    ]
}


class QuestionBank:
    """
    Ordered, fixed sequence of questions.

    The bank is loaded once before the quiz starts and is never mutated
    afterwards. Use ``load`` to read it from a JSON file or ``from_pairs``
    to build one directly.
    """

    # 10MB limit for question files
    MAX_FILE_SIZE = 10 * 1024 * 1024

    def __init__(self, questions: Optional[Iterable[Question]] = None):
        self.logger = logging.getLogger(__name__)
        self._questions: Tuple[Question, ...] = tuple(questions or ())
        self.source_file: Optional[Path] = None
        self.load_errors: List[str] = []  # Track loading errors for user feedback
        self.fallback_created = False  # Track if we fell back to the built-in question

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "QuestionBank":
        """Build a bank from (prompt, answer) pairs."""
        return cls(Question(prompt=prompt, answer=answer) for prompt, answer in pairs)

    @classmethod
    def load(cls, question_file: str = "./questions.json") -> "QuestionBank":
        """
        Load a bank from a JSON file with comprehensive error handling.

        A missing file gets the sample quiz written to it. A file that cannot
        be loaded at all leaves the bank holding a single fallback question.

        Args:
            question_file: Path to the JSON question file

        Returns:
            Loaded QuestionBank
        """
        bank = cls()
        bank.load_file(question_file)
        return bank

    def __len__(self) -> int:
        return len(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    def load_file(self, question_file: str) -> Tuple[Question, ...]:
        """
        Read questions from ``question_file`` into this bank.

        Args:
            question_file: Path to the JSON question file

        Returns:
            Tuple of loaded Question objects
        """
        self.load_errors.clear()
        self.fallback_created = False
        self.source_file = Path(question_file)

        if not self.source_file.exists():
            self.logger.warning(f"Question file not found: {self.source_file}")
            self.load_errors.append(f"Question file not found: {self.source_file}")
            return self._create_sample_quiz()

        load_result = self._load_file_safely(self.source_file)
        if not load_result['success']:
            self.load_errors.append(f"{self.source_file.name}: {load_result['error']}")
            return self._create_fallback_quiz()

        self.logger.info(f"Loaded {len(self._questions)} questions from {self.source_file}")
        return self._questions

    def _load_single_file(self, file_path: Path) -> Optional[dict]:
        """
        Load and parse a single JSON file.

        Args:
            file_path: Path to the JSON file

        Returns:
            Parsed JSON data or None if loading failed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                if self.validate_quiz_structure(data):
                    return data
                else:
                    self.logger.error(f"Invalid quiz structure in {file_path}")
                    return None
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            return None
        except FileNotFoundError:
            self.logger.error(f"Question file not found: {file_path}")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read question file {file_path}: {e}")
            return None

    def validate_quiz_structure(self, data: Any) -> bool:
        """
        Validate that JSON data has the correct quiz structure.

        Expected structure:
        {
            "quiz": [
                {
                    "word": str,     # "prompt" or "question" also accepted
                    "answer": str
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            True if structure is valid, False otherwise
        """
        if not isinstance(data, dict):
            self.logger.error("Quiz data must be a JSON object")
            return False

        if "quiz" not in data:
            self.logger.error("Quiz data must contain a 'quiz' key")
            return False

        quiz_array = data["quiz"]
        if not isinstance(quiz_array, list):
            self.logger.error("'quiz' value must be an array")
            return False

        if not quiz_array:
            self.logger.error("Quiz array cannot be empty")
            return False

        for i, question_data in enumerate(quiz_array):
            if not isinstance(question_data, dict):
                self.logger.error(f"Question {i} must be an object")
                return False

            prompt_key = self._find_prompt_key(question_data)
            if prompt_key is None:
                self.logger.error(f"Question {i} missing 'word' field")
                return False

            if "answer" not in question_data:
                self.logger.error(f"Question {i} missing 'answer' field")
                return False

            if not isinstance(question_data[prompt_key], str):
                self.logger.error(f"Question {i} '{prompt_key}' field must be a string")
                return False

            if not isinstance(question_data["answer"], str):
                self.logger.error(f"Question {i} 'answer' field must be a string")
                return False

            if not question_data["answer"].strip():
                self.logger.error(f"Question {i} 'answer' field cannot be blank")
                return False

        return True

    @staticmethod
    def _find_prompt_key(question_data: dict) -> Optional[str]:
        for key in PROMPT_KEYS:
            if key in question_data:
                return key
        return None

    def _parse_questions(self, quiz_data: dict) -> List[Question]:
        """
        Parse validated quiz data into Question objects.

        Args:
            quiz_data: Validated quiz data dictionary

        Returns:
            List of Question objects
        """
        questions = []

        for question_data in quiz_data["quiz"]:
            prompt_key = self._find_prompt_key(question_data)
            questions.append(Question(
                prompt=question_data[prompt_key],
                answer=question_data["answer"]
            ))

        return questions

    def _load_file_safely(self, json_file: Path) -> Dict[str, Any]:
        """
        Load the question file with comprehensive error handling.

        Args:
            json_file: Path to the JSON file to load

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not os.access(json_file, os.R_OK):
                return {
                    'success': False,
                    'error': "Permission denied: Cannot read file"
                }

            file_size = json_file.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB). Maximum size is {self.MAX_FILE_SIZE / 1024 / 1024}MB"
                }

            quiz_data = self._load_single_file(json_file)
            if quiz_data is None:
                return {
                    'success': False,
                    'error': "Invalid JSON structure or validation failed"
                }

            self._questions = tuple(self._parse_questions(quiz_data))
            return {'success': True}

        except PermissionError:
            return {
                'success': False,
                'error': "Permission denied"
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error: {e}"
            }

    def _create_sample_quiz(self) -> Tuple[Question, ...]:
        """
        Write the sample verb quiz when no question file exists, then load it.

        Returns:
            Tuple of sample Question objects
        """
        try:
            self.source_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.source_file, 'w', encoding='utf-8') as f:
                json.dump(SAMPLE_QUIZ_DATA, f, indent=2, ensure_ascii=False)
            self.logger.info(f"Created sample question file: {self.source_file}")
        except OSError as e:
            # The sample is still usable from memory
            self.logger.error(f"Failed to write sample question file: {e}")
            self.load_errors.append(f"Failed to write sample question file: {e}")

        self._questions = tuple(self._parse_questions(SAMPLE_QUIZ_DATA))
        self.logger.info(f"Loaded sample quiz with {len(self._questions)} questions")
        return self._questions

    def _create_fallback_quiz(self) -> Tuple[Question, ...]:
        """
        Create a minimal fallback bank in memory when the question file is unusable.

        Returns:
            Tuple holding the fallback question
        """
        self._questions = (
            Question(
                prompt="fallback: the question file could not be loaded. Type 'ok' to continue",
                answer="ok"
            ),
        )
        self.fallback_created = True
        self.logger.warning("Created fallback question bank due to file loading failures")
        return self._questions

    def get_load_errors(self) -> List[str]:
        """Get list of errors encountered during the last load operation."""
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def is_fallback_active(self) -> bool:
        """
        Check if the fallback bank was created due to loading failures.

        Returns:
            True if fallback bank is active, False otherwise
        """
        return self.fallback_created

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a comprehensive summary of the loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_questions': len(self._questions),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'fallback_active': self.is_fallback_active(),
            'question_file': str(self.source_file) if self.source_file else None,
        }
