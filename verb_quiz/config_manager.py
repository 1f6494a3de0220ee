"""
Configuration manager for Verb Quiz Bot settings.
"""
import logging
from typing import Any, Dict, List
from pathlib import Path
import os

from .models import QuizSettings


class ConfigManager:
    """Manages quiz file locations and interaction settings."""

    # Default configuration values
    DEFAULT_QUESTION_FILE = "./questions.json"
    DEFAULT_PROGRESS_FILE = "./progress.json"
    DEFAULT_CONFIRMATION_TIMEOUT = 30

    # Validation limits
    MIN_CONFIRMATION_TIMEOUT = 5
    MAX_CONFIRMATION_TIMEOUT = 300  # 5 minutes

    SYSTEM_DIRS = ['/bin', '/usr', '/etc', '/sys', '/proc', 'C:\\Windows', 'C:\\Program Files']

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return QuizSettings(
            question_file=self._settings.question_file,
            progress_file=self._settings.progress_file,
            confirmation_timeout=self._settings.confirmation_timeout
        )

    def apply_config(self, quiz_config: Dict[str, Any]) -> List[str]:
        """
        Apply the ``quiz`` section of config.json.

        Invalid values are logged and skipped, leaving the defaults in place.

        Args:
            quiz_config: Mapping read from the config file

        Returns:
            User-facing messages for every rejected value
        """
        rejected = []
        setters = (
            ('question_file', self.set_question_file),
            ('progress_file', self.set_progress_file),
            ('confirmation_timeout', self.set_confirmation_timeout),
        )
        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                rejected.append(result['user_message'])
        return rejected

    def _validate_file_path(self, path: Any, label: str) -> Dict[str, Any]:
        """
        Validate a data file path.

        Args:
            path: Candidate path
            label: Human-readable name of the setting

        Returns:
            Dictionary with success status and normalized path or error details
        """
        if not isinstance(path, str):
            error_msg = f"{label} must be a string, got {type(path).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(path).__name__}"
            }

        if not path.strip():
            error_msg = f"{label} cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {label} cannot be empty"
            }

        try:
            normalized_path = str(Path(path).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid {label.lower()} format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {path}"
            }

        if any(normalized_path.startswith(sys_dir) for sys_dir in self.SYSTEM_DIRS):
            error_msg = f"Cannot use system directory: {normalized_path}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Cannot use system directory: {path}"
            }

        return {'success': True, 'path': normalized_path}

    def set_question_file(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file the question bank is loaded from.

        Args:
            path: Path to the question file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        result = self._validate_file_path(path, "Question file")
        if not result['success']:
            return result

        self._settings.question_file = result['path']
        self.logger.info(f"Question file set to {result['path']}")
        return {
            'success': True,
            'message': f"Question file set to {result['path']}",
            'user_message': f"✅ Question file set to {result['path']}"
        }

    def get_question_file(self) -> str:
        return self._settings.question_file

    def set_progress_file(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file quiz progress is saved to.

        Args:
            path: Path to the progress file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        result = self._validate_file_path(path, "Progress file")
        if not result['success']:
            return result

        self._settings.progress_file = result['path']
        self.logger.info(f"Progress file set to {result['path']}")
        return {
            'success': True,
            'message': f"Progress file set to {result['path']}",
            'user_message': f"✅ Progress file set to {result['path']}"
        }

    def get_progress_file(self) -> str:
        return self._settings.progress_file

    def set_confirmation_timeout(self, seconds: int) -> Dict[str, Any]:
        """
        Set how long the reset confirmation waits before counting as declined.

        Args:
            seconds: Timeout in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(seconds, int) or isinstance(seconds, bool):
            error_msg = f"Confirmation timeout must be an integer, got {type(seconds).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            }

        if seconds < self.MIN_CONFIRMATION_TIMEOUT:
            error_msg = f"Confirmation timeout must be at least {self.MIN_CONFIRMATION_TIMEOUT} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout too short: Minimum is {self.MIN_CONFIRMATION_TIMEOUT} seconds"
            }

        if seconds > self.MAX_CONFIRMATION_TIMEOUT:
            error_msg = f"Confirmation timeout cannot exceed {self.MAX_CONFIRMATION_TIMEOUT} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout too long: Maximum is {self.MAX_CONFIRMATION_TIMEOUT} seconds"
            }

        self._settings.confirmation_timeout = seconds
        self.logger.info(f"Confirmation timeout set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Confirmation timeout set to {seconds} seconds",
            'user_message': f"✅ Reset confirmation waits {seconds} seconds"
        }

    def get_confirmation_timeout(self) -> int:
        return self._settings.confirmation_timeout

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            question_file=self.DEFAULT_QUESTION_FILE,
            progress_file=self.DEFAULT_PROGRESS_FILE,
            confirmation_timeout=self.DEFAULT_CONFIRMATION_TIMEOUT
        )
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        timeout = self._settings.confirmation_timeout
        if (not isinstance(timeout, int) or
            timeout < self.MIN_CONFIRMATION_TIMEOUT or
            timeout > self.MAX_CONFIRMATION_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid confirmation timeout: {timeout}")

        for label, path in (("question file", self._settings.question_file),
                            ("progress file", self._settings.progress_file)):
            if not isinstance(path, str) or not path.strip():
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid {label}: {path}")

        progress_dir = Path(self._settings.progress_file).parent
        if progress_dir.exists() and not os.access(progress_dir, os.W_OK):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Progress directory is not writable: {progress_dir}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Question file: {self._settings.question_file}\n"
            f"• Progress file: {self._settings.progress_file}\n"
            f"• Reset confirmation: {self._settings.confirmation_timeout} seconds"
        )
