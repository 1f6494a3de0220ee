"""
Comprehensive integration tests for the Verb Quiz Bot.
Tests complete quiz flows from question file to saved progress.
"""
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from verb_quiz.bot import QuizBot
from verb_quiz.config_manager import ConfigManager
from verb_quiz.models import QuizPhase, SubmitOutcome
from verb_quiz.progress_store import JsonFileProgressStore
from verb_quiz.question_bank import QuestionBank
from verb_quiz.quiz_controller import (
    INDEX_KEY, SCORE_KEY, QuizController, QuizCompletedError
)
from tests.test_fixtures import TestFixtures


class TestCompleteQuizFlow(unittest.TestCase):
    """Test complete quiz flows through real files."""

    def setUp(self):
        """Set up test environment with a question file and a progress file."""
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()

        self.config_manager = ConfigManager()
        self.config_manager.apply_config({
            'question_file': str(Path(self.temp_dir) / "questions.json"),
            'progress_file': str(Path(self.temp_dir) / "progress.json"),
        })
        TestFixtures.write_quiz_file(self.temp_dir, TestFixtures.create_valid_quiz_json())

        self.bank = QuestionBank.load(self.config_manager.get_question_file())

    def tearDown(self):
        """Clean up test environment."""
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def start_controller(self, confirm=None) -> QuizController:
        """Build a controller the way the bot does on startup."""
        store = JsonFileProgressStore(self.config_manager.get_progress_file())
        return QuizController(self.bank, store, confirm=confirm)

    def read_progress_file(self) -> dict:
        with open(self.config_manager.get_progress_file(), encoding='utf-8') as f:
            return json.load(f)

    def test_full_quiz_session(self):
        """Play every outcome once and finish the quiz."""
        controller = self.start_controller()

        # run -> correct
        self.assertEqual(controller.submit("Lari"), SubmitOutcome.CORRECT)

        # eat -> wrong, then surrender, then type the revealed answer
        self.assertEqual(controller.submit("minum"), SubmitOutcome.WRONG)
        self.assertTrue(controller.surrender())
        self.assertEqual(controller.revealed_answer, "makan")
        self.assertEqual(controller.submit("makan"), SubmitOutcome.CORRECT_AFTER_REVEAL)

        # swim -> correct, quiz complete
        self.assertEqual(controller.submit(" berenang "), SubmitOutcome.CORRECT)

        self.assertEqual(controller.phase, QuizPhase.COMPLETE)
        self.assertEqual(controller.score.correct, 2)
        self.assertEqual(controller.score.surrendered, 1)
        self.assertEqual(self.read_progress_file(), {
            INDEX_KEY: "3",
            SCORE_KEY: json.dumps({"correct": 2, "surrendered": 1})
        })

        with self.assertRaises(QuizCompletedError):
            controller.submit("anything")

    def test_progress_survives_restart(self):
        controller = self.start_controller()
        controller.submit("lari")
        controller.surrender()

        restarted = self.start_controller()

        self.assertEqual(restarted.current_index, 1)
        self.assertEqual(restarted.score.correct, 1)
        self.assertEqual(restarted.score.surrendered, 1)
        # Per-question state is not persisted
        self.assertFalse(restarted.is_revealed)
        self.assertEqual(restarted.error_message, "")

    def test_completed_quiz_survives_restart(self):
        controller = self.start_controller()
        for answer in ("lari", "makan", "berenang"):
            controller.submit(answer)

        restarted = self.start_controller()

        self.assertTrue(restarted.is_complete)
        self.assertIsNone(restarted.current_question)

    def test_wrong_answer_is_not_saved(self):
        controller = self.start_controller()
        controller.submit("lari")
        before = self.read_progress_file()

        controller.submit("salah")

        self.assertEqual(self.read_progress_file(), before)

    def test_go_back_is_saved(self):
        controller = self.start_controller()
        controller.submit("lari")
        controller.submit("makan")

        self.assertTrue(controller.go_back())

        self.assertEqual(self.read_progress_file()[INDEX_KEY], "1")
        self.assertEqual(self.start_controller().current_index, 1)

    def test_confirmed_reset_clears_saved_progress(self):
        controller = self.start_controller(confirm=lambda: True)
        controller.submit("lari")

        self.assertTrue(controller.reset())

        self.assertEqual(self.read_progress_file(), {})
        restarted = self.start_controller()
        self.assertEqual(restarted.current_index, 0)
        self.assertEqual(restarted.score.correct, 0)

    def test_declined_reset_keeps_saved_progress(self):
        controller = self.start_controller(confirm=lambda: False)
        controller.submit("lari")

        self.assertFalse(controller.reset())

        self.assertEqual(self.read_progress_file()[INDEX_KEY], "1")

    def test_corrupt_progress_file_starts_fresh(self):
        Path(self.config_manager.get_progress_file()).write_text("garbage", encoding='utf-8')

        controller = self.start_controller()

        self.assertEqual(controller.current_index, 0)
        self.assertEqual(controller.score.correct, 0)

    def test_malformed_saved_values_start_fresh(self):
        with open(self.config_manager.get_progress_file(), 'w', encoding='utf-8') as f:
            json.dump({INDEX_KEY: "abc", SCORE_KEY: "{not json"}, f)

        controller = self.start_controller()

        self.assertEqual(controller.current_index, 0)
        self.assertEqual(controller.score.correct, 0)
        self.assertEqual(controller.score.surrendered, 0)


class TestQuestionFileRecovery(unittest.TestCase):
    """Quiz still runs when the question file is missing or broken."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.progress_file = str(Path(self.temp_dir) / "progress.json")

    def tearDown(self):
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_question_file_runs_sample_quiz(self):
        bank = QuestionBank.load(str(Path(self.temp_dir) / "questions.json"))
        controller = QuizController(bank, JsonFileProgressStore(self.progress_file))

        self.assertEqual(controller.current_question.prompt, "run")
        self.assertEqual(controller.submit("lari"), SubmitOutcome.CORRECT)

    def test_broken_question_file_runs_fallback(self):
        path = Path(self.temp_dir) / "questions.json"
        path.write_text("{ broken", encoding='utf-8')
        bank = QuestionBank.load(str(path))
        controller = QuizController(bank, JsonFileProgressStore(self.progress_file))

        self.assertEqual(controller.total_questions, 1)
        controller.submit("OK")
        self.assertTrue(controller.is_complete)

    def test_saved_index_beyond_smaller_bank_starts_fresh(self):
        with open(self.progress_file, 'w', encoding='utf-8') as f:
            json.dump({INDEX_KEY: "7"}, f)
        bank = QuestionBank.from_pairs([("run", "lari"), ("eat", "makan")])

        controller = QuizController(bank, JsonFileProgressStore(self.progress_file))

        self.assertEqual(controller.current_index, 0)


class TestBotStartup(unittest.IsolatedAsyncioTestCase):
    """Bot startup wiring of question file, progress file and settings."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.question_file = Path(self.temp_dir) / "questions.json"
        self.progress_file = Path(self.temp_dir) / "progress.json"
        self.config = {
            'quiz': {
                'question_file': str(self.question_file),
                'progress_file': str(self.progress_file),
                'confirmation_timeout': 60
            }
        }

    async def asyncTearDown(self):
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_saved_progress(self):
        saved = {
            INDEX_KEY: "2",
            SCORE_KEY: json.dumps({"correct": 2, "surrendered": 0})
        }
        with open(self.progress_file, 'w', encoding='utf-8') as f:
            json.dump(saved, f)
        return saved

    async def start_bot(self) -> QuizBot:
        bot = QuizBot(self.config)
        await bot.setup_hook()
        return bot

    async def test_startup_restores_saved_progress(self):
        TestFixtures.write_quiz_file(self.temp_dir, TestFixtures.create_valid_quiz_json())
        self.write_saved_progress()

        bot = await self.start_bot()

        self.assertIsInstance(bot.quiz_controller.progress_store, JsonFileProgressStore)
        self.assertEqual(bot.quiz_controller.current_index, 2)
        self.assertEqual(bot.config_manager.get_confirmation_timeout(), 60)

    async def test_broken_question_file_leaves_saved_progress_alone(self):
        self.question_file.write_text("{ broken", encoding='utf-8')
        saved = self.write_saved_progress()

        bot = await self.start_bot()
        self.assertTrue(bot.question_bank.is_fallback_active())
        bot.quiz_controller.submit("ok")

        self.assertTrue(bot.quiz_controller.is_complete)
        with open(self.progress_file, encoding='utf-8') as f:
            self.assertEqual(json.load(f), saved)

        # Once the question file is fixed the old position comes back
        TestFixtures.write_quiz_file(self.temp_dir, TestFixtures.create_valid_quiz_json())
        restarted = await self.start_bot()
        self.assertEqual(restarted.quiz_controller.current_index, 2)
        self.assertEqual(restarted.quiz_controller.score.correct, 2)

    async def test_invalid_settings_fall_back_to_defaults(self):
        bot = QuizBot(self.config)
        bot.config_manager = ConfigManager()
        invalid = {'valid': False, 'issues': ["Progress directory is not writable: /nowhere"]}

        with patch.object(ConfigManager, 'validate_settings', return_value=invalid):
            await bot.apply_configuration()

        self.assertEqual(bot.config_manager.get_confirmation_timeout(), 30)
        self.assertEqual(bot.config_manager.get_progress_file(), "./progress.json")

    async def test_valid_settings_are_kept(self):
        bot = QuizBot(self.config)
        bot.config_manager = ConfigManager()

        await bot.apply_configuration()

        self.assertEqual(bot.config_manager.get_confirmation_timeout(), 60)
        self.assertEqual(bot.config_manager.get_progress_file(), str(self.progress_file.resolve()))


if __name__ == '__main__':
    unittest.main()
