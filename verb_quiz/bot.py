import discord
from discord.ext import commands
import logging
import asyncio
from typing import Optional
import os
from pathlib import Path

from .config_manager import ConfigManager
from .models import SubmitOutcome
from .progress_store import InMemoryProgressStore, JsonFileProgressStore, ProgressStore
from .question_bank import QuestionBank
from .quiz_controller import QuizController, QuizCompletedError
from .views import AnswerModal, ConfirmResetView, QuizCardView, build_quiz_embed, format_score

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO, log_directory: str = "logs"):
    """Set up console, file and error-file logging."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Console output
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),  # File output
        ]
    )

    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logger


class QuizBot(commands.Bot):
    """Discord bot running a single vocabulary quiz"""

    def __init__(self, config=None):
        # Slash commands only need the guilds intent
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.question_bank: Optional[QuestionBank] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                await self.apply_configuration()

            self.question_bank = QuestionBank.load(self.config_manager.get_question_file())
            if self.question_bank.has_load_errors():
                logger.warning(f"Question bank loaded with errors: {self.question_bank.get_load_errors()}")

            self.quiz_controller = QuizController(self.question_bank, self.create_progress_store())

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def apply_configuration(self):
        """Apply settings from configuration file to the config manager."""
        rejected = self.config_manager.apply_config(self.app_config.get('quiz', {}))
        for message in rejected:
            logger.warning(f"Ignoring configuration value: {message}")

        validation = self.config_manager.validate_settings()
        if not validation['valid']:
            for issue in validation['issues']:
                logger.warning(f"Configuration issue: {issue}")
            logger.warning("Falling back to default settings")
            self.config_manager.reset_to_defaults()

        logger.info("Configuration applied")

    def create_progress_store(self) -> ProgressStore:
        """
        Pick where progress is saved.

        While the fallback question is active the progress file is never
        read or written; the session is kept in memory only.
        """
        if self.question_bank.is_fallback_active():
            logger.warning(
                "Question file could not be loaded; progress will not be saved this session",
                extra={'event_type': 'progress_not_persisted'}
            )
            return InMemoryProgressStore()
        return JsonFileProgressStore(self.config_manager.get_progress_file())

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quiz", description="Show the current question")
        async def quiz_command(interaction: discord.Interaction):
            await self.handle_quiz(interaction)

        @self.tree.command(name="answer", description="Submit your translation of the current word")
        async def answer_command(interaction: discord.Interaction, text: str):
            await self.handle_answer(interaction, text)

        @self.tree.command(name="surrender", description="Reveal the answer (it will not count as correct)")
        async def surrender_command(interaction: discord.Interaction):
            await self.handle_surrender(interaction)

        @self.tree.command(name="previous", description="Go back to the previous question")
        async def previous_command(interaction: discord.Interaction):
            await self.handle_previous(interaction)

        @self.tree.command(name="status", description="Show your score and progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="reset", description="Start over from the first question")
        async def reset_command(interaction: discord.Interaction):
            await self.handle_reset(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🤖 {self.user} is Ready and Online!")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
            print(f"⚡ Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")
            print(f"❌ Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def _send_card(
        self,
        interaction: discord.Interaction,
        outcome: Optional[SubmitOutcome] = None,
        edit: bool = False
    ):
        """Send the quiz card, or update the message it came from when ``edit`` is set."""
        progress = self.quiz_controller.get_progress()
        embed = build_quiz_embed(progress, outcome)
        view = QuizCardView(self, progress)

        if edit:
            await interaction.response.edit_message(embed=embed, view=view)
        elif interaction.response.is_done():
            await interaction.followup.send(embed=embed, view=view)
        else:
            await interaction.response.send_message(embed=embed, view=view)

    async def _send_completed_notice(self, interaction: discord.Interaction):
        score = self.quiz_controller.score
        await self.send_info_response(
            interaction,
            f"The quiz is already complete. Final score: {score.correct} correct, "
            f"{score.surrendered} surrendered.\nUse `/reset` to start over.",
            "🎉 Quiz Complete"
        )

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎯 Verb Quiz Commands",
                description="Translate each word. Answers ignore case and surrounding spaces.",
                color=0x00ff00
            )

            help_embed.add_field(
                name="🎮 Quiz Commands",
                value=(
                    "`/quiz` - Show the current question\n"
                    "`/answer <text>` - Submit your translation\n"
                    "`/surrender` - Reveal the answer (no point for this word)\n"
                    "`/previous` - Go back one question\n"
                    "`/status` - Show your score\n"
                    "`/reset` - Start over from the first question"
                ),
                inline=False
            )

            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            summary = self.question_bank.get_loading_summary()
            bank_text = f"{summary['total_questions']} questions"
            if summary['fallback_active']:
                bank_text += " (fallback: the question file could not be loaded)"
            help_embed.add_field(name="📚 Question Bank", value=bank_text, inline=False)

            help_embed.set_footer(text="Progress is saved automatically")

            await interaction.response.send_message(embed=help_embed)

        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "❌ Help Error")

    async def handle_quiz(self, interaction: discord.Interaction):
        """Handle /quiz command"""
        try:
            await self._send_card(interaction)
        except Exception as e:
            logger.error(f"Error in quiz command: {e}")
            await self.send_error_response(interaction, "Failed to show the current question", "❌ Quiz Error")

    async def handle_answer(self, interaction: discord.Interaction, text: str, edit: bool = False):
        """Handle /answer command and answer modal submissions"""
        try:
            outcome = self.quiz_controller.submit(text)
            await self._send_card(interaction, outcome=outcome, edit=edit)
        except QuizCompletedError:
            await self._send_completed_notice(interaction)
        except Exception as e:
            logger.error(f"Error in answer command: {e}")
            await self.send_error_response(interaction, "Failed to check your answer", "❌ Answer Error")

    async def handle_answer_button(self, interaction: discord.Interaction):
        """Open the answer modal, prefilled with the current draft"""
        try:
            if self.quiz_controller.is_complete:
                await self._send_completed_notice(interaction)
                return

            async def on_answer(modal_interaction: discord.Interaction, text: str):
                await self.handle_answer(modal_interaction, text, edit=True)

            modal = AnswerModal(on_answer, draft=self.quiz_controller.draft_answer)
            await interaction.response.send_modal(modal)
        except Exception as e:
            logger.error(f"Error opening answer modal: {e}")
            await self.send_error_response(interaction, "Failed to open the answer form", "❌ Answer Error")

    async def handle_surrender(self, interaction: discord.Interaction, edit: bool = False):
        """Handle /surrender command"""
        try:
            self.quiz_controller.surrender()
            await self._send_card(interaction, edit=edit)
        except QuizCompletedError:
            await self._send_completed_notice(interaction)
        except Exception as e:
            logger.error(f"Error in surrender command: {e}")
            await self.send_error_response(interaction, "Failed to reveal the answer", "❌ Quiz Error")

    async def handle_previous(self, interaction: discord.Interaction, edit: bool = False):
        """Handle /previous command"""
        try:
            self.quiz_controller.go_back()
            await self._send_card(interaction, edit=edit)
        except QuizCompletedError:
            await self._send_completed_notice(interaction)
        except Exception as e:
            logger.error(f"Error in previous command: {e}")
            await self.send_error_response(interaction, "Failed to go back", "❌ Quiz Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            progress = self.quiz_controller.get_progress()

            if progress['is_complete']:
                position = f"Complete ({progress['total_questions']} questions)"
            else:
                position = f"Question {progress['current_question']}/{progress['total_questions']}"

            embed = discord.Embed(
                title="📊 Quiz Status",
                description=position,
                color=0x6699ff
            )
            embed.add_field(name="Score", value=format_score(progress['score']), inline=False)
            embed.set_footer(text="Use /quiz to see the current question")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get quiz status", "❌ Status Error")

    async def handle_reset(self, interaction: discord.Interaction):
        """Handle /reset command: ask for confirmation, then reset on Yes"""
        try:
            view = ConfirmResetView(
                owner_id=interaction.user.id,
                timeout=self.config_manager.get_confirmation_timeout()
            )
            await interaction.response.send_message(
                "⚠️ Start over from the first question? Your score will be cleared.",
                view=view,
                ephemeral=True
            )

            timed_out = await view.wait()
            if timed_out:
                logger.info("Reset confirmation expired without an answer")

            if self.quiz_controller.reset(confirm=lambda: view.confirmed):
                await self._send_card(interaction)
            else:
                await self.send_info_response(interaction, "Your progress was kept.", "ℹ️ Reset Cancelled")

        except Exception as e:
            logger.error(f"Error in reset command: {e}")
            await self.send_error_response(interaction, "Failed to reset progress", "❌ Reset Error")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0x6699ff
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Verb Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run_bot())
