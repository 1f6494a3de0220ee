"""
Discord UI components for the Verb Quiz Bot: the quiz card, the answer
modal and the reset confirmation prompt.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import discord

from .models import SubmitOutcome

logger = logging.getLogger(__name__)

COLOR_ACTIVE = 0x0099ff
COLOR_CORRECT = 0x00ff00
COLOR_WRONG = 0xff0000
COLOR_REVEALED = 0xffaa00

OUTCOME_TEXT = {
    SubmitOutcome.CORRECT: "✅ Correct! +1 point",
    SubmitOutcome.CORRECT_AFTER_REVEAL: "➡️ Moving on (answer was revealed, no point)",
}


def format_score(score: Dict[str, int]) -> str:
    return f"✅ Correct: {score['correct']}  |  ❌ Surrendered: {score['surrendered']}"


def build_quiz_embed(progress: Dict[str, Any], outcome: Optional[SubmitOutcome] = None) -> discord.Embed:
    """
    Render the quiz state as an embed.

    Args:
        progress: Display model from QuizController.get_progress
        outcome: Result of the submission that produced this state, if any

    Returns:
        Embed showing the prompt, feedback, revealed answer and score
    """
    score = progress['score']

    if progress['is_complete']:
        embed = discord.Embed(
            title="🎉 Quiz Complete!",
            description=(
                f"Final score: **{score['correct']}** correct, "
                f"**{score['surrendered']}** surrendered."
            ),
            color=COLOR_CORRECT
        )
        if outcome in OUTCOME_TEXT:
            embed.add_field(name="Last Answer", value=OUTCOME_TEXT[outcome], inline=False)
        embed.set_footer(text="Use /reset to start over")
        return embed

    if progress['is_revealed']:
        color = COLOR_REVEALED
    elif progress['error_message']:
        color = COLOR_WRONG
    else:
        color = COLOR_ACTIVE

    embed = discord.Embed(
        title=f"📝 Question {progress['current_question']}/{progress['total_questions']}",
        description=f"## {progress['prompt']}",
        color=color
    )

    if outcome in OUTCOME_TEXT:
        embed.add_field(name="Previous Answer", value=OUTCOME_TEXT[outcome], inline=False)

    if progress['error_message']:
        embed.add_field(name="⚠️ Feedback", value=progress['error_message'], inline=False)

    if progress['revealed_answer'] is not None:
        embed.add_field(name="💡 Answer", value=f"**{progress['revealed_answer']}**", inline=False)

    embed.add_field(name="📊 Score", value=format_score(score), inline=False)
    embed.set_footer(text="Type your translation with the Answer button or /answer")
    return embed


class AnswerModal(discord.ui.Modal, title="Your answer"):
    answer = discord.ui.TextInput(
        label="Translation",
        style=discord.TextStyle.short,
        placeholder="Type the meaning of the word",
        required=True,
        max_length=200,
    )

    def __init__(self, on_answer: Callable[[discord.Interaction, str], Awaitable[None]], draft: str = ""):
        super().__init__()
        self._on_answer = on_answer
        if draft:
            self.answer.default = draft

    async def on_submit(self, interaction: discord.Interaction):
        await self._on_answer(interaction, str(self.answer.value))


class QuizCardView(discord.ui.View):
    """
    Buttons shown under the quiz card.

    Answering, surrendering and going back are disabled once the quiz is
    complete; only Reset stays available.
    """

    def __init__(self, handler, progress: Dict[str, Any], timeout: Optional[float] = 900):
        super().__init__(timeout=timeout)
        self.handler = handler

        complete = progress['is_complete']
        self.answer_button.disabled = complete
        self.surrender_button.disabled = complete or progress['is_revealed']
        self.previous_button.disabled = not progress['can_go_back']

    @discord.ui.button(label="Answer", emoji="✏️", style=discord.ButtonStyle.primary)
    async def answer_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handler.handle_answer_button(interaction)

    @discord.ui.button(label="Surrender", emoji="🏳️", style=discord.ButtonStyle.danger)
    async def surrender_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handler.handle_surrender(interaction, edit=True)

    @discord.ui.button(label="Previous", emoji="⬅️", style=discord.ButtonStyle.secondary)
    async def previous_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handler.handle_previous(interaction, edit=True)

    @discord.ui.button(label="Reset Progress", emoji="🔄", style=discord.ButtonStyle.secondary)
    async def reset_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handler.handle_reset(interaction)


class ConfirmResetView(discord.ui.View):
    """
    Yes/No prompt gating a progress reset.

    ``confirmed`` stays False unless the owner presses Yes before the
    timeout, so a timeout counts as declining.
    """

    def __init__(self, owner_id: Optional[int] = None, timeout: float = 30):
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.confirmed = False

    def _owner_only(self, interaction: discord.Interaction) -> bool:
        return self.owner_id is None or interaction.user.id == self.owner_id

    @discord.ui.button(label="Yes, start over", style=discord.ButtonStyle.danger)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not self._owner_only(interaction):
            return await interaction.response.send_message("❌ Not your prompt.", ephemeral=True)
        self.confirmed = True
        self.stop()
        await interaction.response.edit_message(content="🔄 Resetting progress...", view=None)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not self._owner_only(interaction):
            return await interaction.response.send_message("❌ Not your prompt.", ephemeral=True)
        self.confirmed = False
        self.stop()
        await interaction.response.edit_message(content="Reset cancelled.", view=None)

    async def on_timeout(self):
        logger.info("Reset confirmation timed out")
