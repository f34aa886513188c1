"""
AI Template Assistant

Uses Claude for:
- Answering questions about PDF-ready HTML/CSS templates
- Converting amounts to German words for purchase contracts
"""
import logging
import re
from typing import Optional

from anthropic import Anthropic, APIError

from config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL

logger = logging.getLogger(__name__)


# Characters of the current template sent along with a question
HTML_CONTEXT_LIMIT = 2000

ASSISTANT_SYSTEM_PROMPT = """You are an expert HTML/CSS assistant specialized in creating PDF templates. Your goal is to help users create, improve, and debug HTML templates that will be converted to PDFs.

Key guidelines:
- Focus on HTML/CSS that works well for PDF generation
- Use inline styles or internal CSS (in <style> tags)
- Avoid external dependencies, complex JavaScript, or web-only CSS features
- Ensure proper page breaking and layout for PDF format
- Consider print-friendly design patterns
- Support German business document standards when relevant
- Placeholders look like {{{{ kunde.name }}}}, {{{{ auto.marke }}}} or {{{{ current_date }}}}

Current template context: {context}
{html_section}
Provide helpful, actionable advice and code examples."""

AMOUNT_SYSTEM_PROMPT = (
    "Du bist ein Assistent der Zahlen in deutsche Wörter umwandelt. "
    "Antworte nur mit den Wörtern, keine zusätzlichen Erklärungen."
)

AMOUNT_PROMPT = """Du bist ein Assistent, der Geldbeträge in deutsche Wörter umwandelt.

WICHTIGE REGELN:
1. Schreibe die Zahl aus, wie sie im Deutschen gesprochen wird
2. Verwende "Euro" für den Euro-Betrag und "Cent" für die Cent-Beträge
3. Verwende "und" zwischen Euro und Cent
4. Bei 0 Cent schreibe "null Cent"
5. Keine Anführungszeichen in der Antwort
6. Kleinschreibung am Anfang
7. Keine zusätzlichen Erklärungen, nur die Wörter
8. Format: "xxxxx Euro und xx Cent"

Beispiele:
- 2158.20 → zweitausendeinhundertachtundfünfzig Euro und zwanzig Cent
- 14203.15 → vierzehntausendzweihundertdrei Euro und fünfzehn Cent
- 1197.00 → eintausendeinhundertsiebenundneunzig Euro und null Cent

Betrag: {amount:.2f} €

Gib NUR die Wörter zurück, nichts anderes."""


class TemplateAssistantError(Exception):
    """Raised when the AI service is unavailable or returns nothing usable."""


def build_system_prompt(html_content: Optional[str] = None, context: Optional[str] = None) -> str:
    """System prompt with the (truncated) template the user is editing."""
    html_section = ""
    if html_content:
        excerpt = html_content[:HTML_CONTEXT_LIMIT]
        if len(html_content) > HTML_CONTEXT_LIMIT:
            excerpt += "..."
        html_section = f"\nCurrent HTML content:\n{excerpt}\n"

    return ASSISTANT_SYSTEM_PROMPT.format(
        context=context or "No template loaded",
        html_section=html_section,
    )


class TemplateAssistant:
    """
    Claude-backed helper for template editing.

    Usage:
        assistant = TemplateAssistant()
        answer = assistant.ask("Wie setze ich einen Seitenumbruch?", html_content=html)
        words = assistant.amount_to_words(2158.20)
    """

    def __init__(self, api_key: str = None, model: str = ANTHROPIC_MODEL, client=None):
        self.model = model
        if client is not None:
            self.client = client
            return

        api_key = api_key or ANTHROPIC_API_KEY
        if not api_key:
            raise TemplateAssistantError("ANTHROPIC_API_KEY is required")
        self.client = Anthropic(api_key=api_key)

    def _complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIError as e:
            logger.error("Anthropic API error: %s", e)
            raise TemplateAssistantError(f"AI service error: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise TemplateAssistantError("AI service returned an empty response")
        return text

    def ask(self, prompt: str, html_content: str = None, context: str = None) -> str:
        """Answer a question about the current template."""
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")

        logger.info("Template assistant question (%d chars)", len(prompt))
        return self._complete(
            build_system_prompt(html_content, context), prompt,
            max_tokens=2000, temperature=0.7,
        )

    def amount_to_words(self, amount: float) -> str:
        """2158.20 -> 'zweitausendeinhundertachtundfünfzig Euro und zwanzig Cent'."""
        if amount is None:
            raise ValueError("Amount is required")

        logger.info("Converting amount to words: %.2f", amount)
        words = self._complete(
            AMOUNT_SYSTEM_PROMPT, AMOUNT_PROMPT.format(amount=float(amount)),
            max_tokens=200, temperature=0,
        )
        # Strip surrounding quotes
        return re.sub(r'^["„“]+|["“”]+$', "", words).strip()
