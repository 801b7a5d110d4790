"""Prompt Builder Module

Builds the system/user message pair sent to a translation backend. The
series glossary and custom instructions are passed through verbatim; they
are only included when present and non-blank.
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class TranslationPrompt:
    """Chat messages for one chapter"""

    system: str
    user: str

    def as_messages(self) -> List[dict]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


ROLE_SECTION = """Role & Objective:
You are a professional literary translator specializing in Chinese-to-English web novels. Produce a natural, emotionally resonant English translation that:
* Preserves the original's tone (melancholic, romantic, dramatic, ...)
* Conveys cultural nuances without awkward literalness
* Maintains character voices and stylistic quirks
* Flows like native English prose
Key Guidelines:
* Dialogue: keep conversations dynamic; use contractions and informal phrasing where appropriate.
* Inner monologues: use italics for emphasis and stream-of-consciousness pacing.
* Descriptions: prioritize vividness over literal accuracy.
* Cultural terms: localize idioms.
* Pacing: short sentences for tension, longer ones for introspection."""

GLOSSARY_SECTION = """Glossary:
Use the provided glossary for names, terms, and locations.
- Render proper names with the standardized Pinyin or English equivalent given in the glossary.
- Do NOT literally translate names or terms that the glossary defines; use the glossary's version.
--- GLOSSARY START ---
{glossary}
--- GLOSSARY END ---"""

OUTPUT_SECTION = """Output Format:
* Bold chapter titles with consistent numbering (if present in the input).
* Line breaks between paragraphs.
* Italics for character thoughts or emphasis.
* "..." for trailing emotions, "—" for interrupted speech.
Task:
Translate the following Chinese web novel chapter while adhering to the above standards. Produce ONLY the translated English text."""


class PromptBuilder:
    """Assembles translation prompts from chapter text and series settings."""

    def build(
        self,
        source_text: str,
        glossary: Optional[str] = None,
        custom_instructions: Optional[str] = None,
    ) -> TranslationPrompt:
        """Build the prompt for one chapter.

        Args:
            source_text: Raw chapter text (already checked non-empty by caller)
            glossary: Optional series glossary
            custom_instructions: Optional series-specific instructions

        Returns:
            TranslationPrompt with system and user messages
        """
        sections = [ROLE_SECTION]

        if glossary and glossary.strip():
            sections.append(GLOSSARY_SECTION.format(glossary=glossary.strip()))

        if custom_instructions and custom_instructions.strip():
            sections.append(custom_instructions.strip())

        sections.append(OUTPUT_SECTION)

        prompt = TranslationPrompt(system="\n\n".join(sections), user=source_text)

        logger.debug(
            "prompt_built",
            has_glossary=bool(glossary and glossary.strip()),
            has_instructions=bool(custom_instructions and custom_instructions.strip()),
            system_length=len(prompt.system),
            user_length=len(prompt.user),
        )

        return prompt
