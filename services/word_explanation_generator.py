"""
Word Explanation Generator
Asks the configured LLM provider for per-word explanations of a sentence.
"""

import logging
from typing import List, Optional

from dotenv import load_dotenv

from services.explanation_context import ExplanationContext
from services.llm_models.explanation_models import (
    GrammarExplanationResponse,
    WordExplanationEntry,
    WordExplanationResponse
)
from services.llm_provider_factory import get_llm_client, LLMProviderFactory
from services.text_normalization import normalize_word

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


class ExplanationGenerationError(RuntimeError):
    """The LLM call failed or returned an unusable response"""


SYSTEM_PROMPT = "You are an expert language teacher. You always answer with valid JSON and no additional text."

EXPLANATION_GUIDE = """For EACH word provide:
- word: the exact word, lowercase, without punctuation
- translation: its translation into {native_language}
- explanation: a DETAILED explanation written in {native_language} covering
  * the specific grammatical function of the word in this sentence (subject, direct/indirect object,
    main/auxiliary/modal verb, preposition, definite/indefinite article, pronoun, question word, ...)
  * why the word stands in this position (word order rules of {learning_language})
  * how it relates syntactically to the other words (what it modifies, which words it forms a unit with)
  * why the sentence needs it to convey its full meaning
  Do NOT just say "it is the translation of X". Explain its FUNCTION and its ROLE in the sentence.
- examples: 2-3 examples, each with
  * learning_text: example sentence in {learning_language}
  * native_text: its translation into {native_language}

Example of a detailed explanation for "wie" in "Wie würden Sie einen Kaffee bestellen?":
"'Wie' is an interrogative word asking about the manner of an action. It opens the sentence because German
questions with a question word always start with it, followed by the finite verb (V2 word order). Together
with the modal 'würden' it forms the question about how the ordering would be done. Without 'wie' the
sentence would not be a question."
"""

RESPONSE_FORMAT = """Respond ONLY with JSON in this exact format:
{
  "word_explanations": [
    {
      "word": "word",
      "translation": "translation",
      "explanation": "detailed explanation",
      "examples": [{"learning_text": "example", "native_text": "translated example"}]
    }
  ]
}"""


def _context_block(context: ExplanationContext) -> str:
    lines = [
        f'Sentence: "{context.sentence}"',
        f'Expected answer: "{context.expected_answer}"',
    ]
    if context.situation_explanation:
        lines.append(f'Explanation: "{context.situation_explanation}"')
    lines.append(f"Learner's native language: {context.native_language}")
    lines.append(f"Language being learned: {context.learning_language}")
    return "\n".join(lines)


def generate_missing_explanations(
    missing_words: List[str],
    context: ExplanationContext,
    model: Optional[str] = None
) -> List[WordExplanationEntry]:
    """
    Generate explanations for words of a sentence that have none yet.

    Args:
        missing_words: Words needing an explanation; normalized before prompting
        context: The sentence and language pair the words belong to
        model: LLM model name (default: provider default)

    Returns:
        Complete entries whose normalized word is one of the requested words,
        with the word field normalized

    Raises:
        ExplanationGenerationError: If the provider cannot be created, the call
                                    fails or the response cannot be parsed
    """
    requested = []
    for word in missing_words:
        normalized = normalize_word(word)
        if normalized and normalized not in requested:
            requested.append(normalized)

    if not requested:
        return []

    logger.info(f"Generating {len(requested)} missing explanations for phrase_id={context.phrase_id}: {requested}")

    numbered_words = "\n".join(f'{i}. "{word}"' for i, word in enumerate(requested, start=1))
    user_message = f"""Generate explanations for the following {context.learning_language} words in the context of this situation:

{_context_block(context)}

Words that need an explanation (already normalized):
{numbered_words}

{EXPLANATION_GUIDE.format(native_language=context.native_language, learning_language=context.learning_language)}
{RESPONSE_FORMAT}

IMPORTANT: Generate explanations for ALL the words listed above and for no other words."""

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_message}
    ]

    try:
        provider = get_llm_client()
        response = provider.create_structured_completion(
            messages=messages,
            response_model=WordExplanationResponse,
            model=model or LLMProviderFactory.get_default_model(),
            temperature=0.3,
            max_tokens=4000
        )
    except (ValueError, RuntimeError) as e:
        logger.error(f"Explanation generation failed for phrase_id={context.phrase_id}: {e}")
        raise ExplanationGenerationError(str(e))

    entries = response["parsed_object"].word_explanations
    accepted = []
    for entry in entries:
        if not entry.is_complete():
            logger.warning(f"Skipping incomplete explanation entry: {entry.word!r}")
            continue
        normalized = normalize_word(entry.word)
        if normalized not in requested:
            logger.warning(f"Skipping '{normalized}' - not in missing words list")
            continue
        accepted.append(entry.model_copy(update={"word": normalized}))

    logger.info(f"Generated {len(accepted)} of {len(requested)} requested explanations for phrase_id={context.phrase_id}")
    return accepted


def explain_word(
    word: str,
    context: ExplanationContext,
    model: Optional[str] = None
) -> WordExplanationEntry:
    """
    Generate an explanation for a single word selected by the learner.

    Raises:
        ValueError: If the word is empty after normalization
        ExplanationGenerationError: If no usable explanation was produced
    """
    normalized = normalize_word(word)
    if not normalized:
        raise ValueError("Word cannot be empty")

    entries = generate_missing_explanations([normalized], context, model=model)
    if not entries:
        raise ExplanationGenerationError(f"No explanation generated for '{normalized}'")
    return entries[0]


def explain_grammar(
    word: str,
    context: ExplanationContext,
    model: Optional[str] = None
) -> str:
    """
    Generate a grammar analysis of the sentence centred on one word.

    Raises:
        ExplanationGenerationError: If the provider call fails
    """
    user_message = f"""You are a grammar teacher expert in {context.learning_language} ({context.learning_language_code}).

Analyze this sentence and explain its {context.learning_language} grammar:

Phrase in the native language ({context.native_language}): "{context.native_text or ''}"
{_context_block(context)}
Selected word: "{word}"

Explain, in {context.native_language}:
1. The complete grammatical structure of the sentence
2. Why it is structured this way (grammar rules applied)
3. The word order and the reason for it
4. Conjugations, cases, genders and numbers where they apply
5. How "{word}" relates grammatically to the rest of the sentence

Respond ONLY with JSON: {{"grammar_explanation": "...", "word_role": "short label"}}"""

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_message}
    ]

    try:
        provider = get_llm_client()
        response = provider.create_structured_completion(
            messages=messages,
            response_model=GrammarExplanationResponse,
            model=model or LLMProviderFactory.get_default_model(),
            temperature=0.3,
            max_tokens=1500
        )
    except (ValueError, RuntimeError) as e:
        logger.error(f"Grammar explanation failed for phrase_id={context.phrase_id}, word='{word}': {e}")
        raise ExplanationGenerationError(str(e))

    return response["parsed_object"].grammar_explanation
