"""
LLM integration module for answering assignment questions using Google's Gemini API.
"""
import re
import json
import asyncio
from typing import List, Dict, Any, Optional, Protocol

import google.generativeai as genai

from .config import DEFAULT_MODEL_NAME
from .errors import SynthesisError
from .logger import log_llm_interaction, logger
from .utils import SAMPLE_ROW_LIMIT

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that answers data science assignment questions "
    "concisely and accurately. Provide only the exact answer without explanations, "
    "introductions, or additional text."
)

# Deterministic-as-possible generation
GENERATION_CONFIG = {
    "temperature": 0,
}

# Boilerplate the model sometimes puts in front of the answer
ANSWER_PREFIX_PATTERN = re.compile(r'^(answer:|the answer is:|the value is:)', re.IGNORECASE)


class TextGenerator(Protocol):
    """Anything that turns a prompt into a list of candidate completions."""

    model_name: str

    async def generate(self, prompt: str) -> List[str]:
        ...


class GeminiGenerator:
    """Text generator backed by a Gemini model."""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = DEFAULT_MODEL_NAME,
        timeout: float = 60.0
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout

        if api_key:
            genai.configure(api_key=api_key)

        self.model = genai.GenerativeModel(
            model_name=model_name,
            generation_config=GENERATION_CONFIG,
            system_instruction=SYSTEM_INSTRUCTION
        )

    async def generate(self, prompt: str) -> List[str]:
        if not self.api_key:
            raise SynthesisError("GEMINI_API_KEY environment variable not set")

        response = await asyncio.to_thread(
            self.model.generate_content,
            prompt,
            request_options={"timeout": self.timeout}
        )

        candidates = []
        for candidate in response.candidates or []:
            parts = candidate.content.parts
            candidates.append(''.join(getattr(part, 'text', '') for part in parts))
        return candidates


def create_answer_prompt(question: str, sample_rows: Optional[List[Dict[str, Any]]] = None) -> str:
    """
    Build the user prompt for a question and an optional data sample.

    Args:
        question: The assignment question
        sample_rows: Parsed rows of the uploaded file, if any; at most
            ``SAMPLE_ROW_LIMIT`` of them are included

    Returns:
        Prompt string
    """
    prompt = (
        "Answer the following question from a data science assignment as concisely "
        "as possible, providing only the exact answer that should be entered in the "
        f"assignment form: {question}"
    )

    if sample_rows is not None:
        sample = sample_rows[:SAMPLE_ROW_LIMIT]
        prompt += (
            f"\n\nThe attached file contains the following data "
            f"(showing first {len(sample)} rows):\n"
            f"{json.dumps(sample, ensure_ascii=False, separators=(',', ':'))}"
        )

    return prompt


def clean_answer(raw_text: str) -> str:
    """
    Reduce a raw model response to a single literal answer.

    Steps, in order:
      1. strip surrounding whitespace;
      2. for multi-line text keep only the last non-empty line, since any
         explanation tends to come before the answer;
      3. drop one leading "Answer:", "The answer is:" or "The value is:"
         (any case) and strip again.

    Single-line text is unaffected by step 2. Blank text yields "".
    """
    answer = (raw_text or '').strip()

    if '\n' in answer:
        lines = [line.strip() for line in answer.splitlines() if line.strip()]
        answer = lines[-1] if lines else ''

    return ANSWER_PREFIX_PATTERN.sub('', answer, count=1).strip()


class AnswerSynthesizer:
    """Answers questions by prompting a text generator and cleaning its output."""

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def synthesize(
        self,
        question: str,
        sample_rows: Optional[List[Dict[str, Any]]] = None,
        request_id: str = "unknown"
    ) -> str:
        """
        Generate a concise answer for ``question``.

        Raises:
            SynthesisError: If the generator fails, returns no candidates or
                the cleaned answer is empty
        """
        prompt = create_answer_prompt(question, sample_rows)
        model_name = getattr(self.generator, 'model_name', 'unknown')

        try:
            candidates = await self.generator.generate(prompt)
        except SynthesisError:
            raise
        except Exception as e:
            logger.error(f"Request {request_id}: Text generation failed: {str(e)}")
            raise SynthesisError(f"Text generation failed: {str(e)}") from e

        if not candidates:
            raise SynthesisError("Text generation returned no choices")

        raw_text = candidates[0]
        log_llm_interaction(
            logger=logger,
            request_id=request_id,
            prompt_length=len(prompt),
            response_length=len(raw_text or ''),
            model_used=model_name
        )

        answer = clean_answer(raw_text)
        if not answer:
            raise SynthesisError("Text generation returned an empty answer")

        return answer
