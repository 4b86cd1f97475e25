#!/usr/bin/env python3
"""
Tests for prompt construction, answer cleaning and the synthesizer.
"""
import asyncio
import json

import pytest

from assignment_api.errors import SynthesisError
from assignment_api.llm import (
    AnswerSynthesizer, GeminiGenerator, clean_answer, create_answer_prompt
)


class FakeGenerator:
    """Records prompts and replays canned candidates."""

    model_name = "fake-model"

    def __init__(self, candidates=None, error=None):
        self.candidates = ["4"] if candidates is None else candidates
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.candidates


@pytest.mark.parametrize("raw, expected", [
    ("42", "42"),
    ("  42  ", "42"),
    ("Explanation...\nAnswer: 42", "42"),
    ("The answer is: 7", "7"),
    ("THE VALUE IS:   3.14 ", "3.14"),
    ("answer: answer: 3", "answer: 3"),
    ("Answered correctly", "Answered correctly"),
    ("first\n\n   last line  \n\n", "last line"),
    ("", ""),
    ("  \n \n ", ""),
])
def test_clean_answer(raw, expected):
    assert clean_answer(raw) == expected


def test_prompt_without_data():
    prompt = create_answer_prompt("What is 2+2?")

    assert prompt.endswith("What is 2+2?")
    assert "attached file" not in prompt


def test_prompt_serializes_at_most_ten_rows():
    rows = [{"n": str(i)} for i in range(25)]

    prompt = create_answer_prompt("Sum n", rows)

    assert "showing first 10 rows" in prompt
    assert json.loads(prompt.splitlines()[-1]) == rows[:10]


def test_synthesize_cleans_first_candidate():
    generator = FakeGenerator(candidates=["Working it out\nAnswer: 42", "ignored"])
    synthesizer = AnswerSynthesizer(generator)

    answer = asyncio.run(synthesizer.synthesize("question", [{"a": "1"}]))

    assert answer == "42"
    assert len(generator.prompts) == 1
    assert "showing first 1 rows" in generator.prompts[0]


def test_synthesize_without_candidates_fails():
    synthesizer = AnswerSynthesizer(FakeGenerator(candidates=[]))

    with pytest.raises(SynthesisError, match="no choices"):
        asyncio.run(synthesizer.synthesize("question"))


def test_synthesize_wraps_generator_errors():
    synthesizer = AnswerSynthesizer(FakeGenerator(error=TimeoutError("deadline exceeded")))

    with pytest.raises(SynthesisError) as exc_info:
        asyncio.run(synthesizer.synthesize("question"))

    assert isinstance(exc_info.value.__cause__, TimeoutError)
    assert "deadline exceeded" in str(exc_info.value)


def test_synthesize_rejects_blank_answer():
    synthesizer = AnswerSynthesizer(FakeGenerator(candidates=["  \n  "]))

    with pytest.raises(SynthesisError, match="empty answer"):
        asyncio.run(synthesizer.synthesize("question"))


def test_gemini_generator_requires_api_key():
    generator = GeminiGenerator(api_key=None, model_name="gemini-1.5-flash")

    with pytest.raises(SynthesisError, match="GEMINI_API_KEY"):
        asyncio.run(generator.generate("prompt"))
