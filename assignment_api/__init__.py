"""
Assignment Answer API Package

A FastAPI service that answers assignment questions, optionally from an
uploaded CSV or ZIP file, with Gemini as a fallback answerer.
"""

__version__ = "1.0.0"
__author__ = "Assignment Answer API Team"
__description__ = "Question answering over uploaded CSV data"

# Package exports
from .main import app, create_app
from .config import Settings
from .logger import setup_logger
from .utils import extract_zip_file, read_csv_file, dispatch_file
from .llm import AnswerSynthesizer, GeminiGenerator, clean_answer

__all__ = [
    "app",
    "create_app",
    "Settings",
    "setup_logger",
    "extract_zip_file",
    "read_csv_file",
    "dispatch_file",
    "AnswerSynthesizer",
    "GeminiGenerator",
    "clean_answer",
]
