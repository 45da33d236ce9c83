"""
Application configuration settings
FILE: docquiz/core/config.py
"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "docquiz"

    # Upload Configuration
    upload_dir: str = "uploads"
    max_file_size: int = 10485760
    allowed_extensions: List[str] = [".pdf", ".txt"]

    # LLM Configuration
    llm_provider: str = "deepseek"
    llm_timeout: float = 120.0
    deepseek_model: str = "deepseek-coder"
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    grok_model: str = "grok-3-mini-beta"

    # Chunking (token budget of the AI input, ~4 chars per token)
    max_input_tokens: int = 80000
    chars_per_token: int = 4

    # Summary call
    summary_max_tokens: int = 2048
    summary_temperature: float = 0.7

    # Quiz generation call
    quiz_max_tokens: int = 4096
    quiz_temperature: float = 0.3
    quiz_question_types: List[str] = ["multiple_choice", "true_false"]
    questions_per_quiz: int = 10
    default_difficulty: str = "medium"
    default_language: str = "en"

    # Attempts
    default_passing_score: int = 70
    points_per_correct: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "allow"


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process settings"""
    return settings
