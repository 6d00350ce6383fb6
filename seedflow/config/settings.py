"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (in priority order) environment variables and the
``.env`` file in the project root.  Field ``openai_api_key`` maps to env var
``OPENAI_API_KEY``; defaults apply when neither source sets a value.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """seedflow application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Remote extraction backend (OCR, transcription, captions, config) ===
    backend_base_url: str = ""
    backend_api_token: str = ""
    extraction_timeout_seconds: float = 120.0
    config_timeout_seconds: float = 10.0
    config_cache_ttl_seconds: int = 300

    # === LLM ===
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = ""
    explanation_max_tokens: int = 2000

    # === AI limits (fallback when the config service is unreachable) ===
    ai_max_words: int = 20000
    ai_max_characters: int = 150000

    # === Stage timings (seconds) ===
    stage_dwell_validating: float = 0.4
    stage_dwell_reading: float = 1.3
    stage_dwell_extracting: float = 1.95
    stage_dwell_analyzing: float = 1.0
    stage_dwell_generating: float = 1.8
    stage_dwell_finalizing: float = 1.0
    stage_dwell_completed: float = 1.2
    completion_dismiss_delay: float = 1.5
    progress_tick_interval: float = 0.25
    session_idle_ttl_seconds: float = 900.0

    # === Background tasks ===
    task_max_concurrent: int = 3
    task_timeout_seconds: float = 300.0
    task_max_retries: int = 1
    task_retention_seconds: float = 600.0

    # === Persistence ===
    seed_db_path: str = "data/seeds.db"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def stage_dwell_times(self) -> dict[str, float]:
        """Return the minimum dwell time per upload stage, keyed by stage id."""
        return {
            "validating": self.stage_dwell_validating,
            "reading": self.stage_dwell_reading,
            "extracting": self.stage_dwell_extracting,
            "analyzing": self.stage_dwell_analyzing,
            "generating": self.stage_dwell_generating,
            "finalizing": self.stage_dwell_finalizing,
            "completed": self.stage_dwell_completed,
        }
