from dotenv import load_dotenv
from pydantic import BaseModel, Field
import os

load_dotenv()

def _to_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}

def _to_int(v: str | None, default: int) -> int:
    if v is None or not v.strip():
        return default
    return int(v.strip())

def _to_list(v: str | None, default: list[str] | None = None) -> list[str]:
    if v is None or not v.strip():
        return list(default or [])
    return [x.strip() for x in v.split(",") if x.strip()]

def _to_float(v: str | None, default: float) -> float:
    if v is None or not v.strip():
        return default
    return float(v.strip())



class Settings(BaseModel):
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: str = Field(default="")
    generation_timeout_seconds: float = Field(default=60.0)
    dry_run: bool = Field(default=False)

    time_window_hours: int = Field(default=24)
    timezone_offset_hours: int = Field(default=9)
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/run.log")

    database_url: str = Field(default="sqlite:///data/briefings.db")

    feed_timeout_seconds: float = Field(default=10.0)
    feed_user_agent: str = Field(default="daily-wrap-bot/1.0")

    dedup_url_threshold: float = Field(default=0.95)
    dedup_title_threshold: float = Field(default=0.70)
    dedup_ngram_size: int = Field(default=2)
    dedup_within_category: bool = Field(default=True)

    summarize_batch_size: int = Field(default=10)
    rank_top_n: int = Field(default=5)

    revalidate_url: str = Field(default="")
    revalidation_secret: str = Field(default="")
    revalidate_paths: list[str] = Field(default_factory=lambda: ["/", "/archive"])

    export_dir: str = Field(default="out")

    @property
    def offline(self) -> bool:
        return self.dry_run or not self.openai_api_key


_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings

    _settings = Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
        generation_timeout_seconds=_to_float(os.getenv("GENERATION_TIMEOUT_SECONDS"), 60.0),
        dry_run=_to_bool(os.getenv("DRY_RUN"), False),
        time_window_hours=_to_int(os.getenv("TIME_WINDOW_HOURS"), 24),
        timezone_offset_hours=_to_int(os.getenv("TIMEZONE_OFFSET_HOURS"), 9),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE", "logs/run.log"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/briefings.db"),
        feed_timeout_seconds=_to_float(os.getenv("FEED_TIMEOUT_SECONDS"), 10.0),
        feed_user_agent=os.getenv("FEED_USER_AGENT", "daily-wrap-bot/1.0"),
        dedup_url_threshold=_to_float(os.getenv("DEDUP_URL_THRESHOLD"), 0.95),
        dedup_title_threshold=_to_float(os.getenv("DEDUP_TITLE_THRESHOLD"), 0.70),
        dedup_ngram_size=_to_int(os.getenv("DEDUP_NGRAM_SIZE"), 2),
        dedup_within_category=_to_bool(os.getenv("DEDUP_WITHIN_CATEGORY"), True),
        summarize_batch_size=_to_int(os.getenv("SUMMARIZE_BATCH_SIZE"), 10),
        rank_top_n=_to_int(os.getenv("RANK_TOP_N"), 5),
        revalidate_url=os.getenv("REVALIDATE_URL", ""),
        revalidation_secret=os.getenv("REVALIDATION_SECRET", ""),
        revalidate_paths=_to_list(os.getenv("REVALIDATE_PATHS"), ["/", "/archive"]),
        export_dir=os.getenv("EXPORT_DIR", "out"),
    )
    return _settings
