from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Apify
    APIFY_API_TOKEN: str = ""
    APIFY_BASE_URL: str = "https://api.apify.com/v2"

    # Instagram (async run, dataset polling)
    INSTAGRAM_ACTOR: str = "apify~instagram-hashtag-scraper"
    INSTAGRAM_TIMEOUT_SECONDS: float = 60.0
    INSTAGRAM_RESULTS_LIMIT: int = 60
    INSTAGRAM_POLL_INTERVAL: float = 3.0
    INSTAGRAM_POLL_ATTEMPTS: int = 20
    INSTAGRAM_DATASET_RETRIES: int = 20
    INSTAGRAM_DATASET_RETRY_DELAY: float = 3.0

    # TikTok (run-sync-get-dataset-items)
    TIKTOK_ACTOR: str = "clockworks~tiktok-scraper"
    TIKTOK_TIMEOUT_SECONDS: float = 300.0
    TIKTOK_RESULTS_PER_PAGE: int = 60

    # YouTube (async run, long-running)
    YOUTUBE_ACTOR: str = "streamers~youtube-scraper"
    YOUTUBE_TIMEOUT_SECONDS: float = 300.0
    YOUTUBE_MAX_SHORTS: int = 10
    YOUTUBE_POLL_INTERVAL: float = 3.0
    YOUTUBE_POLL_ATTEMPTS: int = 100
    YOUTUBE_STATUS_TIMEOUT_SECONDS: float = 10.0
    YOUTUBE_DATASET_RETRIES: int = 20
    YOUTUBE_DATASET_RETRY_DELAY: float = 3.0

    # Ranking / delivery
    MAX_RESULTS: int = 60
    BATCH_SIZE: int = 5

    # Sessions
    SESSION_MAX_ENTRIES: int = 10_000
    SESSION_IDLE_MINUTES: int = 24 * 60
    SESSION_SWEEP_MINUTES: int = 30

    # Progress reporting
    PROGRESS_INTERVAL_SECONDS: float = 5.0

    # Tracking / analytics
    TRACKING_MAX_RECORDS: int = 1000
    ANALYTICS_API_URL: str = ""
    ANALYTICS_BOT_KEY: str = ""
    ANALYTICS_TIMEOUT_SECONDS: float = 10.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
