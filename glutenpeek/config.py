"""TOML configuration loader for glutenpeek."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class DatabaseConfig:
    path: str = "~/.config/glutenpeek/glutenpeek.db"


@dataclass
class CatalogConfig:
    base_url: str = "https://world.openfoodfacts.org/api/v3"
    user_agent: str = "glutenpeek/0.1 (https://github.com/glutenpeek)"
    timeout: float = 10.0


@dataclass
class ClaudeAIConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiAIConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class AIConfig:
    backend: str = "gemini"
    extract_timeout: float = 60.0
    classify_timeout: float = 30.0
    claude: ClaudeAIConfig = field(default_factory=ClaudeAIConfig)
    gemini: GeminiAIConfig = field(default_factory=GeminiAIConfig)


@dataclass
class ClassificationConfig:
    stale_after_days: int = 7
    queue_size: int = 100
    workers: int = 1


@dataclass
class CommunityConfig:
    min_images: int = 4
    max_images: int = 8
    max_image_mb: float = 5.0
    path_prefix: str = "products"


@dataclass
class LocalStorageConfig:
    directory: str = "~/.config/glutenpeek/images"
    base_url: str = ""


@dataclass
class S3StorageConfig:
    bucket: str = ""
    region: str = ""
    public_url: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""


@dataclass
class GDriveStorageConfig:
    credentials_path: str = "~/.config/glutenpeek/gdrive_credentials.json"
    token_path: str = "~/.config/glutenpeek/gdrive_token.json"
    folder_id: str = ""


@dataclass
class StorageConfig:
    backend: str = "local"
    timeout: float = 30.0
    local: LocalStorageConfig = field(default_factory=LocalStorageConfig)
    s3: S3StorageConfig = field(default_factory=S3StorageConfig)
    gdrive: GDriveStorageConfig = field(default_factory=GDriveStorageConfig)


@dataclass
class TelegramConfig:
    bot_token: str = ""
    chat_id: str = ""


@dataclass
class NotificationConfig:
    backend: str = "log"
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass
class SchedulerConfig:
    enabled: bool = False
    sweep_schedule: str = "0 3 * * *"
    sweep_limit: int = 50


@dataclass
class GlutenPeekConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    community: CommunityConfig = field(default_factory=CommunityConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(path: str | Path | None = None) -> GlutenPeekConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Secrets can be supplied via environment variables; a value in the
    file takes precedence.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    cat = raw.get("catalog", {})
    ai = raw.get("ai", {})
    cls = raw.get("classification", {})
    com = raw.get("community", {})
    sto = raw.get("storage", {})
    ntf = raw.get("notifications", {})
    sch = raw.get("scheduler", {})

    claude_cfg = ai.get("claude", {})
    gemini_cfg = ai.get("gemini", {})
    local_cfg = sto.get("local", {})
    s3_cfg = sto.get("s3", {})
    gdrive_cfg = sto.get("gdrive", {})
    telegram_cfg = ntf.get("telegram", {})

    # Resolve secrets: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    telegram_token = telegram_cfg.get("bot_token", "") or os.environ.get(
        "TELEGRAM_BOT_TOKEN", ""
    )

    return GlutenPeekConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/glutenpeek/glutenpeek.db"),
        ),
        catalog=CatalogConfig(
            base_url=cat.get("base_url", "https://world.openfoodfacts.org/api/v3"),
            user_agent=cat.get(
                "user_agent", "glutenpeek/0.1 (https://github.com/glutenpeek)"
            ),
            timeout=float(cat.get("timeout", 10.0)),
        ),
        ai=AIConfig(
            backend=ai.get("backend", "gemini"),
            extract_timeout=float(ai.get("extract_timeout", 60.0)),
            classify_timeout=float(ai.get("classify_timeout", 30.0)),
            claude=ClaudeAIConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiAIConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        classification=ClassificationConfig(
            stale_after_days=cls.get("stale_after_days", 7),
            queue_size=cls.get("queue_size", 100),
            workers=cls.get("workers", 1),
        ),
        community=CommunityConfig(
            min_images=com.get("min_images", 4),
            max_images=com.get("max_images", 8),
            max_image_mb=float(com.get("max_image_mb", 5.0)),
            path_prefix=com.get("path_prefix", "products"),
        ),
        storage=StorageConfig(
            backend=sto.get("backend", "local"),
            timeout=float(sto.get("timeout", 30.0)),
            local=LocalStorageConfig(
                directory=local_cfg.get("directory", "~/.config/glutenpeek/images"),
                base_url=local_cfg.get("base_url", ""),
            ),
            s3=S3StorageConfig(
                bucket=s3_cfg.get("bucket", "") or os.environ.get("AWS_S3_BUCKET_NAME", ""),
                region=s3_cfg.get("region", "") or os.environ.get("AWS_S3_REGION", ""),
                public_url=s3_cfg.get("public_url", "")
                or os.environ.get("AWS_S3_PUBLIC_URL", ""),
                access_key_id=s3_cfg.get("access_key_id", "")
                or os.environ.get("AWS_ACCESS_KEY_ID", ""),
                secret_access_key=s3_cfg.get("secret_access_key", "")
                or os.environ.get("AWS_SECRET_ACCESS_KEY", ""),
            ),
            gdrive=GDriveStorageConfig(
                credentials_path=gdrive_cfg.get(
                    "credentials_path",
                    "~/.config/glutenpeek/gdrive_credentials.json",
                ),
                token_path=gdrive_cfg.get(
                    "token_path",
                    "~/.config/glutenpeek/gdrive_token.json",
                ),
                folder_id=gdrive_cfg.get("folder_id", ""),
            ),
        ),
        notifications=NotificationConfig(
            backend=ntf.get("backend", "log"),
            telegram=TelegramConfig(
                bot_token=telegram_token,
                chat_id=str(telegram_cfg.get("chat_id", "")),
            ),
        ),
        scheduler=SchedulerConfig(
            enabled=sch.get("enabled", False),
            sweep_schedule=sch.get("sweep_schedule", "0 3 * * *"),
            sweep_limit=sch.get("sweep_limit", 50),
        ),
    )
