import json
import os
from typing import Literal, Optional, Tuple, Type
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

SETTINGS_FILE = ".tubenotes.json"

# Fields a user may change at runtime; everything else comes from env/.env
PERSISTED_FIELDS = {
    "AUTH_TOKEN",
    "OUTPUT_LANG",
    "INCLUDE_TITLE",
    "SHOW_CREDITS_INFO",
    "DAILY_NOTE_URL",
    "WEBHOOK_URL",
    "REQUEST_METHOD",
}

class Settings(BaseSettings):
    # Endpoints
    WEBHOOK_URL: str = "https://n8n.aaagency.at/webhook/9b601faa-5f51-477a-9d23-e95104ccd35d"
    DEVICE_AUTH_START_URL: str = "https://n8n.aaagency.at/webhook/device-auth-start"
    DEVICE_AUTH_POLL_URL: str = "https://n8n.aaagency.at/webhook/device-auth-poll"
    DEVICE_VERIFICATION_URL: str = "https://n8n.aaagency.at/device-auth"
    REQUEST_METHOD: Literal["POST", "GET"] = "POST"
    REQUEST_TIMEOUT: float = 120.0
    SOURCE: str = "obsidian-plugin"
    PLUGIN_VERSION: str = "1.0.0"

    # Account
    AUTH_TOKEN: str = ""
    SHOW_CREDITS_INFO: bool = True
    LOW_CREDITS_THRESHOLD: int = 5

    # Output
    OUTPUT_LANG: str = "en"
    INCLUDE_TITLE: bool = True

    # Daily note
    DAILY_NOTE_URL: str = ""
    VAULT_DIR: str = "."

    # Progress & polling
    COUNTDOWN_SECONDS: int = 30
    TICK_INTERVAL: float = 1.0
    POLL_MAX_ATTEMPTS: int = 30
    POLL_INTERVAL: float = 10.0

    # System Settings
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=SETTINGS_FILE,
        extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def save_settings(settings: Settings, path: Optional[str] = None):
    """Write the user-editable settings back to the JSON file (last write wins)."""
    path = path or SETTINGS_FILE
    data = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    data.update(settings.model_dump(include=PERSISTED_FIELDS))
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

settings = Settings()
