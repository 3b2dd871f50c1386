"""Configuration management for the devpool embedding pipeline."""

from contextvars import ContextVar
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# YAML file read by the settings instance currently being built, if any.
_active_yaml_path: ContextVar[Path | None] = ContextVar("active_yaml_path", default=None)


class Settings(BaseSettings):
    """Pipeline settings.

    Precedence, highest first: explicit keyword overrides, environment
    variables, `.env`, the YAML config file, field defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API keys
    github_token: str = ""
    voyage_api_key: str = ""

    # Endpoints
    github_api_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    github_api_version: str = "2022-11-28"
    voyage_base_url: str = "https://api.voyageai.com/v1/embeddings"

    # Model / client config
    embedding_model: str = "voyage-large-2-instruct"
    client_timeout_seconds: float = 60.0
    client_max_retries: int = 1
    client_backoff_seconds: float = 1.0
    github_max_pages: int = 10

    # Normalization
    drop_boilerplate: bool = False

    # Paths
    input_issues_path: Path = Field(default=Path("devpool-issues.json"))
    output_dir: Path = Field(default=Path("."))
    issues_filename: str = "issues_data.csv"
    comments_filename: str = "comments_data.csv"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources = [init_settings, env_settings, dotenv_settings]
        yaml_path = _active_yaml_path.get()
        if yaml_path is not None:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=yaml_path))
        sources.append(file_secret_settings)
        return tuple(sources)

    @classmethod
    def from_yaml(cls, config_path: str | Path, **overrides) -> "Settings":
        """Load settings with a YAML config file below env vars and `.env`.

        A missing file is skipped. Keyword overrides win over every source.
        """
        token = _active_yaml_path.set(Path(config_path))
        try:
            return cls(**overrides)
        finally:
            _active_yaml_path.reset(token)

    def issues_output_path(self) -> Path:
        return self.output_dir / self.issues_filename

    def comments_output_path(self) -> Path:
        return self.output_dir / self.comments_filename

    def missing_secrets(self) -> list[str]:
        """Return env var names of required secrets that are not configured."""

        missing = []
        if not self.github_token.strip():
            missing.append("GITHUB_TOKEN")
        if not self.voyage_api_key.strip():
            missing.append("VOYAGE_API_KEY")
        return missing
