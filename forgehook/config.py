from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    debug: bool = False
    sentry_dsn: str | None = None
    git_kind: str = ""
    git_server: str = ""
    git_token: str = ""
    git_repo_url: str = ""
    github_webhook_secret: str = ""
    gitlab_webhook_secret: str = ""
    gitea_webhook_secret: str = ""
    gogs_webhook_secret: str = ""
    bitbucket_webhook_secret: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    def webhook_secret(self, driver: str) -> str:
        return getattr(self, f"{driver}_webhook_secret", "")


settings = Settings()
