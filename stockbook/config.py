from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    structured_store_url: str = 'sqlite+aiosqlite:///./stockbook.sqlite3'
    scalar_store_url: str = 'sqlite:///./stockbook-scalars.sqlite3'
    scalar_key_prefix: str = ''

    snapshot_backend: str = 'local'
    snapshot_latency_seconds: float = 0.5
    autosync_delay_seconds: float = 7.0

    export_filename_prefix: str = 'stockbook_backup'
    log_level: str = 'INFO'

    @property
    def structured_store_url_normalized(self) -> str:
        url = self.structured_store_url.strip()
        if url.startswith('sqlite:///') or url == 'sqlite://':
            return 'sqlite+aiosqlite' + url[len('sqlite') :]
        return url

    @property
    def scalar_store_url_normalized(self) -> str:
        url = self.scalar_store_url.strip()
        if url.startswith('sqlite+aiosqlite:'):
            return 'sqlite' + url[len('sqlite+aiosqlite') :]
        return url


settings = Settings()
