# studymate/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    redis_url: str = 'redis://localhost:6379/0'
    api_base_url: str = 'http://10.0.2.2:5000'
    request_timeout: float = 15.0

    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'INFO'

    # Polling (seconds)
    chat_poll_interval: float = 3.0
    notification_poll_interval: float = 10.0
    notification_freshness_seconds: int = 3600

    # DeviceStore keys, one per owning component
    chats_key: str = 'group_chats'
    sessions_key: str = 'study_sessions'
    notifications_key: str = 'notifications_cache'
    token_key: str = 'auth_token'

    model_config = {
        'env_file': '.env',
        'env_prefix': 'STUDYMATE_',
        'extra': 'ignore'
    }

settings = Settings()
