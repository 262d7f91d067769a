import os
from typing import Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="DEBUGGER_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "request-debugger"
    environment: str = "local"
    log_level: str = "INFO"

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Debugger (mode: false | true/inline | file | silent)
    mode: Union[bool, str] = True
    report_dir: Optional[str] = None
    error_level: Optional[int] = None
    log_suppressed: bool = False
    report_prefix: str = "exception"
    trace_memory: bool = False

    # Redirect memory
    cookie_name: str = "rs-debugger"
    memory_ttl_seconds: int = 300

    # Notifications
    notify_email: Optional[str] = None
    smtp_host: str = "localhost"
    smtp_port: int = 25

    # Paths
    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    database_path: str = ":memory:"

settings = Settings()
