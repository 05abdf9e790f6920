from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./campus_monitor.db"
    # Store layout: records live at <collection>/<roomId>
    collection: str = "classrooms"
    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    log_to_file: bool = True
    log_file_path: str = "logs/app.log"
    log_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    log_backup_count: int = 5
    # Faculty panel gate. A shared literal, not a credential.
    faculty_access_code: str = "1111"
    cors_origins: list[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()
