from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Ordered Middleware Pipeline"
    app_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"

    max_body_bytes: int = 10 * 1024
    allowed_origins: list[str] = ["http://localhost:3000"]
    origin_violation_status: int = 500

    request_id_header: str = "X-Request-Id"
    response_time_header: str = "X-Response-Time-ms"
    
    class Config:
        env_prefix = "PIPELINE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
