from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://sprinttracker:sprinttracker@db:5432/sprinttracker"
  app_version: str = "v2026-10-18"
  build_sha: str = "dev"
  log_level: str = "INFO"
  api_host: str = "0.0.0.0"
  api_port: int = 8000

  jwt_secret: str = "dev-secret-change-me"
  jwt_expires_hours: int = 24 * 7
  session_cookie_name: str = "sprinttracker-session"
  cookie_secure: bool = False
  cookie_domain: str | None = None

  cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api,web"

  storage_backend: str = "local"  # local | s3
  storage_local_dir: str = "data/objects"
  s3_bucket_name: str = "default-bucket"
  s3_region: str | None = None
  s3_endpoint_url: str | None = None
  aws_access_key_id: str | None = None
  aws_secret_access_key: str | None = None

  import_max_bytes: int = 5 * 1024 * 1024
  avatar_max_bytes: int = 1 * 1024 * 1024
  cdn_base_url: str | None = None
  import_batch_size: int = 100
  rate_limit_import_per_minute: int = 2
  redis_url: str | None = None

  job_worker_in_process: bool = True
  worker_poll_interval_seconds: float = 2.0
  worker_batch_size: int = 5
  job_max_attempts: int = 1

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()
