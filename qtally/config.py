import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
	database_url: Optional[str] = os.getenv("DATABASE_URL")
	postgres_host: str = os.getenv("POSTGRES_HOST", "localhost")
	postgres_port: int = int(os.getenv("POSTGRES_PORT", "5432"))
	postgres_db: str = os.getenv("POSTGRES_DB", "qtally")
	postgres_user: str = os.getenv("POSTGRES_USER", "qtally")
	postgres_password: str = os.getenv("POSTGRES_PASSWORD", "qtally")

	celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
	celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

	num_shots: int = int(os.getenv("NUM_SHOTS", "1024"))
	default_backend: str = os.getenv("DEFAULT_BACKEND", "aer_simulator")
	token_format: str = os.getenv("TOKEN_FORMAT", "hex")  # "hex" or "bits"
	display_threshold: float = float(os.getenv("DISPLAY_THRESHOLD", "1.0"))
	poll_interval_s: float = float(os.getenv("POLL_INTERVAL_S", "0.5"))
	job_timeout_s: float = float(os.getenv("JOB_TIMEOUT_S", "600"))
	log_level: str = os.getenv("LOG_LEVEL", "INFO")

	@property
	def sqlalchemy_url(self) -> str:
		if self.database_url:
			return self.database_url
		return (
			f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
			f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
		)


settings = Settings()  # singleton-like
