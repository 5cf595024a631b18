from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, Enum as SAEnum, JSON, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .config import settings


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class Base(DeclarativeBase):
	pass


class JobStatus:
	PENDING = "pending"
	RUNNING = "running"
	COMPLETED = "completed"
	ERROR = "error"


class CircuitKind:
	BELL = "bell"
	GHZ = "ghz"


class Job(Base):
	__tablename__ = "jobs"

	id: Mapped[str] = mapped_column(primary_key=True)
	status: Mapped[str] = mapped_column(
		SAEnum(
			JobStatus.PENDING,
			JobStatus.RUNNING,
			JobStatus.COMPLETED,
			JobStatus.ERROR,
			name="job_status",
		),
		default=JobStatus.PENDING,
	)
	kind: Mapped[str] = mapped_column(SAEnum(CircuitKind.BELL, CircuitKind.GHZ, name="circuit_kind"))
	num_qubits: Mapped[int] = mapped_column(Integer)
	shots: Mapped[int] = mapped_column(Integer)
	backend: Mapped[str] = mapped_column(String(64))
	submitted_at: Mapped[datetime] = mapped_column(default=_utcnow)
	updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)
	result_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
	error_msg: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

	__table_args__ = (
		Index("idx_jobs_status_submitted", "status", "submitted_at"),
	)


engine = create_engine(settings.sqlalchemy_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db() -> None:
	Base.metadata.create_all(bind=engine)
