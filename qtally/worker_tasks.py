import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .celery_app import celery
from .config import settings
from .db import SessionLocal, Job, JobStatus, CircuitKind
from .quantum import build_bell_circuit, build_ghz_circuit, sample_circuit
from .schemas import JobReport
from .tally import aggregate, format_outcomes, format_report

logger = logging.getLogger("worker_tasks")


def build_job_report(tokens: list[str], num_qubits: int) -> JobReport:
	result = aggregate(tokens, num_qubits)
	return JobReport(
		aggregation=result,
		report=format_report(result),
		top_outcomes=format_outcomes(result, settings.display_threshold),
	)


@celery.task(autoretry_for=(SQLAlchemyError,), retry_backoff=True, retry_kwargs={"max_retries": 3})
def execute_sampling_job(job_id: str) -> dict[str, Any]:
	session = SessionLocal()
	logger.info("job_received", extra={"job_id": job_id})
	try:
		job = session.get(Job, job_id)
		if job is None:
			raise RuntimeError(f"Job {job_id} not found")

		job.status = JobStatus.RUNNING
		session.commit()
		logger.info("job_running", extra={"job_id": job_id, "kind": job.kind, "num_qubits": job.num_qubits})

		if job.kind == CircuitKind.BELL:
			qc = build_bell_circuit()
		else:
			qc = build_ghz_circuit(job.num_qubits)
		tokens = sample_circuit(qc, job.shots, job.backend)
		report = build_job_report(tokens, job.num_qubits)

		job.result_json = report.model_dump()
		job.status = JobStatus.COMPLETED
		session.commit()
		logger.info("job_completed", extra={"job_id": job_id, "counts": report.aggregation.counts})

		return {"job_id": job_id, "counts": report.aggregation.counts}

	except Exception as exc:  # noqa: BLE001
		logger.exception("job_error", extra={"job_id": job_id})
		session.rollback()
		try:
			job = session.get(Job, job_id)
			if job is not None:
				job.status = JobStatus.ERROR
				job.error_msg = str(exc)
				session.commit()
		except SQLAlchemyError:
			logger.exception("job_error_not_recorded", extra={"job_id": job_id})
		raise
	finally:
		session.close()
