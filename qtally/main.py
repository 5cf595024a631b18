import uuid
import logging
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import select

from .config import settings
from .db import init_db, SessionLocal, Job, JobStatus, CircuitKind
from .quantum import get_backend
from .schemas import (
	SubmitJobRequest,
	SubmitJobResponse,
	JobCompletedResponse,
	JobPendingResponse,
	JobErrorResponse,
	JobReport,
	TallyRequest,
)
from .tally import aggregate, format_outcomes, format_report
from .worker_tasks import execute_sampling_job

app = FastAPI(title="Shot Tally API")
logger = logging.getLogger("api")


@app.on_event("startup")
def on_startup() -> None:
	init_db()


@app.get("/healthz")
def healthz() -> dict:
	return {"status": "ok"}


@app.post("/jobs", response_model=SubmitJobResponse, status_code=202)
def submit_job(payload: SubmitJobRequest) -> SubmitJobResponse:
	try:
		get_backend(payload.backend)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))

	num_qubits = 2 if payload.kind == CircuitKind.BELL else payload.num_qubits
	job_id = str(uuid.uuid4())
	session = SessionLocal()
	try:
		job = Job(
			id=job_id,
			status=JobStatus.PENDING,
			kind=payload.kind,
			num_qubits=num_qubits,
			shots=payload.shots,
			backend=payload.backend,
		)
		session.add(job)
		session.commit()
		logger.info("job_enqueued", extra={"job_id": job_id, "kind": payload.kind, "shots": payload.shots})
	finally:
		session.close()

	execute_sampling_job.delay(job_id)
	return SubmitJobResponse(job_id=job_id)


@app.get("/jobs/{job_id}", responses={
	200: {"model": JobCompletedResponse},
	404: {"model": JobErrorResponse},
})
def get_job(job_id: str):
	session = SessionLocal()
	try:
		job = session.get(Job, job_id)
		if job is None:
			logger.info("job_not_found", extra={"job_id": job_id})
			return JSONResponse(status_code=404, content=JobErrorResponse(status="error", message="Job not found.").model_dump())

		if job.status in (JobStatus.PENDING, JobStatus.RUNNING):
			logger.info("job_pending", extra={"job_id": job_id, "status": job.status})
			return JSONResponse(status_code=200, content=JobPendingResponse().model_dump())

		if job.status == JobStatus.COMPLETED:
			logger.info("job_result", extra={"job_id": job_id})
			result = JobReport.model_validate(job.result_json or {})
			return JSONResponse(status_code=200, content=JobCompletedResponse(result=result).model_dump())

		logger.info("job_error_state", extra={"job_id": job_id})
		return JSONResponse(status_code=200, content=JobErrorResponse(status="error", message=job.error_msg or "Unknown error").model_dump())
	finally:
		session.close()


@app.get("/jobs")
def list_jobs():
	session = SessionLocal()
	try:
		stmt = select(Job).order_by(Job.submitted_at.desc())
		jobs = session.execute(stmt).scalars().all()
		data = []
		for j in jobs:
			data.append({
				"id": j.id,
				"status": j.status,
				"kind": j.kind,
				"num_qubits": j.num_qubits,
				"shots": j.shots,
				"backend": j.backend,
				"submitted_at": j.submitted_at.isoformat() if j.submitted_at else None,
				"updated_at": j.updated_at.isoformat() if j.updated_at else None,
				"has_result": bool(j.result_json),
				"error_msg": j.error_msg,
			})
		return {"jobs": data}
	finally:
		session.close()


@app.post("/tally", response_model=JobReport)
def tally_tokens(payload: TallyRequest) -> JobReport:
	result = aggregate(payload.tokens, payload.qubit_count)
	threshold = payload.threshold
	if threshold is None and payload.suppress:
		threshold = settings.display_threshold
	logger.info("tally", extra={"denominator": result.denominator, "malformed": result.malformed})
	return JobReport(
		aggregation=result,
		report=format_report(result, threshold),
		top_outcomes=format_outcomes(result, settings.display_threshold if threshold is None else threshold),
	)
