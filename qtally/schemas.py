from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .config import settings
from .tally import AggregationResult


class SubmitJobRequest(BaseModel):
	kind: Literal["bell", "ghz"] = "bell"
	num_qubits: int = Field(2, ge=2, le=127, description="Ignored for bell circuits")
	shots: int = Field(settings.num_shots, ge=1, le=1_000_000)
	backend: str = settings.default_backend


class SubmitJobResponse(BaseModel):
	job_id: str
	message: str = "Job submitted successfully."


class JobReport(BaseModel):
	aggregation: AggregationResult
	report: List[str]
	top_outcomes: List[str] = []


class JobCompletedResponse(BaseModel):
	status: str = "completed"
	result: JobReport


class JobPendingResponse(BaseModel):
	status: str = "pending"
	message: str = "Job is still in progress."


class JobErrorResponse(BaseModel):
	status: str = "error"
	message: str


class TallyRequest(BaseModel):
	tokens: List[str]
	qubit_count: int = Field(..., ge=1, le=1024)
	threshold: Optional[float] = Field(None, ge=0.0, le=100.0)
	suppress: bool = Field(False, description="Hide buckets at or below settings.display_threshold when no threshold is given")
