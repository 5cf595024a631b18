from celery import Celery

from .config import settings

# soft limit = polling window + transpile/aggregate time; hard limit after that
SOFT_TIME_LIMIT_S = int(settings.job_timeout_s) + 30
HARD_TIME_LIMIT_S = SOFT_TIME_LIMIT_S + 30

celery = Celery(
	"qtally",
	broker=settings.celery_broker_url,
	backend=settings.celery_result_backend,
	include=["qtally.worker_tasks"],
)

celery.conf.update(
	task_serializer="json",
	result_serializer="json",
	accept_content=["json"],
	task_acks_late=True,
	worker_prefetch_multiplier=1,
	task_default_queue="sampling",
	task_soft_time_limit=SOFT_TIME_LIMIT_S,
	task_time_limit=HARD_TIME_LIMIT_S,
	task_track_started=True,
)
