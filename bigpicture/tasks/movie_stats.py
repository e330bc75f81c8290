"""Movie stats update tasks.

Runs the reconciliation batch from the worker, records a JobRun and
e-mails the run report.
"""

from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
import structlog

from bigpicture.config import get_settings
from bigpicture.models import JobRun, get_task_database
from bigpicture.services.notifications import send_run_report
from bigpicture.services.pipeline import build_orchestrator
from bigpicture.services.reconciliation import BatchInProgressError
from bigpicture.tasks import celery_app

logger = structlog.get_logger(__name__)


def _run(coro):
    import asyncio

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(bind=True)
def update_all_movie_stats(self):
    """
    Scheduled: Daily (see defaults.yaml batch section)

    1. Reconcile every movie in title order
    2. Refresh the leaderboard projection
    3. E-mail the run report
    """
    return _run(_update_movie_stats_async(self, title=None))


@celery_app.task(bind=True)
def update_movie_stats_by_title(self, title: str, strict: bool = False):
    """Manual: reconcile the movie matching ``title``."""
    return _run(_update_movie_stats_async(self, title=title, strict=strict))


async def _update_movie_stats_async(
    task, title: str | None, strict: bool = False
) -> dict[str, Any]:
    """Async implementation of both update tasks."""
    settings = get_settings()
    started_at = datetime.now(timezone.utc)
    job_name = "update_all_movie_stats" if title is None else "update_movie_stats_by_title"
    job_status = "running"
    error_message = None
    summary: dict[str, Any] = {}
    records = 0

    redis_client = redis.from_url(settings.redis_url)
    try:
        async with get_task_database(settings) as database:
            async with database.session() as audit:
                job_run = JobRun(job_name=job_name, started_at=started_at, status="running")
                audit.add(job_run)
                await audit.commit()

                try:
                    async with database.session() as session:
                        async with build_orchestrator(
                            session, redis_client, settings
                        ) as orchestrator:
                            if title is None:
                                report = await orchestrator.run_all()
                                summary = report.to_dict()
                                records = report.total
                                await send_run_report(
                                    summary,
                                    refresh_error=report.refresh_error,
                                    settings=settings,
                                )
                            else:
                                result = await orchestrator.run_for_title(title, strict=strict)
                                if result is None:
                                    summary = {"query": title, "matched": False}
                                else:
                                    summary = result.to_dict()
                                    records = 1
                    job_status = "success"

                    logger.info(
                        "movie_stats_task_complete",
                        job=job_name,
                        records=records,
                        duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
                    )

                except BatchInProgressError as e:
                    job_status = "skipped"
                    error_message = str(e)
                    logger.warning("movie_stats_task_skipped", job=job_name, reason=str(e))

                except Exception as e:
                    job_status = "failed"
                    error_message = str(e)
                    logger.error(
                        "movie_stats_task_failed",
                        job=job_name,
                        error=str(e),
                        task_id=task.request.id,
                    )

                finally:
                    job_run.completed_at = datetime.now(timezone.utc)
                    job_run.status = job_status
                    job_run.error_message = error_message
                    job_run.records_processed = records
                    job_run.job_metadata = summary
                    await audit.commit()
    finally:
        await redis_client.aclose()

    return {"status": job_status, "error": error_message, **summary}
