"""Pipeline runner - executes all download jobs for a domain on a bounded worker pool."""

from __future__ import annotations

import concurrent.futures
import logging
import time

from cmipfetch.config import settings
from cmipfetch.models.catalog import Cmip6Domain
from cmipfetch.models.enums import JobState
from cmipfetch.models.schemas import Job, JobResult, RunSummary
from cmipfetch.pipelines.cmip6_pipeline import Cmip6Pipeline

logger = logging.getLogger(__name__)


def prepare_directories(domain: Cmip6Domain) -> None:
    for path in (domain.download_directory, domain.archive_directory, domain.omfile_directory):
        path.mkdir(parents=True, exist_ok=True)


def run_download(
    domain: Cmip6Domain,
    start_year: int | None = None,
    end_year: int | None = None,
    max_workers: int | None = None,
    pipeline: Cmip6Pipeline | None = None,
) -> RunSummary:
    """Download and archive every variable-year of ``domain``.

    The elevation grid is built first; if that fails nothing else runs and
    the ElevationError propagates. Individual job failures are logged and
    counted, they never stop sibling jobs.
    """
    start_year = start_year if start_year is not None else settings.start_year
    end_year = end_year if end_year is not None else settings.end_year
    max_workers = max_workers or settings.max_workers
    if end_year < start_year:
        raise ValueError(f"end year {end_year} is before start year {start_year}")

    started = time.time()
    prepare_directories(domain)
    pipeline = pipeline or Cmip6Pipeline(domain)

    if domain.version_orography is not None:
        pipeline.elevation.get(domain)

    jobs = pipeline.jobs(start_year, end_year)
    logger.info(
        "%s: %d jobs for %d-%d with %d workers",
        domain.value,
        len(jobs),
        start_year,
        end_year,
        max_workers,
    )

    results = _run_jobs(pipeline, jobs, max_workers)

    summary = RunSummary(domain=domain.value)
    for result in results:
        if not result.ok:
            summary.failed += 1
            summary.failures.append(f"{result.job}: {result.reason}")
        elif result.skipped:
            summary.skipped += 1
        else:
            summary.persisted += 1

    logger.info(
        "=== %s Summary: %d persisted, %d skipped, %d failed in %.1fs ===",
        domain.value,
        summary.persisted,
        summary.skipped,
        summary.failed,
        time.time() - started,
    )
    for failure in summary.failures:
        logger.warning("Failed: %s", failure)
    return summary


def _run_jobs(pipeline: Cmip6Pipeline, jobs: list[Job], max_workers: int) -> list[JobResult]:
    seen: set[tuple] = set()
    unique = []
    for job in jobs:
        if job.key not in seen:
            seen.add(job.key)
            unique.append(job)

    if max_workers <= 1 or len(unique) <= 1:
        return [_run_one(pipeline, job) for job in unique]

    results: list[JobResult] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(_run_one, pipeline, job): job for job in unique}
        for future in concurrent.futures.as_completed(futures):
            results.append(future.result())
    return results


def _run_one(pipeline: Cmip6Pipeline, job: Job) -> JobResult:
    """Run one job; an unexpected exception fails only that job."""
    try:
        return pipeline.run_job(job)
    except Exception as e:
        logger.exception("Job %s crashed", job)
        return JobResult(job=job, state=JobState.FAILED, reason=f"{type(e).__name__}: {e}")
