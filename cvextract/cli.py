"""CLI harness: extract a CV text file, run workers, inspect a job."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from cvextract.db.models.job import Job
from cvextract.db.session import dispose_db, init_db, session_scope
from cvextract.db.utils import json_deserialize
from cvextract.extraction.orchestrator import ChunkExtractionOrchestrator
from cvextract.extraction.settings import ExtractionSettings
from cvextract.jobs.adapters.sql import SqlCvDocumentStore, SqlJobStore
from cvextract.jobs.handlers import CvParsingHandler
from cvextract.jobs.manager import JobLifecycleManager
from cvextract.jobs.models import CV_PARSING
from cvextract.jobs.queue import JobQueue
from cvextract.jobs.settings import JobSettings
from cvextract.jobs.worker import WorkerPool
from cvextract.llm.ports import GenerationProvider
from cvextract.llm.service import LLMService
from cvextract.llm.settings import LLMSettings

logger = logging.getLogger(__name__)


def build_manager(
    *,
    generator: GenerationProvider | None = None,
    orchestrator: ChunkExtractionOrchestrator | None = None,
    job_settings: JobSettings | None = None,
    extraction_settings: ExtractionSettings | None = None,
    queue: JobQueue | None = None,
) -> JobLifecycleManager:
    """SQL-backed manager with the cv_parsing handler registered. init_db must have run."""
    if orchestrator is None:
        orchestrator = ChunkExtractionOrchestrator(generator or LLMService(LLMSettings()), extraction_settings)
    orchestrator.initialize()
    manager = JobLifecycleManager(SqlJobStore(), queue or JobQueue(), job_settings)
    manager.register(CvParsingHandler(orchestrator, SqlCvDocumentStore()))
    return manager


def _print_job(job_id: str, *, show_result: bool = True) -> bool:
    with session_scope() as session:
        job = session.get(Job, job_id)
        if job is None:
            return False
        print(f"Job: {job.id}")
        print(f"  type={job.job_type}")
        print(f"  status={job.status}")
        print(f"  progress={job.progress} step={job.current_step or '-'}")
        print(f"  attempts={job.attempts}/{job.max_attempts}")
        print(f"  created_at={job.created_at}")
        print(f"  started_at={job.started_at}")
        print(f"  completed_at={job.completed_at}")
        if job.next_retry_at:
            print(f"  next_retry_at={job.next_retry_at}")
        if job.related_entity_id:
            print(f"  document_id={job.related_entity_id}")
        if job.error_code:
            print(f"  error={job.error_code}: {job.error_message}")
            details = json_deserialize(job.error_details_json)
            if details:
                print(f"  error_details={json.dumps(details, ensure_ascii=False)}")
        if show_result and job.result_json:
            print(json.dumps(json_deserialize(job.result_json), indent=2, ensure_ascii=False))
    return True


def _cmd_extract(args: argparse.Namespace) -> int:
    file_path = Path(args.file).resolve()
    if not file_path.exists():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    text = file_path.read_text(encoding="utf-8", errors="replace")
    init_db(create_tables=True)

    async def run() -> str:
        queue = JobQueue()
        manager = build_manager(queue=queue)
        document_id = await SqlCvDocumentStore().create(file_path.name)
        job = await manager.create_job(
            CV_PARSING,
            {"text": text, "sections": None},
            max_attempts=args.max_attempts,
            related_entity_id=document_id,
        )
        if args.wait:
            pool = WorkerPool(manager, queue, CV_PARSING, concurrency=args.concurrency)
            await pool.run_until_idle(recover=False)
        await dispose_db()
        return job.id

    try:
        job_id = asyncio.run(run())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    init_db(create_tables=False)
    _print_job(job_id, show_result=args.wait)
    if not args.wait:
        print(f"\nRun: python -m cvextract.cli worker --type {CV_PARSING} --once")
    print(f"Inspect: python -m cvextract.cli inspect --job {job_id}")
    return 0


def _cmd_worker(args: argparse.Namespace) -> int:
    init_db(create_tables=True)

    async def run() -> int:
        queue = JobQueue()
        manager = build_manager(queue=queue)
        pool = WorkerPool(manager, queue, args.type, concurrency=args.concurrency)
        try:
            if args.once:
                return await pool.run_until_idle()
            await pool.start()
            await asyncio.Event().wait()
            return pool.processed
        finally:
            await pool.stop()
            queue.clear_delayed()
            await dispose_db()

    try:
        processed = asyncio.run(run())
    except KeyboardInterrupt:
        print("Worker stopped", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"processed={processed}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    init_db(create_tables=False)
    if not _print_job(args.job, show_result=not args.no_result):
        print(f"Error: job not found: {args.job}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CV extraction CLI")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_extract = sub.add_parser("extract", help="Create a cv_parsing job for a plain-text CV")
    p_extract.add_argument("file", help="Path to a UTF-8 text file")
    p_extract.add_argument("--wait", action="store_true", help="Process the job in-process and print the record")
    p_extract.add_argument("--concurrency", "-c", type=int, default=1, help="Workers when --wait (default: 1)")
    p_extract.add_argument("--max-attempts", type=int, default=None, help="Override JOBS_DEFAULT_MAX_ATTEMPTS")
    p_extract.set_defaults(func=_cmd_extract)

    p_worker = sub.add_parser("worker", help="Run a worker pool for one job type")
    p_worker.add_argument("--type", "-t", default=CV_PARSING, help=f"Job type (default: {CV_PARSING})")
    p_worker.add_argument(
        "--concurrency", "-c", type=int, default=JobSettings().worker_concurrency, help="Worker tasks"
    )
    p_worker.add_argument("--once", action="store_true", help="Exit when no ready or delayed jobs remain")
    p_worker.set_defaults(func=_cmd_worker)

    p_inspect = sub.add_parser("inspect", help="Show a job's status, error and result")
    p_inspect.add_argument("--job", "-j", required=True, help="Job ID")
    p_inspect.add_argument("--no-result", action="store_true", help="Do not print the result payload")
    p_inspect.set_defaults(func=_cmd_inspect)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
