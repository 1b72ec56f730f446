"""
Command line interface for matchflow.

Subcommands wrap the orchestrator operations so they can be tried
against a JSON file of job postings without a web application around
them:

* ``rank`` – rank a page of postings against a résumé text file.
* ``similar`` – list the postings most similar to one posting.
* ``analyze`` – score one résumé against one posting.
* ``describe`` – generate a job description with the completion model.

Settings come from ``--config`` (YAML), a ``.env`` file and the
environment; see :mod:`matchflow.config`.

Usage::

    matchflow rank --resume resume.txt --jobs jobs.json --out matches.json
    matchflow similar --jobs jobs.json --job-id 42 --limit 3
    matchflow analyze --resume resume.txt --jobs jobs.json --job-id 42
    matchflow describe --title "Data Engineer" --company Acme --requirements "Python, SQL"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from .config import Settings, load_settings
from .errors import CompletionUnavailable, MatchflowError
from .providers.completions import CompletionClient
from .rank.orchestrator import get_default_orchestrator
from .schema import JobPosting

logger = logging.getLogger("matchflow.cli")

T = TypeVar("T")


def _load_jobs(path: str) -> List[JobPosting]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("jobs", [])
    if not isinstance(data, list):
        raise MatchflowError(f"{path} must contain a list of jobs or a {{'jobs': [...]}} object")
    return [JobPosting.from_dict(row) for row in data]


def _load_text(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _find_job(jobs: List[JobPosting], job_id: str) -> JobPosting:
    for job in jobs:
        if str(job.id) == job_id:
            return job
    raise MatchflowError(f"Job {job_id} not found")


def _write_json(payload: Any, out: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info("Wrote results to %s", out)
    else:
        print(text)


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    overrides: Dict[str, Any] = {}
    if getattr(args, "concurrency", None):
        overrides["max_concurrency"] = args.concurrency
    if getattr(args, "timeout", None):
        overrides["request_timeout"] = args.timeout
    return settings.with_overrides(**overrides)


async def _closing(resource: Any, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    finally:
        await resource.aclose()


def cmd_rank(args: argparse.Namespace) -> None:
    """Rank jobs against a résumé and write the ranked page as JSON."""
    jobs = _load_jobs(args.jobs)
    resume_text = _load_text(args.resume)
    orchestrator = get_default_orchestrator(_settings(args))
    page = asyncio.run(
        _closing(
            orchestrator,
            orchestrator.rank_corpus_for_source(
                resume_text,
                jobs,
                page=args.page,
                page_size=args.size,
                total_count=args.total,
            ),
        )
    )
    _write_json(page.to_dict(), args.out)
    logger.info("Ranked %d jobs", len(page))


def cmd_similar(args: argparse.Namespace) -> None:
    """Write the postings most similar to ``--job-id``."""
    jobs = _load_jobs(args.jobs)
    target = _find_job(jobs, args.job_id)
    corpus = [job for job in jobs if job is not target]
    orchestrator = get_default_orchestrator(_settings(args))
    similar = asyncio.run(_closing(orchestrator, orchestrator.rank_similar_items(target, corpus, args.limit)))
    _write_json([job.to_dict() for job in similar], args.out)


def cmd_analyze(args: argparse.Namespace) -> None:
    """Score one résumé against one posting."""
    jobs = _load_jobs(args.jobs)
    job = _find_job(jobs, args.job_id)
    resume_text = _load_text(args.resume) or ""
    if not resume_text.strip():
        raise MatchflowError("Resume text not extracted. Please re-upload your resume.")
    if not job.description or not job.description.strip():
        raise MatchflowError("Job description not available")
    orchestrator = get_default_orchestrator(_settings(args))
    result = asyncio.run(
        _closing(orchestrator, orchestrator.score_single_pair(resume_text, job.combined_text(), job.skills))
    )
    payload = result.to_dict()
    payload.update({"jobId": job.id, "jobTitle": job.title, "company": job.company})
    _write_json(payload, args.out)


def cmd_describe(args: argparse.Namespace) -> None:
    """Generate a job description."""
    client = CompletionClient(_settings(args))
    description = asyncio.run(
        _closing(client, client.generate_job_description(args.title, args.company, args.requirements))
    )
    _write_json({"description": description}, args.out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="matchflow", description="Embedding based résumé and job matching")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--out", help="Write JSON output to this file instead of stdout")
        sub.add_argument("--timeout", type=float, help="Per provider call timeout in seconds")
        sub.add_argument("--concurrency", type=int, help="Maximum concurrent scoring tasks")

    rank_cmd = subparsers.add_parser("rank", help="Rank jobs against a résumé")
    rank_cmd.add_argument("--resume", help="Path to extracted résumé text (omit if no résumé was uploaded)")
    rank_cmd.add_argument("--jobs", required=True, help="Path to jobs JSON")
    rank_cmd.add_argument("--page", type=int, default=0, help="Page number to report")
    rank_cmd.add_argument("--size", type=int, help="Page size to report (defaults to number of jobs)")
    rank_cmd.add_argument("--total", type=int, help="Total job count across pages (defaults to number of jobs)")
    _common(rank_cmd)
    rank_cmd.set_defaults(func=cmd_rank)

    similar_cmd = subparsers.add_parser("similar", help="Find jobs similar to a job")
    similar_cmd.add_argument("--jobs", required=True, help="Path to jobs JSON")
    similar_cmd.add_argument("--job-id", required=True, dest="job_id", help="Id of the target job")
    similar_cmd.add_argument("--limit", type=int, default=5, help="Number of similar jobs to return")
    _common(similar_cmd)
    similar_cmd.set_defaults(func=cmd_similar)

    analyze_cmd = subparsers.add_parser("analyze", help="Score a résumé against one job")
    analyze_cmd.add_argument("--resume", required=True, help="Path to extracted résumé text")
    analyze_cmd.add_argument("--jobs", required=True, help="Path to jobs JSON")
    analyze_cmd.add_argument("--job-id", required=True, dest="job_id", help="Id of the job")
    _common(analyze_cmd)
    analyze_cmd.set_defaults(func=cmd_analyze)

    describe_cmd = subparsers.add_parser("describe", help="Generate a job description")
    describe_cmd.add_argument("--title", required=True, help="Job title")
    describe_cmd.add_argument("--company", required=True, help="Company name")
    describe_cmd.add_argument("--requirements", default="", help="Key requirements")
    _common(describe_cmd)
    describe_cmd.set_defaults(func=cmd_describe)
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )
    try:
        args.func(args)
    except CompletionUnavailable as exc:
        logger.error("Failed to generate text: %s", exc)
        return 1
    except (MatchflowError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
