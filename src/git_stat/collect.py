from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from .config import check_unique_names
from .fetch import ensure_repo
from .models import CollectResult, CommitRecord, RepoOutcome, RepoSpec
from .walk import walk_branch

logger = logging.getLogger(__name__)


def collect_repo(spec: RepoSpec, workdir: Path, force_update: bool = False) -> list[CommitRecord]:
    handle = ensure_repo(spec, workdir, force_update=force_update)
    records: list[CommitRecord] = []
    for branch in spec.branches:
        records.extend(walk_branch(handle, branch, spec.pathspec))
    return records


def _run_worker(spec: RepoSpec, workdir: Path, force_update: bool) -> RepoOutcome:
    logger.info("repo parse start: %s", spec.name)
    start = time.monotonic()
    try:
        records = collect_repo(spec, workdir, force_update=force_update)
    except Exception as e:
        elapsed = time.monotonic() - start
        logger.warning("repo parse failed: %s after %.1fs: %s", spec.name, elapsed, e)
        return RepoOutcome(name=spec.name, records=[], error=e, elapsed_s=elapsed)
    elapsed = time.monotonic() - start
    logger.info("repo parse done: %s, %d records in %.1fs", spec.name, len(records), elapsed)
    return RepoOutcome(name=spec.name, records=records, elapsed_s=elapsed)


def collect_records(
    specs: Iterable[RepoSpec],
    workdir: Path,
    *,
    force_update: bool = False,
    jobs: int | None = None,
    fail_fast: bool = False,
) -> CollectResult:
    """
    Walk every repository concurrently and gather their commit records.

    One worker runs per repository unless `jobs` bounds the pool. A failing
    repository is reported in its outcome while the others run to completion;
    with `fail_fast` the first failure cancels workers that have not started
    yet and is re-raised. The order of outcomes is arrival order.
    """
    specs = list(specs)
    check_unique_names(specs)
    if not specs:
        return CollectResult(outcomes=[])

    max_workers = jobs if jobs and jobs > 0 else len(specs)
    outcomes: list[RepoOutcome] = []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="git-stat") as ex:
        futs = [ex.submit(_run_worker, spec, workdir, force_update) for spec in specs]
        for i, fut in enumerate(as_completed(futs), start=1):
            outcome = fut.result()
            outcomes.append(outcome)
            logger.debug("collected %d/%d repos (%s: %d records)", i, len(futs), outcome.name, len(outcome.records))
            if fail_fast and outcome.error is not None:
                for pending in futs:
                    pending.cancel()
                raise outcome.error

    return CollectResult(outcomes=outcomes)
