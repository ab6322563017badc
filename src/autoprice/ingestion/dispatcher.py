"""Collection run orchestration: fetch, parse, validate, store, index."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Sequence

from autoprice.core.config import AutopriceConfig, SourceConfig, ValidationConfig
from autoprice.core.exceptions import AutopriceError, StorageError
from autoprice.core.models import CanonicalVehicleRow, ErrorKind, RunReport, SourceResult
from autoprice.ingestion.fetcher import SourceFetcher
from autoprice.ingestion.report import build_report, failure, success
from autoprice.normalize.price import is_plausible_price
from autoprice.sources import SourceRegistry, registry
from autoprice.storage.index import IndexMaintainer
from autoprice.storage.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


def filter_valid_rows(
    rows: list[CanonicalVehicleRow], validation: ValidationConfig
) -> list[CanonicalVehicleRow]:
    """Keep rows whose price lies inside the configured sanity band."""
    return [
        row
        for row in rows
        if is_plausible_price(row.price_numeric, validation.min_price, validation.max_price)
    ]


class Dispatcher:
    """Runs every enabled source concurrently and isolates their failures.

    One task per source does fetch -> parse -> filter -> snapshot write ->
    index record. A source failing at any stage is reported and skipped; it
    never affects another source. Concurrency is bounded by
    ``fetch.max_concurrent`` and the whole run by ``fetch.run_deadline_seconds``.

    The store step (snapshot write plus index record) is shielded from the
    deadline: once a source starts committing, the run waits for it and
    reports what actually landed on disk.
    """

    def __init__(
        self,
        config: AutopriceConfig,
        fetcher: SourceFetcher,
        snapshots: SnapshotStore,
        index: IndexMaintainer,
        parsers: SourceRegistry = registry,
    ) -> None:
        self._config = config
        self._fetcher = fetcher
        self._snapshots = snapshots
        self._index = index
        self._parsers = parsers

    async def run(
        self,
        sources: Sequence[SourceConfig] | None = None,
        run_date: date | None = None,
        write_report: bool = True,
    ) -> RunReport:
        """Collect all given (default: enabled) sources for ``run_date``.

        Returns the run report; it is also written to ``health-report.json``
        unless ``write_report`` is False.
        """
        run_date = run_date or date.today()
        if sources is None:
            sources = self._config.enabled_sources
        sources = [s for s in sources if s.enabled]

        semaphore = asyncio.Semaphore(self._config.fetch.max_concurrent)
        results: dict[str, SourceResult] = {}
        commits: dict[str, asyncio.Task[SourceResult]] = {}

        async def guarded(source: SourceConfig) -> None:
            async with semaphore:
                results[source.id] = await self.run_source(source, run_date, commits)

        tasks = [asyncio.create_task(guarded(s)) for s in sources]
        deadline = self._config.fetch.run_deadline_seconds
        try:
            async with asyncio.timeout(deadline):
                await asyncio.gather(*tasks)
        except TimeoutError:
            logger.warning(
                "Run deadline of %ds exceeded; cancelling unfinished sources", deadline
            )
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._settle_commits(sources, commits, results)

        ordered = [
            results.get(s.id)
            or failure(s, f"run deadline of {deadline}s exceeded", ErrorKind.TIMEOUT)
            for s in sources
        ]
        report = build_report(run_date, ordered)

        if write_report:
            await self._index.write_report(report)

        logger.info(
            "Run %s finished: %d/%d sources succeeded",
            run_date, report.successful, report.total_brands,
        )
        return report

    async def run_source(
        self,
        source: SourceConfig,
        run_date: date,
        commits: dict[str, asyncio.Task[SourceResult]] | None = None,
    ) -> SourceResult:
        """Collect one source. Never raises except on cancellation.

        The store step is registered in ``commits`` (when given) so a
        cancelled run can still await it.
        """
        try:
            result = await self._collect(source, run_date, commits)
        except AutopriceError as e:
            logger.error("%s failed: %s", source.id, e)
            return failure(source, e)
        except Exception as e:
            logger.exception("%s failed unexpectedly", source.id)
            return failure(source, e, ErrorKind.UNEXPECTED)

        if result.success:
            logger.info("%s: %d rows stored for %s", source.id, result.count, run_date)
        else:
            logger.info("%s: %s", source.id, result.error)
        return result

    async def _collect(
        self,
        source: SourceConfig,
        run_date: date,
        commits: dict[str, asyncio.Task[SourceResult]] | None,
    ) -> SourceResult:
        payload = await self._fetcher.fetch(source)

        parser = self._parsers.create(source.parser)
        rows = parser.parse(payload, source.name)
        valid = filter_valid_rows(rows, self._config.validation)
        if len(valid) < len(rows):
            logger.warning(
                "%s: dropped %d row(s) outside the price band",
                source.id, len(rows) - len(valid),
            )
        if not valid:
            return failure(
                source,
                f"no valid rows (parsed {len(rows)})",
                ErrorKind.EMPTY,
            )

        commit = asyncio.create_task(self._commit(source, run_date, valid))
        if commits is not None:
            commits[source.id] = commit
        return await asyncio.shield(commit)

    async def _commit(
        self, source: SourceConfig, run_date: date, rows: list[CanonicalVehicleRow]
    ) -> SourceResult:
        await asyncio.to_thread(
            self._snapshots.write, source.id, source.name, run_date, rows
        )
        try:
            await self._index.record_date(source.id, source.name, run_date, len(rows))
        except StorageError as e:
            logger.error("%s: snapshot written but not indexed: %s", source.id, e)
            return failure(source, e, ErrorKind.STORAGE, count=len(rows))

        return success(source, len(rows))

    async def _settle_commits(
        self,
        sources: Sequence[SourceConfig],
        commits: dict[str, asyncio.Task[SourceResult]],
        results: dict[str, SourceResult],
    ) -> None:
        """Wait out store steps that were in flight when the deadline hit."""
        for source in sources:
            commit = commits.get(source.id)
            if commit is None or source.id in results:
                continue
            logger.info("%s: waiting for in-flight store to finish", source.id)
            try:
                results[source.id] = await commit
            except AutopriceError as e:
                logger.error("%s failed: %s", source.id, e)
                results[source.id] = failure(source, e)
            except Exception as e:
                logger.exception("%s failed unexpectedly", source.id)
                results[source.id] = failure(source, e, ErrorKind.UNEXPECTED)
