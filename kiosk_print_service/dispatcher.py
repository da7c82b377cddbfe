"""
Print Dispatcher
================

Turns check-in label descriptors into print jobs and sends each job
through the first transport that accepts its connection.

Printing is not transactional: jobs run one after another and the first
failure is raised, leaving the jobs before it printed.
"""

import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Sequence

from .errors import UnsupportedTransportError
from .labels import LabelCache, CacheItem, merge_label_content, fetch_label
from .models import ConnectionTarget, Document, LabelDescriptor, Printer, PrintJob
from .settings import KioskSettings
from .transports import BaseTransport

logger = logging.getLogger(__name__)

LabelFetcher = Callable[[str], Awaitable[str]]


class PrintDispatcher:
    """Fetches, merges, groups and prints check-in labels."""

    def __init__(self, settings: KioskSettings, transports: Sequence[BaseTransport],
                 cache: LabelCache, fetcher: LabelFetcher = fetch_label,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            settings: Settings collaborator (override address, caching)
            transports: Transports, asked in order
            cache: Cache for label templates
            fetcher: Downloads a template by URL
        """
        self.settings = settings
        self.transports = list(transports)
        self.cache = cache
        self.fetcher = fetcher
        self._clock = clock

    # =========================================================================
    # Labels
    # =========================================================================

    async def get_label_content(self, label: LabelDescriptor) -> str:
        """Get the template for a label, through the cache unless caching is off."""
        if not self.settings.enable_label_caching:
            return await self.fetcher(label.label_file)

        cache_duration = self.settings.cache_duration

        async def update(_key: str) -> CacheItem:
            return CacheItem(
                value=await self.fetcher(label.label_file),
                expires_at=self._clock() + cache_duration,
            )

        return await self.cache.get_or_update(label.label_key, update)

    async def get_and_merge_labels(self, labels: Iterable[LabelDescriptor]) -> List[PrintJob]:
        """Build one print job per destination, documents in label order."""
        printer_override = self.settings.printer_override
        documents: Dict[ConnectionTarget, List[Document]] = {}

        for label in labels:
            content = await self.get_label_content(label)
            target = ConnectionTarget.parse(printer_override or label.printer_address)

            documents.setdefault(target, []).append(Document(
                name=label.label_key,
                data=merge_label_content(content, label.merge_fields).encode('utf-8'),
            ))

        return [PrintJob(target=target, documents=docs) for target, docs in documents.items()]

    # =========================================================================
    # Jobs
    # =========================================================================

    def get_transport(self, target: ConnectionTarget) -> BaseTransport:
        """First registered transport accepting the target."""
        for transport in self.transports:
            if transport.supports_connection(target):
                return transport
        raise UnsupportedTransportError(target.kind)

    async def print_jobs(self, jobs: Sequence[PrintJob]) -> None:
        """
        Send jobs in order.

        Every job is matched to a transport before anything is sent, so an
        unsupported connection fails the whole batch up front.
        """
        routed = [(job, self.get_transport(job.target)) for job in jobs]

        for job, transport in routed:
            try:
                await transport.print(job)
            except Exception as e:
                logger.error("Print job for %s failed: %s", job.target, e)
                raise

    async def print_labels(self, labels: Iterable[LabelDescriptor]) -> List[PrintJob]:
        """Fetch, merge and print labels. Returns the jobs that were sent."""
        jobs = await self.get_and_merge_labels(labels)
        await self.print_jobs(jobs)
        logger.info("Printed %d job(s)", len(jobs))
        return jobs

    async def discover_devices(self) -> List[Printer]:
        """Printers found by every transport; a failing transport is skipped."""
        printers: List[Printer] = []
        for transport in self.transports:
            try:
                printers.extend(await transport.discover_devices())
            except Exception as e:
                logger.warning("Device discovery over %s failed: %s", transport.kind, e)
        return printers
