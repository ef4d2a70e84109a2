"""Hosts record manager.

Ties the pure domain functions in ``hostm.domain.hosts`` to a storage
backend: read, parse, mutate, write.  Each call works on a fresh document
built from the current file content; nothing is cached between calls.
"""

import logging
from datetime import datetime
from pathlib import Path

from hostm.config import Settings
from hostm.domain.hosts import (
    apply_mutation,
    find_matches,
    parse_hosts,
    render_hosts,
    search_lines,
)
from hostm.models import HostsDocument, MutationRequest, MutationResult
from hostm.storage import FileStorage, HostsError, HostsStorage

logger = logging.getLogger(__name__)


class DomainExistsError(HostsError):
    """Raised by ``create`` when the domain already has a mapping."""


class DomainNotFoundError(HostsError):
    """Raised by ``update`` or a strict ``delete`` when the domain has no mapping."""


class HostsManager:
    """Applies domain mutations to a hosts storage backend.

    Args:
        storage: Where the hosts content is read from and written to.
        settings: Annotation preferences; defaults apply when omitted.
    """

    def __init__(self, storage: HostsStorage, settings: Settings | None = None) -> None:
        self._storage = storage
        self._settings = settings if settings is not None else Settings()

    @property
    def storage(self) -> HostsStorage:
        return self._storage

    def load(self) -> HostsDocument:
        return parse_hosts(self._storage.read())

    def apply(self, request: MutationRequest) -> MutationResult:
        """Upsert (``request.ip`` set) or delete (``request.ip`` is None) a mapping.

        The storage is only written when the document actually changed, so a
        delete of an absent domain needs no write access.
        """
        return self._commit(self.load(), request)

    def set(self, domain: str, ip: str) -> MutationResult:
        return self.apply(MutationRequest(domain=domain, ip=ip))

    def create(self, domain: str, ip: str) -> MutationResult:
        """Append a new mapping. Raises DomainExistsError if one is present."""
        document = self.load()
        if find_matches(document.lines, domain):
            raise DomainExistsError(
                f"domain '{domain}' already exists, use 'update' to change it"
            )
        return self._commit(document, MutationRequest(domain=domain, ip=ip))

    def update(self, domain: str, ip: str) -> MutationResult:
        """Replace an existing mapping. Raises DomainNotFoundError if none is present."""
        document = self.load()
        if not find_matches(document.lines, domain):
            raise DomainNotFoundError(
                f"domain '{domain}' does not exist, use 'create' to add it"
            )
        return self._commit(document, MutationRequest(domain=domain, ip=ip))

    def delete(self, domain: str, strict: bool = False) -> MutationResult:
        """Remove every mapping for ``domain``.

        A missing domain is a no-op unless ``strict`` is set, in which case
        DomainNotFoundError is raised.
        """
        document = self.load()
        if strict and not find_matches(document.lines, domain):
            raise DomainNotFoundError(f"domain '{domain}' does not exist, nothing to delete")
        return self._commit(document, MutationRequest(domain=domain))

    def search(self, query: str) -> list[tuple[int, str]]:
        return search_lines(self.load(), query)

    def _commit(self, document: HostsDocument, request: MutationRequest) -> MutationResult:
        now = datetime.now() if self._settings.timestamp else None
        result = apply_mutation(document, request, tool=self._settings.tool_name, now=now)
        logger.debug(
            "%s %s: %s at line(s) %s",
            request.kind.name.lower(),
            request.domain,
            result.outcome.name.lower(),
            result.line_numbers,
        )
        if result.changed:
            self._storage.write(render_hosts(result.document))
            logger.info("Wrote %s", self._storage.location)
        else:
            logger.info(
                "No mapping for %s in %s, nothing written",
                request.domain,
                self._storage.location,
            )
        return result


def apply(domain: str, ip: str | None, path: str | Path) -> MutationResult:
    """Upsert or delete ``domain`` in the hosts file at ``path``.

    Raises HostsNotFoundError, HostsPermissionError or HostsWriteError.
    """
    return HostsManager(FileStorage(path)).apply(MutationRequest(domain=domain, ip=ip))
