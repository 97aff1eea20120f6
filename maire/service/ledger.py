"""
Append-only step ledger.

Every topology step reads the ledger snapshot before invoking an agent and
appends a hashed entry after the agent answers. The snapshot text is fed
verbatim into the next prompt, so its rendering is part of the prompt
protocol and must stay byte-stable.

Entries are also hash-chained: each entry's ``chain_hash`` covers the
previous entry's ``chain_hash`` and its own snapshot line, so dropping or
reordering entries breaks ``verify_chain``.
"""

import hashlib
import logging
from datetime import datetime, timezone
from typing import List, Sequence

import anyio

from .models import Direction, InvocationStatus, LedgerEntry, LedgerRecord, render_line

logger = logging.getLogger(__name__)

HASH_LENGTH = 12

SNAPSHOT_OPEN = "<LEDGER>"
SNAPSHOT_CLOSE = "</LEDGER>"


def content_hash(content: str) -> str:
    """First 12 hex characters of the SHA-256 digest of ``content``."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def utc_timestamp() -> str:
    """Current UTC time as an RFC 3339 string with second precision."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def link_hash(previous: str, line: str) -> str:
    """Chain hash of an entry whose snapshot line is ``line``."""
    return hashlib.sha256(f"{previous}\n{line}".encode("utf-8")).hexdigest()


def verify_chain(entries: Sequence[LedgerEntry]) -> bool:
    """Whether every entry links to the one before it, starting from an empty chain."""
    previous = ""
    for i, entry in enumerate(entries):
        if entry.chain_hash != link_hash(previous, entry.render()):
            logger.warning(f"Ledger chain broken at entry {i} ({entry.render()})")
            return False
        previous = entry.chain_hash
    return True


class Ledger:
    """
    Hash record of one run, Helix pass pair, or Star arm.

    Appends and snapshots share one lock, so concurrent writers always see a
    consistent entry list. Entries are never mutated or removed.
    """

    def __init__(self, original_prompt: str, scope: str = "run") -> None:
        """
        Initialize an empty ledger.

        Args:
            original_prompt: Prompt that opened the run, rendered in every snapshot
            scope: Owner label used when the ledger is exported
        """
        self.original_prompt = original_prompt
        self.scope = scope
        self._entries: List[LedgerEntry] = []
        self._lock = anyio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def head(self) -> str:
        """Chain hash of the last entry, empty for an empty ledger."""
        return self._entries[-1].chain_hash if self._entries else ""

    @property
    def entries(self) -> List[LedgerEntry]:
        """Copy of the entries in append order."""
        return list(self._entries)

    async def append(
        self,
        direction: Direction,
        step_index: int,
        agent_id: str,
        content: str,
        status: InvocationStatus = InvocationStatus.SUCCEEDED,
    ) -> LedgerEntry:
        """
        Hash ``content`` and append a new entry stamped with the current time
        and linked to the current head.

        Returns:
            The appended entry
        """
        digest = content_hash(content)
        async with self._lock:
            timestamp = utc_timestamp()
            line = render_line(direction, step_index, agent_id, digest, timestamp)
            entry = LedgerEntry(
                direction=direction,
                step_index=step_index,
                agent_id=agent_id,
                content_hash=digest,
                timestamp=timestamp,
                status=status,
                chain_hash=link_hash(self.head, line),
            )
            self._entries.append(entry)
        logger.debug(f"[{self.scope}] appended {entry.render()}")
        return entry

    async def snapshot(self) -> str:
        """Render the original prompt and every entry as a delimited block."""
        async with self._lock:
            lines = [entry.render() for entry in self._entries]

        parts = [f"{SNAPSHOT_OPEN}\nOriginal: {self.original_prompt}\n\n"]
        parts.extend(f"{line}\n" for line in lines)
        parts.append(f"{SNAPSHOT_CLOSE}\n")
        return "".join(parts)

    def verify(self) -> bool:
        """Check the hash chain over the current entries."""
        return verify_chain(self._entries)

    def record(self) -> LedgerRecord:
        """Export the ledger for the orchestration result."""
        return LedgerRecord(
            scope=self.scope,
            original_prompt=self.original_prompt,
            entries=self.entries,
        )
