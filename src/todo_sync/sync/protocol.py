# src/todo_sync/sync/protocol.py

"""
Wire codec for the task peer.

Commands are single lines terminated by a literal "|END":

    GETALL|END
    ADD|DATE20250115|TASKBuy milk!STATEfalse|END
    UPDATE|DATE20250115|TASKBuy milk!STATEtrue|END
    DELETE|DATE20250115|TASKBuy milk!STATEtrue|END

Responses are free-form text framed by the same terminator. There is no length
prefix and no escaping: a task name containing "|", "!" or "," yields an
ambiguous command. That is a property of the protocol and is sent as-is.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from datetime import date
from enum import StrEnum

from ..tasks.task_models import MutationKind, PendingMutation, Task

logger = logging.getLogger(__name__)

TERMINATOR = "|END"
DELIMITERS = ("|", "!", ",")


class CommandKind(StrEnum):
    GETALL = "GETALL"
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


_MUTATION_COMMANDS: dict[MutationKind, CommandKind] = {
    MutationKind.CREATE: CommandKind.ADD,
    MutationKind.UPDATE: CommandKind.UPDATE,
    MutationKind.DELETE: CommandKind.DELETE,
}

GETALL = f"{CommandKind.GETALL.value}{TERMINATOR}"


def wire_date(day: date) -> str:
    """yyyyMMdd, always 8 digits (%Y does not pad years below 1000)."""
    return f"{day.year:04d}{day.month:02d}{day.day:02d}"


def encode_command(kind: CommandKind, task: Task | None = None) -> str:
    if kind is CommandKind.GETALL:
        return GETALL
    if task is None:
        raise ValueError(f"{kind.value} requires a task")

    if any(d in task.name for d in DELIMITERS):
        logger.warning("Task name contains a protocol delimiter, command is ambiguous: %r", task.name)

    state = "true" if task.completed else "false"
    return f"{kind.value}|DATE{wire_date(task.date)}|TASK{task.name}!STATE{state}{TERMINATOR}"


def encode_mutation(mutation: PendingMutation) -> str:
    return encode_command(_MUTATION_COMMANDS[mutation.kind], mutation.task)


def command_kind_of(command: str) -> str:
    """Leading verb of an encoded command (for logs and errors)."""
    return command.split("|", 1)[0]


class FrameDecoder:
    """
    Accumulates response data until the terminator shows up.

    Input may arrive as bytes (decoded incrementally as UTF-8) or as text.
    """

    def __init__(self, terminator: str = TERMINATOR) -> None:
        self._terminator = terminator
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._text = ""
        self._complete = False

    @property
    def complete(self) -> bool:
        return self._complete

    def feed(self, data: bytes | str) -> bool:
        """Add a chunk; returns True once the terminator has been seen."""
        if self._complete:
            return True
        chunk = self._decoder.decode(data) if isinstance(data, bytes) else data
        if chunk:
            self._text += chunk
            self._complete = self._terminator in self._text
        return self._complete

    def payload(self) -> str:
        idx = self._text.find(self._terminator)
        return self._text if idx == -1 else self._text[:idx]

    def finish(self) -> str:
        """
        Payload once the source is exhausted.

        A missing terminator is a framing anomaly: logged, and whatever was
        received is still returned.
        """
        if not self._complete:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._text += tail
                self._complete = self._terminator in self._text
        if not self._complete:
            logger.warning(
                "Framing anomaly: response ended without %r, using %d received chars",
                self._terminator,
                len(self._text),
            )
        return self.payload()


async def read_frame(reader: asyncio.StreamReader, *, chunk_size: int = 4096) -> str:
    decoder = FrameDecoder()
    while True:
        chunk = await reader.read(chunk_size)
        if not chunk:
            break
        if decoder.feed(chunk):
            break
    return decoder.finish()
