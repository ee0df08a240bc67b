"""Conversational session on top of the model lifecycle manager.

Each turn streams the model's answer and, when the answer contains a
```sql fenced block, runs that SQL and attaches the result to the turn.
"""

import re
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Literal

import structlog

from pith_workbench.ai.lifecycle import AIStatus, ModelLifecycleManager, PurgeReport
from pith_workbench.errors import QueryExecutionError
from pith_workbench.query import QueryNormalizer
from pith_workbench.schema import SchemaIntrospector

logger = structlog.get_logger()

SQL_BLOCK_PATTERN = re.compile(r"```sql\s*([\s\S]*?)\s*```")


def extract_sql(text: str) -> str | None:
    """Return the first ```sql block of `text`, stripped, or None."""
    match = SQL_BLOCK_PATTERN.search(text)
    if match is None:
        return None
    sql = match.group(1).strip()
    return sql or None


@dataclass
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str
    sql: str | None = None
    rows: list[dict[str, Any]] | None = None
    columns: list[str] | None = None
    execution_ms: float | None = None
    sql_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ChatSession:
    """Transcript plus the ask/answer/auto-execute loop."""

    def __init__(
        self,
        lifecycle: ModelLifecycleManager,
        normalizer: QueryNormalizer,
        introspector: SchemaIntrospector,
    ):
        self.lifecycle = lifecycle
        self.normalizer = normalizer
        self.introspector = introspector
        self.messages: list[ChatMessage] = []

    @property
    def status(self) -> AIStatus:
        return self.lifecycle.status

    def clear(self) -> None:
        self.messages = []

    def switch_model(self, model_id: str) -> None:
        """Select another model; the transcript belongs to the previous one."""
        previous = self.lifecycle.get_current_model()
        self.lifecycle.set_model(model_id)
        if model_id != previous:
            self.clear()

    async def purge(self) -> PurgeReport:
        report = await self.lifecycle.purge()
        self.clear()
        return report

    async def ask(
        self, prompt: str, on_update: Callable[[str], None] | None = None
    ) -> ChatMessage:
        """Run one turn and return the assistant message."""
        self.messages.append(ChatMessage(role="user", content=prompt))
        schema_context = await self.introspector.schema_context()

        reply = ChatMessage(role="assistant", content="")
        self.messages.append(reply)

        def update(text: str) -> None:
            reply.content = text
            if on_update is not None:
                on_update(text)

        try:
            reply.content = await self.lifecycle.generate(prompt, schema_context, update)
        except Exception:
            self.messages.remove(reply)
            raise

        sql = extract_sql(reply.content)
        if sql is not None:
            await self._execute(reply, sql)
        return reply

    async def _execute(self, reply: ChatMessage, sql: str) -> None:
        reply.sql = sql
        start_time = time.perf_counter()
        try:
            result = await self.normalizer.run(sql, source="assistant")
        except QueryExecutionError as e:
            # The turn still succeeds; the failure is shown next to the answer
            reply.sql_error = e.message
            logger.error("auto_execution_failed", sql=sql, error=e.message)
            return
        reply.execution_ms = round((time.perf_counter() - start_time) * 1000, 2)
        reply.rows = result.rows
        reply.columns = result.columns
