"""DuckDB engine management - one database handle, one connection.

The ConnectionManager owns the only DuckDB instance of a workbench context:

- `init()` is idempotent and guarded against concurrent callers: the first
  caller starts initialization, later callers await the same in-flight task.
- The database handle is the root `duckdb.connect()` object; the working
  connection is a cursor derived from it exactly once.
- All statements go through `run()`, which serializes access to the shared
  connection in issue order and executes DuckDB calls in a worker thread.

Other components borrow the connection only for the duration of one `run()`
call and never keep a reference to it.
"""

import asyncio
import os
import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import duckdb
import structlog

from pith_workbench import metrics
from pith_workbench.config import Settings
from pith_workbench.errors import EngineInitError, NotInitializedError

logger = structlog.get_logger()

T = TypeVar("T")


# ============================================
# Runtime bundle selection
# ============================================


@dataclass(frozen=True)
class EngineBundle:
    """How the embedded engine is instantiated on this host."""

    name: str  # "memory" or "persistent"
    database: str
    config: dict[str, Any] = field(default_factory=dict)


def select_bundle(settings: Settings) -> EngineBundle:
    """
    Pick the engine bundle appropriate for the host.

    Thread count is capped by the CPUs actually available. A configured
    database path selects the persistent bundle, otherwise the database lives
    in memory for the lifetime of the process.
    """
    cpu_count = os.cpu_count() or 1
    threads = max(1, min(settings.duckdb_threads, cpu_count))
    config = {
        "threads": threads,
        "memory_limit": settings.duckdb_memory_limit,
    }

    if settings.database_path is None:
        return EngineBundle(name="memory", database=":memory:", config=config)

    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    return EngineBundle(
        name="persistent", database=str(settings.database_path), config=config
    )


# ============================================
# Virtual file registry
# ============================================


class VirtualFileRegistry:
    """
    Maps logical file names onto paths the decoders can read.

    Two registration paths resolve to the same logical name:
    - handle registration points at an existing local file (zero copy)
    - buffer registration materializes bytes in a scratch directory owned
      by the registry
    """

    def __init__(self, scratch_root: Path):
        self._scratch_root = scratch_root
        self._scratch_dir: Path | None = None
        self._files: dict[str, Path] = {}

    def _ensure_scratch_dir(self) -> Path:
        if self._scratch_dir is None:
            self._scratch_root.mkdir(parents=True, exist_ok=True)
            self._scratch_dir = Path(
                tempfile.mkdtemp(prefix="pith-", dir=self._scratch_root)
            )
        return self._scratch_dir

    def register_file_handle(self, name: str, path: str | os.PathLike) -> Path:
        """Register an existing local file under `name` without copying it."""
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"No readable file behind handle for {name}: {file_path}")
        self._files[name] = file_path
        logger.debug("file_handle_registered", name=name, path=str(file_path))
        return file_path

    def register_file_buffer(self, name: str, data: bytes) -> Path:
        """Register raw bytes under `name` by writing them to scratch space."""
        scratch_dir = self._ensure_scratch_dir()
        target = scratch_dir / f"{uuid.uuid4().hex[:12]}_{Path(name).name}"
        target.write_bytes(data)
        self._files[name] = target
        logger.debug(
            "file_buffer_registered", name=name, path=str(target), size_bytes=len(data)
        )
        return target

    def resolve(self, name: str) -> Path:
        try:
            return self._files[name]
        except KeyError:
            raise FileNotFoundError(f"File {name} is not registered") from None

    def unregister(self, name: str) -> None:
        self._files.pop(name, None)

    @property
    def names(self) -> list[str]:
        return list(self._files)

    def clear(self) -> None:
        """Forget every registration and remove the scratch directory."""
        self._files.clear()
        if self._scratch_dir is not None:
            shutil.rmtree(self._scratch_dir, ignore_errors=True)
            self._scratch_dir = None


# ============================================
# Connection manager
# ============================================


class ConnectionManager:
    """Owns the lifecycle of the DuckDB handle and its single connection."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.files = VirtualFileRegistry(settings.scratch_dir)
        self.bundle: EngineBundle | None = None
        self._handle: duckdb.DuckDBPyConnection | None = None
        self._connection: duckdb.DuckDBPyConnection | None = None
        self._init_task: asyncio.Task | None = None
        self._run_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None and self._connection is not None

    async def init(self) -> tuple[duckdb.DuckDBPyConnection, duckdb.DuckDBPyConnection]:
        """
        Initialize the engine once and return the (handle, connection) pair.

        Concurrent callers arriving while initialization is in flight wait
        for the same task instead of starting a duplicate.
        """
        if self.is_initialized:
            return self._handle, self._connection

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())

        # Shield so one cancelled waiter does not abort the shared init
        return await asyncio.shield(self._init_task)

    async def _initialize(
        self,
    ) -> tuple[duckdb.DuckDBPyConnection, duckdb.DuckDBPyConnection]:
        start_time = time.perf_counter()
        try:
            if self._handle is None:
                self.bundle = select_bundle(self.settings)
                logger.debug(
                    "engine_bundle_selected",
                    bundle=self.bundle.name,
                    database=self.bundle.database,
                    threads=self.bundle.config.get("threads"),
                )
                self._handle = await asyncio.to_thread(
                    duckdb.connect, self.bundle.database, config=self.bundle.config
                )
            if self._connection is None:
                self._connection = await asyncio.to_thread(self._handle.cursor)
        except Exception as e:
            metrics.ENGINE_INITIALIZATIONS.labels(status="error").inc()
            logger.error(
                "engine_init_failed",
                error=str(e),
                bundle=self.bundle.name if self.bundle else None,
            )
            raise EngineInitError(
                str(e), details={"bundle": self.bundle.name if self.bundle else None}
            ) from e
        finally:
            self._init_task = None

        metrics.ENGINE_INITIALIZATIONS.labels(status="success").inc()
        logger.info(
            "engine_initialized",
            bundle=self.bundle.name,
            duckdb_version=duckdb.__version__,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return self._handle, self._connection

    def get_handle(self) -> duckdb.DuckDBPyConnection:
        """Return the database handle; fails if init() never completed."""
        if self._handle is None:
            raise NotInitializedError("Database not initialized. Call init() first.")
        return self._handle

    async def get_connection(self) -> duckdb.DuckDBPyConnection:
        """Return the shared connection, initializing the engine on first use."""
        if self._connection is None:
            await self.init()
        return self._connection

    async def run(
        self,
        operation: Callable[[duckdb.DuckDBPyConnection], T],
        timeout: float | None = None,
    ) -> T:
        """
        Execute `operation(connection)` in a worker thread.

        Calls are serialized in issue order. With a timeout, the connection is
        interrupted on expiry and TimeoutError is raised once the interrupted
        statement has returned.
        """
        connection = await self.get_connection()
        async with self._run_lock:
            task = asyncio.ensure_future(asyncio.to_thread(operation, connection))
            if timeout is None:
                return await task

            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                connection.interrupt()
                try:
                    await task
                except duckdb.Error as e:
                    logger.debug("interrupted_statement_returned", error=str(e))
                else:
                    # Finished between the timer firing and the interrupt
                    return task.result()
                raise TimeoutError(f"Query exceeded timeout of {timeout}s")
            return task.result()

    def reset(self) -> None:
        """Close the connection and handle and drop registered files."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self.bundle = None
        self.files.clear()
        logger.debug("engine_reset")
