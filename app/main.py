import json
import sys
import threading
from dataclasses import dataclass
from typing import Any

from app.config.settings import Settings
from app.database.connection import Database
from app.logging.logger import Log
from app.processor.processor import build_processor
from app.storage.client import build_minio_client
from app.storage.keys import StorageKeys
from app.storage.status_store import ObjectStorageStatusStore
from app.worker.job_runner import JobRunner


@dataclass
class Runtime:
    settings: Settings
    database: Database
    job_runner: JobRunner

    def close(self) -> None:
        self.database.close()


def build_runtime(settings: Settings | None = None) -> Runtime:
    """Wire settings, logging, database and storage into a job runner."""
    settings = settings or Settings()
    Log.configure(settings.log_level)
    database = Database(settings)
    storage_client = build_minio_client(settings)
    status_store = ObjectStorageStatusStore(
        storage_client, settings.storage_bucket, StorageKeys(settings)
    )
    processor = build_processor(settings, database, storage_client, status_store)
    return Runtime(settings, database, JobRunner(processor, status_store))


_runtime: Runtime | None = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Process-wide runtime, built on first use."""
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            _runtime = build_runtime()
        return _runtime


def handler(event: dict[str, Any] | str, context: Any = None) -> dict[str, Any]:
    """Serverless entry point: one event, one job."""
    return get_runtime().job_runner.run(event)


def main(argv: list[str] | None = None) -> None:
    """One-shot entry point: event JSON from the first argument or stdin."""
    args = sys.argv[1:] if argv is None else argv
    event = args[0] if args else sys.stdin.read()

    runtime = build_runtime()
    try:
        result = runtime.job_runner.run(event)
    finally:
        runtime.close()
    print(json.dumps(result))


if __name__ == "__main__":
    main()
