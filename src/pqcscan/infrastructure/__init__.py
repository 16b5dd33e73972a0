"""Infrastructure layer."""

from pqcscan.infrastructure.http import HTTPClient
from pqcscan.infrastructure.process import ProcessResult, ProcessRunner, run_process

__all__ = ["HTTPClient", "ProcessResult", "ProcessRunner", "run_process"]
