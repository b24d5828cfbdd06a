"""Lighthouse Auditor — runs the lighthouse CLI and collects its two report files.

Invariants:
    - run() blocks the calling thread until the process exits (timeout only if configured)
    - Both report files are removed after every run, whatever the outcome
    - Any failure yields empty json/html; partial results are never returned
    - Failures are logged here and reported through AuditOutcome.failure, never raised

Design Decisions:
    - subprocess.run with an argv list: no shell, the url is passed as a single argument
    - Per-scan output prefix: concurrent creations never share artifact paths
    - AuditOutcome over an empty (html, json) pair: callers can tell "process failed",
      "artifact missing" and "artifact unreadable" apart
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from speedster.core.domain_types import (
    AuditFailure, HTML_REPORT_SUFFIX, JSON_REPORT_SUFFIX, ScanId,
)
from speedster.core.errors import (
    ArtifactMissingError,
    ArtifactUnreadableError,
    AuditorError,
    AuditorLaunchError,
    AuditorProcessError,
    ErrorContext,
)

logger = logging.getLogger(__name__)

_FAILURE_ERRORS: dict[AuditFailure, type[AuditorError]] = {
    AuditFailure.LAUNCH_FAILED: AuditorLaunchError,
    AuditFailure.PROCESS_FAILED: AuditorProcessError,
    AuditFailure.ARTIFACT_MISSING: ArtifactMissingError,
    AuditFailure.ARTIFACT_UNREADABLE: ArtifactUnreadableError,
}


@dataclass(frozen=True)
class AuditOutcome:
    """Result of one Lighthouse run."""
    json: str = ""
    html: str = ""
    failure: AuditFailure | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(cls, failure: AuditFailure, detail: str) -> "AuditOutcome":
        return cls(failure=failure, detail=detail)

    def raise_for_failure(self, context: ErrorContext | None = None) -> None:
        if self.failure is not None:
            raise _FAILURE_ERRORS[self.failure](self.detail, context)


class LighthouseAuditor:
    """Invokes the lighthouse binary in headless mode against one URL."""

    def __init__(
        self,
        reports_dir: str,
        binary: str = "lighthouse",
        chrome_flags: str = "--headless",
        timeout_seconds: float | None = None,
    ):
        self.reports_dir = reports_dir
        self.binary = binary
        self.chrome_flags = chrome_flags
        self.timeout_seconds = timeout_seconds

    def output_prefix(self, scan_id: ScanId) -> str:
        return os.path.join(self.reports_dir, f"speedster-{scan_id}")

    def command(self, url: str, output_prefix: str) -> list[str]:
        return [
            self.binary,
            f"--chrome-flags={self.chrome_flags}",
            url,
            "--output=json",
            "--output=html",
            f"--output-path={output_prefix}",
        ]

    def run(self, url: str, output_prefix: str) -> AuditOutcome:
        """Run lighthouse and return both reports, or the reason there are none."""
        json_path = Path(output_prefix + JSON_REPORT_SUFFIX)
        html_path = Path(output_prefix + HTML_REPORT_SUFFIX)
        cmd = self.command(url, output_prefix)
        logger.info(f"Running command {' '.join(cmd)}", extra={"url": url})
        try:
            outcome = self._execute(cmd)
            if outcome is None:
                outcome = _read_reports(json_path, html_path)
        finally:
            _remove_quietly(json_path)
            _remove_quietly(html_path)

        if not outcome.ok:
            logger.error(
                f"Lighthouse audit failed: {outcome.detail}",
                extra={"url": url, "failure": outcome.failure.value},
            )
        return outcome

    def _execute(self, cmd: list[str]) -> AuditOutcome | None:
        """Run the process; None means it exited 0."""
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, errors="replace", check=False,
                timeout=self.timeout_seconds,
            )
        except OSError as exc:
            return AuditOutcome.failed(AuditFailure.LAUNCH_FAILED, str(exc))
        except subprocess.TimeoutExpired:
            return AuditOutcome.failed(
                AuditFailure.PROCESS_FAILED,
                f"timed out after {self.timeout_seconds}s",
            )
        if result.returncode != 0:
            logger.debug(
                f"lighthouse stderr: {result.stderr.strip()}",
                extra={"exit_code": result.returncode},
            )
            return AuditOutcome.failed(
                AuditFailure.PROCESS_FAILED,
                f"exit status {result.returncode}",
            )
        return None


def _read_reports(json_path: Path, html_path: Path) -> AuditOutcome:
    reports = {}
    for path in (json_path, html_path):
        try:
            reports[path] = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return AuditOutcome.failed(AuditFailure.ARTIFACT_MISSING, str(path))
        except (OSError, UnicodeDecodeError) as exc:
            return AuditOutcome.failed(
                AuditFailure.ARTIFACT_UNREADABLE, f"{path}: {exc}",
            )
    return AuditOutcome(json=reports[json_path], html=reports[html_path])


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning(f"Could not remove report file {path}: {exc}")
