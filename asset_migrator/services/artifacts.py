"""
Artifact writer - durable JSON logs of runs and verification reports.

Failed-asset logs are readable back as an identifier list, so a follow-up
run can target exactly the assets that failed.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..orchestrator.models import RunSummary, VerificationReport

logger = logging.getLogger(__name__)

SKIPPED_ASSETS_FILE = "skipped-assets.json"
FAILED_ASSETS_FILE = "failed-assets.json"
REPORT_FILE_PREFIX = "verification-report-"


class ArtifactWriter:
    """Writes run and verification artifacts into a log directory."""

    def __init__(self, log_dir: Optional[Union[str, Path]] = None):
        self._log_dir = Path(log_dir) if log_dir else Path.cwd()

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def _write(self, filename: str, payload: Dict) -> Path:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        path = self._log_dir / filename
        path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        return path

    def write_run_summary(self, summary: "RunSummary") -> Dict[str, Path]:
        """
        Persist skipped and failed lists of a finished run.

        Returns:
            {"skipped": path, "failed": path} for the files actually written
        """
        written = {}
        generated_at = (summary.finished_at or datetime.now(timezone.utc)).isoformat()
        counts = summary.counts()

        if summary.skipped_assets:
            written["skipped"] = self._write(SKIPPED_ASSETS_FILE, {
                "generated_at": generated_at,
                "summary": counts,
                "assets": [o.to_dict() for o in summary.skipped_assets],
            })
            logger.info("Skipped assets logged to: %s", written["skipped"])

        if summary.failed_assets:
            written["failed"] = self._write(FAILED_ASSETS_FILE, {
                "generated_at": generated_at,
                "summary": counts,
                "assets": [o.to_dict() for o in summary.failed_assets],
            })
            logger.info("Failed assets logged to: %s", written["failed"])

        return written

    def write_verification_report(self, report: "VerificationReport") -> Optional[Path]:
        """Persist a verification report; only written when it has discrepancies."""
        if not report.has_discrepancies:
            return None
        stamp = report.generated_at.strftime("%Y%m%dT%H%M%SZ")
        path = self._write(f"{REPORT_FILE_PREFIX}{stamp}.json", report.to_dict())
        logger.info("Detailed report saved to: %s", path)
        return path


def load_public_ids(path: Union[str, Path]) -> List[str]:
    """
    Read identifiers from a failed/skipped artifact or a plain list.

    Accepts the artifact document ({"assets": [{"public_id": ...}]}), a
    JSON list of ids or objects, or a text file with one id per line.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError:
        return [line.strip() for line in text.splitlines() if line.strip() and not line.startswith("#")]

    if isinstance(data, dict):
        data = data.get("assets", [])
    if not isinstance(data, list):
        raise ValueError(f"unsupported identifier file format: {path}")

    ids = []
    for item in data:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, dict) and item.get("public_id"):
            ids.append(str(item["public_id"]))
    return list(dict.fromkeys(ids))
