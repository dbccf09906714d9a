import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from api.models import Report, ReportStatus, UPDATABLE_FIELDS
from lib.database import Database
from lib.error_handler import AppError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    'audio/wav': 'wav',
    'audio/x-wav': 'wav',
    'audio/wave': 'wav',
    'audio/webm': 'webm',
    'audio/ogg': 'ogg',
    'audio/mp3': 'mp3',
    'audio/mpeg': 'mp3',
    'audio/mp4': 'm4a',
    'audio/m4a': 'm4a',
    'audio/aac': 'aac',
}

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class ReportService:
    def __init__(self, database: Database, ttl_hours: int = 72, enforce_expiry: bool = True,
                 clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.ttl = timedelta(hours=ttl_hours)
        self.enforce_expiry = enforce_expiry
        self.clock = clock
        logger.info(f"Report service initialized with TTL of {ttl_hours} hours")

    async def create(self, initial_status: ReportStatus = ReportStatus.RECORDING) -> str:
        """Create a report record and return its id"""
        created_at = self.clock()
        report = Report(
            id=str(uuid4()),
            created_at=created_at,
            expires_at=created_at + self.ttl,
            status=ReportStatus(initial_status)
        )
        await self.db.insert_report(report.model_dump(mode='json', exclude_none=True))
        logger.info(f"Created report {report.id} expiring at {report.expires_at.isoformat()}")
        return report.id

    async def update(self, report_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into a stored report. Last write wins."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise AppError(
                f"Cannot update report fields: {sorted(unknown)}",
                status_code=400,
                user_message="Invalid report update."
            )
        payload = dict(fields)
        if 'status' in payload:
            try:
                payload['status'] = ReportStatus(payload['status']).value
            except ValueError:
                raise AppError(
                    f"Unknown report status: {payload['status']}",
                    status_code=400,
                    user_message="Invalid report update."
                )
        await self.db.update_report(report_id, payload)

    async def fetch(self, report_id: str) -> Optional[Report]:
        """Return the report, or None when it does not exist or has expired"""
        row = await self.db.get_report(report_id)
        return self._live(row)

    async def fetch_by_share_token(self, token: str) -> Optional[Report]:
        row = await self.db.get_report_by_share_token(token)
        return self._live(row)

    def _live(self, row: Optional[Dict[str, Any]]) -> Optional[Report]:
        if not row:
            return None
        report = Report.model_validate(row)
        if self.enforce_expiry and report.is_expired(self.clock()):
            logger.info(f"Report {report.id} expired at {report.expires_at.isoformat()}")
            return None
        return report

    async def upload_audio(self, report_id: str, audio: bytes, content_type: str) -> str:
        """Store the recording under the report's namespace and return its URL"""
        extension = self._get_extension_from_content_type(content_type)
        path = f"audio/{report_id}/{uuid4()}.{extension}"
        return await self.db.upload_file(path, audio, content_type or 'audio/wav')

    def _get_extension_from_content_type(self, content_type: Optional[str]) -> str:
        if not content_type:
            return 'wav'
        # Browsers send e.g. "audio/webm;codecs=opus"
        base_type = content_type.split(';')[0].strip().lower()
        extension = CONTENT_TYPE_EXTENSIONS.get(base_type)
        if not extension:
            logger.warning(f"Unknown content type: {content_type}, defaulting to wav")
            return 'wav'
        return extension
