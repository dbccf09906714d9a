import asyncio
import logging
from typing import Dict, List, Optional
from uuid import uuid4

from api.models import Report, ReportStatus, ShareLink
from api.services.directory import DirectoryService
from api.services.reports import ReportService
from lib.error_handler import ErrorHandler, ReportNotFoundError, ShareError

logger = logging.getLogger(__name__)

class ShareService:
    def __init__(self, report_service: ReportService, public_base_url: str,
                 directory_service: Optional[DirectoryService] = None,
                 twilio_client=None, phone_number: Optional[str] = None):
        self.reports = report_service
        self.base_url = public_base_url.rstrip('/')
        self.directory = directory_service
        self.client = twilio_client
        self.phone_number = phone_number

    def share_url(self, token: str) -> str:
        return f"{self.base_url}/shared/{token}"

    async def generate_share_url(self, report_id: str) -> ShareLink:
        """Attach a fresh share token to the report and mark it shared"""
        report = await self.reports.fetch(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        token = str(uuid4())
        await self.reports.update(report_id, {
            'share_token': token,
            'status': ReportStatus.SHARED
        })
        logger.info(f"Generated share token for report {report_id}")
        return ShareLink(
            report_id=report_id,
            token=token,
            url=self.share_url(token),
            expires_at=report.expires_at
        )

    async def resolve(self, token: str) -> Optional[Report]:
        """Report behind a share token, or None when unknown or expired"""
        return await self.reports.fetch_by_share_token(token)

    async def send_to_contacts(self, report_id: str, contact_ids: List[str]) -> Dict[str, List[str]]:
        """Text the share link to each selected contact that has a phone number"""
        if not contact_ids:
            raise ShareError("No contacts selected", user_message="Select at least one contact.")
        if self.client is None or self.directory is None:
            raise ShareError(
                "SMS delivery is not configured",
                status_code=503,
                user_message="Sharing by message is not available right now."
            )

        report = await self.reports.fetch(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if not report.share_token:
            raise ShareError(
                f"Report {report_id} has no share link",
                status_code=409,
                user_message="Generate a share link first."
            )

        directory = await self.directory.load()
        if directory.error:
            raise ShareError(directory.error, status_code=502, user_message=directory.error)

        body = (
            "An anonymous report has been shared with you. "
            f"It can be viewed until {report.expires_at:%Y-%m-%d %H:%M} UTC: "
            f"{self.share_url(report.share_token)}"
        )
        sent, skipped, failed = [], [], []
        for contact_id in contact_ids:
            contact = directory.find(contact_id)
            if contact is None or not contact.phone_number:
                logger.warning(f"Skipping contact {contact_id}: no phone number on file")
                skipped.append(contact_id)
                continue
            try:
                await self.send_sms(contact.phone_number, body)
            except Exception as e:
                ErrorHandler.handle_sms_error(e)
                failed.append(contact_id)
                continue
            sent.append(contact_id)

        logger.info(
            f"Report {report_id} shared with {len(sent)} contact(s), "
            f"skipped {len(skipped)}, failed {len(failed)}"
        )
        return {'sent': sent, 'skipped': skipped, 'failed': failed}

    async def send_sms(self, to_number: str, message: str) -> None:
        try:
            logger.info(f"Sending share link SMS to {to_number[-4:]}")
            # Run Twilio API call in an executor to prevent blocking
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self.client.messages.create(
                    body=message,
                    from_=self.phone_number,
                    to=to_number
                )
            )
        except Exception as e:
            logger.error(f"Failed to send SMS: {str(e)}")
            raise
