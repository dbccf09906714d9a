import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel

from api.models import Report, ReportStatus, ShareLink
from api.services import wizard
from api.services.ai import AIServices
from api.services.reports import ReportService
from api.services.share import ShareService
from api.services.wizard import WizardState, WizardStep
from lib.error_handler import ErrorHandler, InvalidTransition

logger = logging.getLogger(__name__)

class StepResult(BaseModel):
    ok: bool
    state: WizardState
    report: Optional[Report] = None
    link: Optional[ShareLink] = None
    error: Optional[str] = None
    status_code: int = 200

def state_for(report: Optional[Report]) -> WizardState:
    """Wizard position implied by a stored report's status"""
    if report is None:
        return WizardState()
    status = ReportStatus(report.status)
    if status in (ReportStatus.READY, ReportStatus.SHARED):
        step = WizardStep.SHARE
    elif status in (ReportStatus.REVIEWED, ReportStatus.GENERATING):
        step = WizardStep.GENERATE
    elif report.audio_url:
        step = WizardStep.REVIEW
    else:
        step = WizardStep.RECORD
    return WizardState(step=step, report_id=report.id)

class ReportLifecycle:
    """Sequences a report through record, review, generate and share.

    Every step catches its own failures and hands back a StepResult carrying
    an inline message; the report stays where it was so the step can be
    retried. Nothing here rejects out-of-order calls.
    """

    def __init__(self, report_service: ReportService, ai_services: AIServices, share_service: ShareService):
        self.reports = report_service
        self.ai = ai_services
        self.share_service = share_service
        self.error_handler = ErrorHandler()

    async def _load(self, report_id: str, state: Optional[WizardState]):
        try:
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return None, self._fail(state or WizardState(report_id=report_id),
                                    self.error_handler.handle_load_error(e))
        if report is None:
            logger.warning(f"Report {report_id} not found or expired")
            return None, self._fail(state or WizardState(), "Report not found or has expired", 404)
        return report, None

    def _fail(self, state: WizardState, message: str, status_code: int = 502,
              report: Optional[Report] = None) -> StepResult:
        return StepResult(
            ok=False,
            state=wizard.advance(state, wizard.failed(message)),
            report=report,
            error=message,
            status_code=status_code
        )

    async def start_recording(self, audio: bytes, content_type: str,
                              state: Optional[WizardState] = None) -> StepResult:
        """Create a report for a finished recording and upload the audio"""
        state = state or WizardState()
        try:
            report_id = await self.reports.create(ReportStatus.RECORDING)
            audio_url = await self.reports.upload_audio(report_id, audio, content_type)
            await self.reports.update(report_id, {
                'audio_url': audio_url,
                'status': ReportStatus.TRANSCRIBING
            })
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_upload_error(e))

        logger.info(f"Recording stored for report {report_id}")
        return StepResult(
            ok=True,
            state=wizard.advance(state, wizard.report_created(report_id)),
            report=report
        )

    async def transcribe(self, report_id: str, state: Optional[WizardState] = None) -> StepResult:
        """Transcribe the audio, then expand it and suggest clauses side by side"""
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)

        if not report.audio_url:
            return self._fail(state, "No recording found for this report.", 409, report)

        try:
            transcript = await self.ai.transcribe(report.audio_url)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_transcription_error(e), report=report)

        expanded, clauses = await asyncio.gather(
            self.ai.expand(transcript),
            self.ai.suggest_clauses(transcript),
            return_exceptions=True
        )
        # A failure in one does not discard the other
        if isinstance(expanded, Exception):
            self.error_handler.handle_expansion_error(expanded)
            expanded = ''
        if isinstance(clauses, Exception):
            self.error_handler.handle_suggestion_error(clauses)
            clauses = []

        try:
            await self.reports.update(report_id, {
                'transcript': transcript,
                'expanded_transcript': expanded,
                'legal_clauses': clauses,
                'status': ReportStatus.REVIEWING
            })
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_save_error(e), report=report)

        return StepResult(ok=True, state=wizard.advance(state, wizard.retry()), report=report)

    async def save_review(self, report_id: str, transcript: str, expanded_transcript: str,
                          legal_clauses: List[str], state: Optional[WizardState] = None) -> StepResult:
        """Persist the reviewed transcript"""
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)

        try:
            await self.reports.update(report_id, {
                'transcript': transcript,
                'expanded_transcript': expanded_transcript,
                'legal_clauses': list(legal_clauses),
                'status': ReportStatus.REVIEWED
            })
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_save_error(e), report=report)

        return StepResult(ok=True, state=self._advance(state, wizard.transcript_ready()), report=report)

    async def generate_voice(self, report_id: str, state: Optional[WizardState] = None) -> StepResult:
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)
        if not report.expanded_transcript:
            return self._fail(state, "Review the transcript before generating.", 409, report)

        try:
            voice_url = await self.ai.synthesize_voice(report.expanded_transcript)
            await self.reports.update(report_id, {
                'generated_voice_url': voice_url,
                'status': ReportStatus.GENERATING
            })
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_voice_error(e), report=report)

        return StepResult(ok=True, state=wizard.advance(state, wizard.retry()), report=report)

    async def generate_video(self, report_id: str, state: Optional[WizardState] = None) -> StepResult:
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)
        if not report.expanded_transcript:
            return self._fail(state, "Review the transcript before generating.", 409, report)

        try:
            video_url = await self.ai.synthesize_video(report.expanded_transcript)
            await self.reports.update(report_id, {
                'generated_video_url': video_url,
                'status': ReportStatus.READY
            })
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_video_error(e), report=report)

        return StepResult(ok=True, state=wizard.advance(state, wizard.retry()), report=report)

    async def complete_generation(self, report_id: str, state: Optional[WizardState] = None) -> StepResult:
        """Leave the generate step, with or without narrated media"""
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)

        try:
            if ReportStatus(report.status) != ReportStatus.READY:
                await self.reports.update(report_id, {'status': ReportStatus.READY})
                report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_save_error(e), report=report)

        return StepResult(ok=True, state=self._advance(state, wizard.generation_complete()), report=report)

    async def share(self, report_id: str, state: Optional[WizardState] = None) -> StepResult:
        """Generate the anonymous share link"""
        report, failure = await self._load(report_id, state)
        if failure:
            return failure
        state = state or state_for(report)

        try:
            link = await self.share_service.generate_share_url(report_id)
            report = await self.reports.fetch(report_id)
        except Exception as e:
            return self._fail(state, self.error_handler.handle_share_error(e), report=report)

        return StepResult(ok=True, state=wizard.advance(state, wizard.retry()), report=report, link=link)

    @staticmethod
    def _advance(state: WizardState, event: wizard.Event) -> WizardState:
        # Re-running a finished step leaves the wizard where it already is
        try:
            return wizard.advance(state, event)
        except InvalidTransition:
            return wizard.advance(state, wizard.retry())
