from typing import Optional
import logging

logger = logging.getLogger(__name__)

class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, user_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.user_message = user_message or "An error occurred. Please try again later."
        super().__init__(self.message)

class ReportNotFoundError(AppError):
    def __init__(self, report_id: str):
        super().__init__(
            f"Report not found: {report_id}",
            status_code=404,
            user_message="Report not found or has expired"
        )
        self.report_id = report_id

class StorageError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=502)

class AIServiceError(AppError):
    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}", status_code=502)
        self.operation = operation

class ShareError(AppError):
    def __init__(self, message: str, status_code: int = 400, user_message: Optional[str] = None):
        super().__init__(message, status_code=status_code, user_message=user_message)

class InvalidTransition(AppError):
    def __init__(self, step: str, event: str):
        super().__init__(
            f"Event '{event}' is not valid in step '{step}'",
            status_code=409,
            user_message="That action is not available at this step."
        )
        self.step = step
        self.event = event

class ErrorHandler:
    """Maps failures to the inline messages shown to the reporter."""

    @staticmethod
    def handle_upload_error(error: Exception) -> str:
        logger.error(f"Upload error: {str(error)}")
        return "Failed to upload recording. Please try again."

    @staticmethod
    def handle_transcription_error(error: Exception) -> str:
        logger.error(f"Transcription error: {str(error)}")
        return "Failed to transcribe audio. Please try again."

    @staticmethod
    def handle_expansion_error(error: Exception) -> str:
        logger.error(f"Expansion error: {str(error)}")
        return "Failed to expand transcript. Please try again."

    @staticmethod
    def handle_suggestion_error(error: Exception) -> str:
        logger.error(f"Legal suggestion error: {str(error)}")
        return "Failed to suggest legal clauses. Please try again."

    @staticmethod
    def handle_load_error(error: Exception) -> str:
        logger.error(f"Report load error: {str(error)}")
        return "Failed to load report. Please try again."

    @staticmethod
    def handle_save_error(error: Exception) -> str:
        logger.error(f"Save error: {str(error)}")
        return "Failed to save transcript. Please try again."

    @staticmethod
    def handle_voice_error(error: Exception) -> str:
        logger.error(f"Voice generation error: {str(error)}")
        return "Failed to generate voice. Please try again."

    @staticmethod
    def handle_video_error(error: Exception) -> str:
        logger.error(f"Video generation error: {str(error)}")
        return "Failed to generate video. Please try again."

    @staticmethod
    def handle_share_error(error: Exception) -> str:
        logger.error(f"URL generation error: {str(error)}")
        return "Failed to generate share URL"

    @staticmethod
    def handle_directory_error(error: Exception) -> str:
        logger.error(f"Directory loading error: {str(error)}")
        return "Failed to load directory. Please try again."

    @staticmethod
    def handle_sms_error(error: Exception) -> str:
        logger.error(f"SMS error: {str(error)}")
        return "Message couldn't be sent. Please try again later."
