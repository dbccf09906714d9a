import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from lib.config import Settings
from lib.database import Database
from lib.error_handler import AIServiceError

logger = logging.getLogger(__name__)

SAMPLE_TRANSCRIPT = (
    "یہ ایک نمونہ ٹرانسکرپٹ ہے۔ This is a sample transcript showing mixed Urdu "
    "and English content for testing purposes."
)

EXPANSION_CONTEXT = (
    "Expanded context: This report describes incidents that may fall under various "
    "Pakistani laws including the Protection of Women Act 2006, Criminal Code sections "
    "related to harassment, and domestic violence provisions."
)

SUGGESTED_CLAUSES = [
    "Section 509 PPC - Criminal Intimidation",
    "Protection of Women Act 2006",
    "Domestic Violence Act 2013",
    "Section 354 PPC - Assault on Women",
]

SAMPLE_VOICE_URL = "https://example.com/generated-voice.mp3"
SAMPLE_VIDEO_URL = "https://example.com/generated-video.mp4"

class AIServices(ABC):
    """Transcription, enhancement and synthesis collaborators."""

    @abstractmethod
    async def transcribe(self, audio_url: str) -> str: ...

    @abstractmethod
    async def expand(self, text: str) -> str: ...

    @abstractmethod
    async def suggest_clauses(self, text: str) -> List[str]: ...

    @abstractmethod
    async def synthesize_voice(self, text: str) -> str: ...

    @abstractmethod
    async def synthesize_video(self, text: str) -> str: ...

class StubAIServices(AIServices):
    """Placeholder services: fixed delays, canned results."""

    DELAYS = {
        'transcribe': 2.0,
        'expand': 1.5,
        'suggest_clauses': 1.0,
        'synthesize_voice': 3.0,
        'synthesize_video': 5.0,
    }

    def __init__(self, delay_scale: float = 1.0):
        self.delay_scale = delay_scale

    async def _wait(self, operation: str) -> None:
        delay = self.DELAYS[operation] * self.delay_scale
        if delay > 0:
            await asyncio.sleep(delay)

    async def transcribe(self, audio_url: str) -> str:
        await self._wait('transcribe')
        return SAMPLE_TRANSCRIPT

    async def expand(self, text: str) -> str:
        await self._wait('expand')
        return f"{text}\n\n{EXPANSION_CONTEXT}"

    async def suggest_clauses(self, text: str) -> List[str]:
        await self._wait('suggest_clauses')
        return list(SUGGESTED_CLAUSES)

    async def synthesize_voice(self, text: str) -> str:
        await self._wait('synthesize_voice')
        return SAMPLE_VOICE_URL

    async def synthesize_video(self, text: str) -> str:
        await self._wait('synthesize_video')
        return SAMPLE_VIDEO_URL

class FunctionAIServices(AIServices):
    """Calls the AI edge functions deployed next to the database."""

    def __init__(self, database: Database, timeout: Optional[float] = 30.0):
        self.db = database
        self.timeout = timeout

    async def _call(self, function_name: str, body: Dict[str, Any], key: str) -> Any:
        try:
            response = await self.db.invoke_function(function_name, body, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Edge function {function_name} timed out after {self.timeout}s")
            raise AIServiceError(function_name, "timed out")
        except Exception as e:
            logger.error(f"Edge function {function_name} failed: {str(e)}")
            raise AIServiceError(function_name, str(e))

        if not isinstance(response, dict) or response.get(key) is None:
            logger.error(f"Edge function {function_name} returned no '{key}': {response}")
            raise AIServiceError(function_name, f"missing '{key}' in response")
        return response[key]

    async def transcribe(self, audio_url: str) -> str:
        return await self._call('transcribe', {'audio_url': audio_url}, 'text')

    async def expand(self, text: str) -> str:
        return await self._call('expand', {'text': text}, 'text')

    async def suggest_clauses(self, text: str) -> List[str]:
        clauses = await self._call('suggest-clauses', {'text': text}, 'clauses')
        return [str(clause) for clause in clauses]

    async def synthesize_voice(self, text: str) -> str:
        return await self._call('synthesize-voice', {'text': text}, 'url')

    async def synthesize_video(self, text: str) -> str:
        return await self._call('synthesize-video', {'text': text}, 'url')

def build_ai_services(settings: Settings, database: Database) -> AIServices:
    if settings.ai_backend == 'functions':
        logger.info("Using edge function AI services")
        return FunctionAIServices(database, timeout=settings.ai_function_timeout)
    logger.info(f"Using stub AI services (delay scale {settings.ai_stub_delay_scale})")
    return StubAIServices(delay_scale=settings.ai_stub_delay_scale)
