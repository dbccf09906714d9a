from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

class ReportStatus(str, Enum):
    RECORDING = 'recording'
    TRANSCRIBING = 'transcribing'
    REVIEWING = 'reviewing'
    REVIEWED = 'reviewed'
    GENERATING = 'generating'
    READY = 'ready'
    SHARED = 'shared'

class Report(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra='ignore')

    id: str
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    expanded_transcript: Optional[str] = None
    legal_clauses: Optional[List[str]] = None
    generated_voice_url: Optional[str] = None
    generated_video_url: Optional[str] = None
    share_token: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    status: ReportStatus = ReportStatus.RECORDING

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

# Fields a caller may change after creation
UPDATABLE_FIELDS = frozenset(Report.model_fields) - {'id', 'created_at', 'expires_at'}

class NGO(BaseModel):
    model_config = ConfigDict(extra='ignore')

    kind: Literal['ngo'] = 'ngo'
    id: str
    name: str
    description: str = ''
    location: str
    expertise: List[str] = Field(default_factory=list)
    contact_email: str = ''
    phone_number: Optional[str] = None
    verified: bool = False
    rating: float = 0.0

    @property
    def skills(self) -> List[str]:
        return self.expertise

class Lawyer(BaseModel):
    model_config = ConfigDict(extra='ignore')

    kind: Literal['lawyer'] = 'lawyer'
    id: str
    name: str
    specialization: List[str] = Field(default_factory=list)
    location: str
    experience: int = 0
    contact_email: str = ''
    phone_number: Optional[str] = None
    verified: bool = False
    rating: float = 0.0
    bar_council: str = ''

    @property
    def skills(self) -> List[str]:
        return self.specialization

Contact = Annotated[Union[NGO, Lawyer], Field(discriminator='kind')]
contact_adapter = TypeAdapter(Contact)

class ShareLink(BaseModel):
    report_id: str
    token: str
    url: str
    expires_at: datetime
