from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    # Supabase settings
    supabase_url: str = ''
    supabase_key: str = ''
    audio_bucket: str = 'audio'

    # Report settings
    report_ttl_hours: int = 72
    enforce_report_expiry: bool = True
    public_base_url: str = 'http://localhost:8000'

    # AI services: "stub" or "functions"
    ai_backend: str = 'stub'
    ai_stub_delay_scale: float = 1.0
    ai_function_timeout: float = 30.0

    # Directory settings
    directory_sample_fallback: bool = True

    # Twilio settings
    twilio_account_sid: str = ''
    twilio_auth_token: str = ''
    twilio_phone_number: str = ''

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

def get_settings() -> Settings:
    return Settings()
