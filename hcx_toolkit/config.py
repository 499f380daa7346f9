from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Environment
    ENVIRONMENT: str = "dev"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # HTTP
    CORS_ORIGINS: str = "http://localhost:8501,http://localhost:3000"

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "hcx-toolkit"

    # LLM
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_DEFAULT_MODEL: str = "gpt-3.5-turbo"
    GOOGLE_PROJECT_ID: str = ""
    GOOGLE_LOCATION_ID: str = ""
    GEMINI_MODEL_NAME: str = "gemini-1.5-pro"
    LLM_TEMPERATURE: float = 0.0
    LLM_MAX_OUTPUT_TOKENS: int = 8192

    # Insurance plan converter
    INSURANCEPLAN_PROFILE_URL: str = ""
    EXCEL_SAMPLE_ROWS: int = 5

    # HCX gateway
    NHCX_BASE_URL: str = "https://apisbx.abdm.gov.in/hcx/v1"
    SESSION_API_URL: str = "https://dev.abdm.gov.in/api/hiecm/gateway/v3/sessions"
    ABDM_CLIENT_ID: str = ""
    ABDM_CLIENT_SECRET: str = ""
    ABDM_GRANT_TYPE: str = "client_credentials"
    HCX_TIMEOUT_SECONDS: int = 15
    HCX_WORKFLOW_ID: str = "1"

    # Participants
    PROVIDER_CODE: str = "1000004178@hcx"
    PAYER_CODE: str = "1000004161@hcx"
    HCX_BEN_ABHA_ID: str = ""

    # FHIR profiles
    NRCES_PROFILE_BASE: str = "https://nrces.in/ndhm/fhir/r4/StructureDefinition"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
