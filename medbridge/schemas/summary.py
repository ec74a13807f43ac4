"""Medical summary schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from medbridge.schemas.message import LanguageCode, SenderRole


class MedicalSummaryPayload(BaseModel):
    """Strict shape expected back from the model; anything else fails closed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symptoms: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    follow_up_actions: list[str] = Field(default_factory=list, alias="followUpActions")


class MedicalSummary(BaseModel):
    symptoms: list[str]
    medications: list[str]
    follow_up_actions: list[str]
    timestamp: datetime
    message_count: int


class SummaryRequest(BaseModel):
    viewer_role: SenderRole = "doctor"
    patient_language: LanguageCode = "en"
