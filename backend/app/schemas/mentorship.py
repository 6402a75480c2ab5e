# app/schemas/mentorship.py
"""
Pydantic schemas for mentorship endpoints.

Fields are deliberately loose (plain str/int/list); business rules such as
minimum bio length, the duration enum, or capacity bounds are enforced by
app.services.mentorship so the HTTP and WebSocket paths report the same
ValidationError codes.
"""
from pydantic import BaseModel, Field
from typing import Optional, List

class BecomeMentorIn(BaseModel):
    """Mentor profile submitted on "become a mentor" (also used to reactivate)."""
    bio: str = ""
    expertiseAreas: List[str] = Field(default_factory=list)  # Non-empty list of expertise tags
    yearsOfExperience: int = 0
    maxMentees: Optional[int] = None  # Defaults to settings.default_max_mentees
    preferredCommunication: str = "chat"
    availability: str = "available"  # available / busy / unavailable
    mentoringStyle: Optional[str] = None

class RequestMentorshipIn(BaseModel):
    mentorId: int
    message: Optional[str] = None
    goals: Optional[str] = None
    duration: str = "3_months"  # 1_month / 3_months / 6_months / 1_year / ongoing

class RespondRequestIn(BaseModel):
    requestId: int
    action: str  # "accept" or "decline"

class WithdrawRequestIn(BaseModel):
    requestId: int

class EndMentorshipIn(BaseModel):
    mentorshipId: int
    reason: Optional[str] = None

class PreferencesIn(BaseModel):
    """Mentee matching preferences (upserted, one row per user)."""
    preferredSkills: List[str] = Field(default_factory=list)
    careerStage: Optional[str] = None
    preferredMentorExperience: Optional[int] = Field(default=None, ge=0)
    preferredCommunication: Optional[str] = None
    preferredMeetingFrequency: Optional[str] = None
    specificGoals: Optional[str] = None
