# app/schemas/message.py
"""
Pydantic schemas for direct messaging endpoints.
"""
from pydantic import BaseModel
from typing import Optional

class SendMessageIn(BaseModel):
    receiverId: Optional[int] = None
    content: str = ""
    attachmentUrl: Optional[str] = None  # Reference to an already uploaded file

class MarkReadIn(BaseModel):
    senderId: int  # Mark every unread message from this user as read
