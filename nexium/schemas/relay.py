"""Pydantic schemas for webhook relay responses."""

from pydantic import BaseModel, Field


class RelayResponse(BaseModel):
    message: str = "webhook forwarded successfully"
    status: int = Field(..., description="HTTP status returned by the destination.")
