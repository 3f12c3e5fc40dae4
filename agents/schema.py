"""Pydantic schemas for the structured feedback summary."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class Theme(BaseModel):
    """One recurring theme across the summarized feedback."""

    model_config = ConfigDict(extra="allow")

    theme: StrictStr = Field(description="Short theme name")
    summary: StrictStr = Field(description="Under 25 words")
    sentiment: Literal["positive", "neutral", "negative", "mixed"]
    urgency: Literal["low", "medium", "high"]
    evidence_quote: StrictStr = Field(description="One verbatim quote from the feedback, never a list")


class SummaryResult(BaseModel):
    """Structured summary returned by the model."""

    model_config = ConfigDict(extra="allow")

    date_range: StrictStr
    total_items: StrictInt = Field(ge=0)
    top_themes: List[Theme] = Field(min_length=3, max_length=3)


# Prompt-side rendering of the same shape; kept in sync with the models above.
SUMMARY_SCHEMA = """{
  "date_range": "string",
  "total_items": number,
  "top_themes": [
    {
      "theme": "string",
      "summary": "string",
      "sentiment": "positive|neutral|negative|mixed",
      "urgency": "low|medium|high",
      "evidence_quote": "string"
    }
  ]
}"""
