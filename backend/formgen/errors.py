"""Errors raised by the AI field generator. Each carries the HTTP status it maps to."""

from typing import Optional


class FieldGenerationError(Exception):
    status_code = 500
    message = "Failed to generate form fields"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class GeneratorNotConfigured(FieldGenerationError):
    message = "AI service not configured"


class RateLimited(FieldGenerationError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."


class CreditsExhausted(FieldGenerationError):
    status_code = 402
    message = "AI credits exhausted. Please add credits to continue."


class InvalidAIResponse(FieldGenerationError):
    message = "Invalid AI response"


class GeneratorUnavailable(FieldGenerationError):
    pass
