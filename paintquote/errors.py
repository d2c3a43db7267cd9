"""
Error taxonomy for the quote engine.

ValidationError      — malformed or contradictory input. Fatal: assembly aborts
                       before any output is produced.
MissingRateError     — a billable unit has no applicable catalog price.
                       Recoverable: the assembler turns it into a warning.
DuplicateNameError   — template name collides inside an organization.
TemplateNotFoundError — template id does not exist for the organization.
"""

from typing import Optional


class QuoteEngineError(Exception):
    """Base class for every error raised by the quote engine."""


class ValidationError(QuoteEngineError):
    pass


class MissingRateError(QuoteEngineError):
    """No catalog price (or labor estimate) could be found for a billable unit."""

    def __init__(self, message: str, room_id: Optional[str] = None,
                 surface_type: Optional[str] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.room_id = room_id
        self.surface_type = surface_type
        self.kind = kind


class DuplicateNameError(QuoteEngineError):
    def __init__(self, name: str, org_id: str):
        super().__init__(f"A quote template named '{name.strip()}' already exists")
        self.name = name
        self.org_id = org_id


class TemplateNotFoundError(QuoteEngineError):
    def __init__(self, template_id: str):
        super().__init__(f"Quote template not found: {template_id}")
        self.template_id = template_id
