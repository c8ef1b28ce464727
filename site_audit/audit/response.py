"""
The record produced by one audit execution.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..core.policy import Outcome, Policy


class AuditResponse(BaseModel):
    """Immutable result of running one policy: outcome plus token snapshot."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    policy: Policy
    outcome: Outcome
    tokens: Dict[str, Any]

    @property
    def is_successful(self) -> bool:
        return self.outcome in (Outcome.SUCCESS, Outcome.WARNING)

    @property
    def is_failure(self) -> bool:
        return self.outcome is Outcome.FAILURE

    @property
    def has_error(self) -> bool:
        return self.outcome is Outcome.ERROR

    @property
    def is_not_applicable(self) -> bool:
        return self.outcome is Outcome.NOT_APPLICABLE

    @property
    def has_warning(self) -> bool:
        return self.outcome is Outcome.WARNING

    @property
    def exception(self) -> Optional[str]:
        return self.tokens.get("exception")

    @property
    def exception_type(self) -> Optional[str]:
        return self.tokens.get("exception_type")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy.name,
            "title": self.policy.title,
            "outcome": self.outcome.value,
            "tokens": self.tokens,
        }
