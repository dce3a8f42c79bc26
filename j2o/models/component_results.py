"""Result model returned by migration components."""

from typing import Any, Self

from pydantic import BaseModel, Field


class ComponentResult(BaseModel):
    """Outcome of one migration component run.

    ``details`` carries the component specific counters, ``warnings`` the
    non-fatal problems worth surfacing to the operator.
    """

    success: bool = False
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dry_run: bool = False
    success_count: int = 0
    failed_count: int = 0
    total_count: int = 0

    @classmethod
    def failure(cls, message: str, *, dry_run: bool = False) -> Self:
        """Build the result of a component that could not run at all."""
        return cls(success=False, message=message, errors=[message], dry_run=dry_run)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)
