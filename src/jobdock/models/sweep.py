"""Pydantic models for archival sweep reports."""

from datetime import datetime

from pydantic import BaseModel, Field


class TenantSweepResult(BaseModel):
    tenant_id: str
    archived_count: int = 0
    deleted_count: int = 0
    errors: list[str] = Field(default_factory=list)


class SweepReport(BaseModel):
    archived_count: int = 0
    deleted_count: int = 0
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = False
    tenants_processed: int = 0
    started_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_results(
        cls,
        results: list[TenantSweepResult],
        *,
        dry_run: bool,
        started_at: datetime,
        finished_at: datetime,
    ) -> "SweepReport":
        return cls(
            archived_count=sum(r.archived_count for r in results),
            deleted_count=sum(r.deleted_count for r in results),
            errors=[e for r in results for e in r.errors],
            dry_run=dry_run,
            tenants_processed=len(results),
            started_at=started_at,
            finished_at=finished_at,
        )
