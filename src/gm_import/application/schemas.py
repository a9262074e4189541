"""Pydantic schemas for the import API."""

from pydantic import BaseModel, Field, model_validator


class ImportRequest(BaseModel):
    url: str | None = Field(None, max_length=2000)
    html: str | None = Field(None, description="Pasted page HTML; disables pagination")
    game_id: int = Field(..., gt=0)
    limit: int = Field(50, ge=1)
    ignore_existing: bool = Field(
        False, description="Merge without the seller's existing titles (DB dedup still applies)"
    )

    @model_validator(mode="after")
    def require_source(self) -> "ImportRequest":
        if self.html:
            return self
        if not self.url or not self.url.lower().startswith(("http://", "https://")):
            raise ValueError("Provide an http(s) url or the page html")
        return self


class CreatedItem(BaseModel):
    id: int
    title: str
    price: int
    photo_url: str


class ImportErrorEntry(BaseModel):
    title: str
    image_url: str
    error: str


class ImportStats(BaseModel):
    rejected_invalid: int = 0
    image_duplicates: int = 0
    used_alt: int = 0
    skip_existing: int = 0
    skip_in_run: int = 0
    db_dup: int = 0
    pages: int = 0


class ImportResponse(BaseModel):
    total_found: int
    processed: int
    created_count: int
    created: list[CreatedItem]
    errors: list[ImportErrorEntry]
    stats: ImportStats
