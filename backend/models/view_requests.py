from pydantic import BaseModel, Field, field_validator


class SearchRequest(BaseModel):
    text: str = ""


class SortRequest(BaseModel):
    column: str = Field(..., min_length=1)


class PageRequest(BaseModel):
    page: int


class PageSizeRequest(BaseModel):
    page_size: int = Field(..., ge=1)


class FilterRequest(BaseModel):
    column: str = Field(..., min_length=1)
    # None, "" or "All" removes the filter
    value: str | None = None


class ApiKeyRequest(BaseModel):
    api_key: str
    base_id: str | None = None

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("API key must not be empty")
        return cleaned
