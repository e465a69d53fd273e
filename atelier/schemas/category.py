from pydantic import BaseModel, Field, HttpUrl, model_validator
from datetime import datetime
from typing import List, Literal, Optional


class CategoryCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    image_url: Optional[HttpUrl] = None
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    image_url: Optional[HttpUrl] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field in ("name", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class CategoryBulkAction(BaseModel):
    ids: List[int] = Field(min_length=1)
    action: Literal["activate", "deactivate", "delete"]


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    product_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BulkResult(BaseModel):
    updated: List[int] = []
    skipped: List[int] = []
