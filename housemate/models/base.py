from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

M = TypeVar("M", bound="StoredModel")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredModel(BaseModel):
    """A model persisted as one record; `id` is absent until the store assigns it."""

    id: Optional[str] = Field(default=None, validation_alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """JSON-safe dict for the record store: Decimals as strings, dates as ISO."""
        record = self.model_dump(mode="json")
        if record.get("id") is None:
            record.pop("id", None)
        return record

    @classmethod
    def from_record(cls: Type[M], record: Dict[str, Any]) -> M:
        return cls.model_validate(record)
