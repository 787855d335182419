"""Query options accepted by TabularStore.query."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class QueryOptions(BaseModel):
    """
    Filter, sort and pagination options for a store query.

    Filter values may be plain values (equality), callables (predicate on
    the field value) or compiled regular expressions (searched against
    string values).
    """

    model_config = ConfigDict(extra="forbid")

    filter: Optional[Dict[str, Any]] = None
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.ASC
    offset: int = Field(ge=0, default=0)
    limit: Optional[int] = Field(ge=0, default=None)   # None = all remaining
