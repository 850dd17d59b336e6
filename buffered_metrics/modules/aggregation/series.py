"""Serialized time series handed from the aggregator to a reporter."""

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class MetricType(str, Enum):
    """Series types understood by the metrics API."""

    GAUGE = "gauge"
    COUNT = "count"
    DISTRIBUTION = "distribution"


class SerializedSeries(BaseModel):
    """One series ready for submission.

    Attributes:
        metric: Full metric name (e.g., "myapp.request.latency.avg")
        points: ``[[timestamp_seconds, value]]``; distributions carry
            ``[[timestamp_seconds, [values...]], ...]``
        type: Series type (gauge, count, distribution)
        host: Reporting host name, "" when unset
        tags: Tags in emission order
    """

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    metric: str
    points: List[List[Any]]
    type: MetricType
    host: str = ""
    tags: List[str] = Field(default_factory=list)

    def with_default_tags(self, default_tags: List[str]) -> "SerializedSeries":
        """Return a copy with ``default_tags`` placed before this series' tags."""
        return self.model_copy(update={"tags": list(default_tags) + list(self.tags)})

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict for the request body."""
        return self.model_dump()
