from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


# Row count stored for a statement that failed.
FAILED_ROWS = "-"

# Row count stored when the driver cannot tell (DB-API rowcount of -1,
# e.g. sqlite3 for SELECT).
UNKNOWN_ROWS = "?"


class QueryRecord(BaseModel):
    """One instrumented database call."""
    model_config = ConfigDict(frozen=True)

    statement: str
    rows: Union[int, str] = Field(..., description="Affected/returned rows, '-' on failure, '?' when unknown")
    elapsed: float = Field(..., ge=0.0, description="Execution time in seconds")
    file: str = ""
    line: int = 0

    @property
    def failed(self) -> bool:
        return self.rows == FAILED_ROWS


class Attachment(BaseModel):
    """Named extra tab shown on the debug bar."""
    model_config = ConfigDict(frozen=True)

    name: str
    text: Optional[str] = None


class DiagnosticSnapshot(BaseModel):
    """
    Per-request diagnostic summary.

    Built once at the end of a request (or when a file report needs it) and
    never modified afterwards. Serialisable so it can be carried across a
    redirect.
    """
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    method: Optional[str] = None
    queries: List[QueryRecord] = Field(default_factory=list)
    query_time: float = 0.0
    peak_memory_script: int = Field(default=0, description="Peak bytes traced by tracemalloc")
    peak_memory_system: int = Field(default=0, description="Peak resident set size in bytes")
    request_headers: Dict[str, str] = Field(default_factory=dict)
    response_headers: Dict[str, str] = Field(default_factory=dict)
    variables: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    total_time: float = 0.0
    attachments: Dict[str, Attachment] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list, description="Inline error fragments routed in this request")

    @property
    def query_count(self) -> int:
        return len(self.queries)
