from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone

T = TypeVar("T")

class ErrorInfo(BaseModel):
    msg: str
    code: Optional[str] = None
    field: Optional[str] = None

class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by analytics responses and error handlers."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: Optional[T] = None
    errors: List[ErrorInfo] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        serialization_alias="generatedAt",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with JSON-serializable values."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def ok(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, metadata=metadata or {})

    @classmethod
    def fail(cls, message: str, code: Optional[str] = None, field: Optional[str] = None) -> "ApiResponse[T]":
        return cls(success=False, errors=[ErrorInfo(msg=message, code=code, field=field)])
