from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Request(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    uri: str = "/"
    headers: dict[str, str] = Field(default_factory=dict)
    session: dict[str, Any] = Field(default_factory=dict)
    form_params: dict[str, Any] = Field(default_factory=dict)
    multipart_params: dict[str, Any] = Field(default_factory=dict)
    body: Any = None

    @field_validator("method")
    @classmethod
    def lower_method(cls, value: str) -> str:
        return value.lower()

    @field_validator("headers")
    @classmethod
    def lower_header_names(cls, value: dict[str, str]) -> dict[str, str]:
        return {name.lower(): header for name, header in value.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class Response(BaseModel):
    """Outgoing response.

    ``session`` is ``None`` both when the handler left it out and when it
    set it to ``None`` explicitly; use ``sets_session`` to tell them apart.
    """

    model_config = ConfigDict(frozen=True)

    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    session: Optional[dict[str, Any]] = None
    body: Any = None

    @property
    def sets_session(self) -> bool:
        return "session" in self.model_fields_set
