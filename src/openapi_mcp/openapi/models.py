from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_TIMEOUT

__all__ = [
    "OpenAPISpec",
    "Operation",
    "SchemaKind",
    "ParameterSchema",
    "ConcreteParameter",
    "ParameterRef",
    "ParameterDef",
    "EndpointKey",
    "CollectedOperation",
    "InputField",
    "OperationContext",
    "TextContent",
    "ToolResult",
    "ToolHandler",
    "OpenAPITool",
    "ToolOptions",
    "BuildReport",
]

OpenAPISpec = Dict[str, Any]
Operation = Dict[str, Any]


class SchemaKind(str, Enum):
    """Primitive type tags recognized in parameter and body schemas.

    Anything else, including a missing tag, is treated as ``STRING``.
    """

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"

    @classmethod
    def from_tag(cls, tag: Any) -> "SchemaKind":
        try:
            return cls(tag)
        except ValueError:
            return cls.STRING


# --------------------------------------------------------------------------
# Parameters: a reference or a concrete definition, never both downstream
# --------------------------------------------------------------------------


class ParameterSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    enum: Optional[List[Any]] = None

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.from_tag(self.type)


class ConcreteParameter(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str
    location: Literal["query", "path", "header", "cookie"] = Field(alias="in")
    description: Optional[str] = None
    required: bool = False
    param_schema: ParameterSchema = Field(default_factory=ParameterSchema, alias="schema")


class ParameterRef(BaseModel):
    """``{"$ref": "#/parameters/x", ...}``; sibling keys override the target."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ref: str = Field(alias="$ref")
    overrides: Dict[str, Any] = Field(default_factory=dict)


ParameterDef = Union[ConcreteParameter, ParameterRef]


# --------------------------------------------------------------------------
# Collection and naming
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class EndpointKey:
    """``(method, normalized path)``; renders as ``get:/messages``."""

    method: str
    path: str

    def __str__(self) -> str:
        return f"{self.method}:{self.path}"


@dataclass(frozen=True)
class CollectedOperation:
    key: EndpointKey
    operation: Operation
    raw_path: str = ""

    @property
    def method(self) -> str:
        return self.key.method

    @property
    def path(self) -> str:
        return self.key.path


@dataclass(frozen=True)
class InputField:
    """One field of a tool's input schema, before it becomes a pydantic field."""

    name: str
    kind: SchemaKind = SchemaKind.STRING
    enum: tuple[str, ...] = ()
    description: Optional[str] = None
    required: bool = False


class OperationContext(BaseModel):
    """Everything needed to build the schema and handler of one tool."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    method: str
    path: str
    path_params: List[str] = Field(default_factory=list)
    query_params: List[str] = Field(default_factory=list)
    body_params: List[str] = Field(default_factory=list)
    input_fields: List[InputField] = Field(default_factory=list)

    @property
    def wants_body(self) -> bool:
        return bool(self.body_params)

    @property
    def key(self) -> EndpointKey:
        return EndpointKey(self.method, self.path)


# --------------------------------------------------------------------------
# Invocation results
# --------------------------------------------------------------------------


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """Uniform outcome of a tool call: one text block, optionally flagged."""

    content: List[TextContent]
    is_error: Optional[bool] = None

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text=text)], is_error=True)

    @property
    def first_text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"content": [c.model_dump() for c in self.content]}
        if self.is_error:
            out["isError"] = True
        return out


ToolHandler = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


@dataclass(frozen=True)
class OpenAPITool:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    method: str = ""
    path: str = ""

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    async def __call__(self, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        return await self.handler(args or {})


# --------------------------------------------------------------------------
# Options and report
# --------------------------------------------------------------------------


class ToolOptions(BaseModel):
    include_endpoints: List[str] = Field(default_factory=list)
    exclude_endpoints: List[str] = Field(default_factory=list)
    tool_prefix: str = ""
    api_base_url: str = "http://127.0.0.1:3000"
    timeout: float = DEFAULT_TIMEOUT
    convert_html_to_markdown: bool = True


class BuildReport(BaseModel):
    title: Optional[str] = None
    total_ops: int = 0
    registered_tools: int = 0
    filtered: List[str] = Field(default_factory=list)
    skipped_paths: List[str] = Field(default_factory=list)
    dropped_params: List[str] = Field(default_factory=list)
    tool_names: List[str] = Field(default_factory=list)
