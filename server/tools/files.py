# server/tools/files.py
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from fastmcp import FastMCP

from app.services.tree import DEPTH_CEILING


def _first(value: Any) -> Any:
    # Query strings and form posts may repeat a key; the first value wins
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


class FsWriteIn(BaseModel):
    path: str = Field(..., description="Path relative to the root directory")
    content: str = Field("", description="UTF-8 text content to write")

    @field_validator("path", "content", mode="before")
    @classmethod
    def _scalar(cls, v):
        return _first(v)


class FsReadIn(BaseModel):
    path: str = Field(..., description="Path relative to the root directory")

    @field_validator("path", mode="before")
    @classmethod
    def _scalar(cls, v):
        return _first(v)


class FsTreeIn(BaseModel):
    action: str = Field("dirList", description="Listing action; only 'dirList' is supported")
    path: str = Field("", description="Start directory, optionally prefixed by the root label")
    hideDirs: List[str] = Field(default_factory=list, description="Wildcard patterns of directory names to hide")
    maxDepth: Optional[int] = Field(None, description=f"Maximum depth (clamped to 0..{DEPTH_CEILING})")

    @field_validator("action", "maxDepth", mode="before")
    @classmethod
    def _scalar(cls, v, info: ValidationInfo):
        v = _first(v)
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("path", mode="before")
    @classmethod
    def _path_or_empty(cls, v):
        v = _first(v)
        return "" if v is None else v

    @field_validator("hideDirs", mode="before")
    @classmethod
    def _as_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return list(v)


def register_file_tools(mcp: FastMCP, fs_service, tree_service):
    """
    Very thin tool adapters:
    - validate/deserialize inputs (Pydantic)
    - call the service (business logic + security)
    - return the result
    """

    @mcp.tool(name="fs_write", description="Write a text file under the root directory")
    def fs_write(input: FsWriteIn) -> str:
        return fs_service.write_text(input.path, input.content)

    @mcp.tool(name="fs_read", description="Read a text file under the root directory")
    def fs_read(input: FsReadIn) -> str:
        return fs_service.read_text(input.path)

    @mcp.tool(name="fs_tree", description="List directories under the root directory, depth-limited")
    def fs_tree(input: FsTreeIn) -> list:
        depth = DEPTH_CEILING if input.maxDepth is None else input.maxDepth
        nodes = tree_service.list_dirs(input.path, input.hideDirs, depth)
        return [n.to_dict() for n in nodes]
