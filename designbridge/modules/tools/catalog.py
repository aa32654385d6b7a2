from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, conint, field_validator

DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(__file__), "catalog.yaml")


class ToolSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str
    input_schema: Dict[str, Any] = Field(alias="inputSchema")

    @field_validator("input_schema")
    @classmethod
    def schema_must_be_object(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if v.get("type") != "object":
            raise ValueError("inputSchema type must be 'object'")
        return v


class ToolCatalog(BaseModel):
    version: conint(ge=1)
    tools: List[ToolSpec] = Field(default_factory=list)

    @field_validator("tools")
    @classmethod
    def names_must_be_unique(cls, v: List[ToolSpec]) -> List[ToolSpec]:
        seen = set()
        for tool in v:
            if tool.name in seen:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            seen.add(tool.name)
        return v

    def get(self, name: str) -> Optional[ToolSpec]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    @property
    def names(self) -> List[str]:
        return [tool.name for tool in self.tools]


def load_catalog(path: Optional[str] = None) -> ToolCatalog:
    """Load the tool catalog.

    Lookup order:
    - explicit path argument
    - DESIGNBRIDGE_TOOL_CATALOG
    - the catalog shipped with the package
    A missing or invalid file raises; there is no built-in fallback.
    """
    path = path or os.getenv("DESIGNBRIDGE_TOOL_CATALOG") or DEFAULT_CATALOG_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return ToolCatalog(**data)
