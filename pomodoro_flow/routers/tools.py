"""
Pomodoro tools over HTTP: list them, or call one by name with a JSON object
of arguments. Same tools and replies as the MCP server.
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from pomodoro_flow.tools import TOOLS, call_tool

router = APIRouter(prefix="/api", tags=["tools"])


class ToolInfo(BaseModel):
    name: str
    description: str
    input_schema: dict


class ToolReply(BaseModel):
    text: str


@router.get("/tools", response_model=list[ToolInfo])
def list_tools():
    """Names, descriptions and JSON schemas of the available tools."""
    return [
        ToolInfo(name=spec.name, description=spec.description, input_schema=spec.input_schema)
        for spec in TOOLS.values()
    ]


@router.post("/tools/{name}", response_model=ToolReply)
def run_tool(name: str, arguments: Optional[dict[str, Any]] = Body(default=None)):
    """Run one tool. Failures come back as HTTP errors with the tool's message."""
    result = call_tool(name, arguments)
    if result.is_error:
        raise HTTPException(status_code=result.status_code, detail=result.text)
    return ToolReply(text=result.text)
