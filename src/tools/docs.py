"""Context7 documentation tools.

Both tools require user confirmation: the registry declares them without a
function and these coroutines are looked up from the executions table once
the call is approved.  They return plain strings the model can quote back to
the user, and turn every upstream problem into a descriptive message.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.services.context7_client import Context7APIError
from src.tools.registry import ToolContext

logger = logging.getLogger(__name__)

# Context7 answers with far too little context below this many tokens.
MIN_TOKENS = 5000
DEFAULT_TOKENS = 5000

_FOLDERS_MARKER = "?folders="
_EMPTY_BODIES = frozenset({"", "No content available", "No context data available"})


class ResolveLibraryIdArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    library_name: str = Field(
        ..., alias="libraryName", min_length=1, description="Library name to search for",
    )


class GetLibraryDocsArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    library_id: str = Field(
        ...,
        alias="libraryId",
        min_length=1,
        description="Context7-compatible library ID (e.g., 'mongodb/docs', 'vercel/nextjs')",
    )
    topic: str | None = Field(
        None, description="Topic to focus documentation on (e.g., 'hooks', 'routing')",
    )
    tokens: float | None = Field(
        None,
        description=f"Maximum number of tokens of documentation to retrieve (default: {DEFAULT_TOKENS})",
    )


def _format_result(result: dict[str, Any]) -> str:
    description = result.get("description") or "No description available"
    return f"Title: {result.get('title')}\nID: {result.get('id')}\nDescription: {description}"


def split_library_id(library_id: str) -> tuple[str, str]:
    """Split ``"/org/lib?folders=a,b"`` into ``("org/lib", "a,b")``.

    A single leading ``/`` is stripped; the folders part is empty when the id
    carries none.
    """
    path, _, folders = library_id.partition(_FOLDERS_MARKER)
    if path.startswith("/"):
        path = path[1:]
    return path, folders


async def resolve_library_id(ctx: ToolContext, args: ResolveLibraryIdArgs) -> str:
    name = args.library_name
    logger.info("Resolving library ID for %s", name)
    try:
        results = await ctx.docs.search_libraries(name)
    except Context7APIError as exc:
        return f"Failed to search for {name}: HTTP {exc.status_code}"
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error resolving library ID for %s: %s", name, exc)
        return f"Error searching for library '{name}': {exc}"

    if not results:
        return f"No documentation libraries found matching '{name}'"

    formatted = "\n\n".join(_format_result(r) for r in results)
    return f"Available libraries for '{name}':\n\n{formatted}"


async def get_library_docs(ctx: ToolContext, args: GetLibraryDocsArgs) -> str:
    library_id = args.library_id
    logger.info("Fetching documentation for %s", library_id)

    path, folders = split_library_id(library_id)
    tokens = int(max(args.tokens if args.tokens is not None else DEFAULT_TOKENS, MIN_TOKENS))

    try:
        text = await ctx.docs.fetch_documentation(
            path, tokens=tokens, topic=args.topic or None, folders=folders or None,
        )
    except Context7APIError as exc:
        return f"Failed to fetch documentation for {library_id}: HTTP {exc.status_code}"
    except httpx.HTTPError as exc:
        logger.error("Error fetching documentation for %s: %s", library_id, exc)
        return f"Error fetching documentation for '{library_id}': {exc}"

    if text is None or text in _EMPTY_BODIES:
        return f"No documentation available for {library_id}"
    return text
