"""Main MCP Server implementation for Now Platform batch record operations."""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from nowmcp.config import load_connection_settings
from nowmcp.container import ServiceContainer, get_container, set_container
from nowmcp.models import CreateOperationInput, UpdateOperationInput

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = (
    "Tools for creating and updating Now Platform records in ordered batches. "
    "Sessions are cached per instance alias for 30 minutes and refreshed "
    "automatically once when a connection looks stale. When no instance is "
    "given, the configured default alias is used."
)

mcp = FastMCP("Now Platform MCP Server", instructions=SERVER_INSTRUCTIONS)


def _error_result(prefix: str, error: Exception) -> Dict[str, Any]:
    message = str(error) or type(error).__name__
    return {
        "success": False,
        "error": f"{prefix}: {message}",
        "error_type": type(error).__name__,
    }


@mcp.tool
async def batch_create_records(
    operations: List[CreateOperationInput],
    instance: Optional[str] = None,
    transaction: bool = True,
) -> Dict[str, Any]:
    """Create multiple records across one or more tables in a single batch.

    Operations run sequentially. Use ``saveAs`` to name an operation's
    resulting sys_id and reference it in later operations as ``${name}``
    inside string field values. Example: create a parent with
    saveAs="parent", then a child with caller_id set to "${parent}".

    This writes to the remote instance; review the operations first.

    Args:
        operations: Ordered create operations (table, data, optional saveAs).
        instance: Instance auth alias. Falls back to NOWMCP_AUTH_ALIAS.
        transaction: When true (default), stop at the first error.

    Returns:
        Dict[str, Any]: Batch result:
            - success: bool (no operation failed)
            - created_count / total
            - sys_ids: saveAs key -> created sys_id
            - errors: list of {operation_index, table, error}
            - execution_time_ms
    """
    try:
        result = await get_container().batch_runner.batch_create(
            instance,
            [op.to_operation() for op in operations],
            transactional=transaction,
        )
    except Exception as e:
        logger.warning("batch_create_records failed: %s", e)
        return _error_result("Error in batch create", e)
    return result.to_dict()


@mcp.tool
async def batch_update_records(
    updates: List[UpdateOperationInput],
    instance: Optional[str] = None,
    stop_on_error: bool = False,
) -> Dict[str, Any]:
    """Update multiple records across one or more tables in a single batch.

    Each update names a table, the record sys_id, and the fields to write.
    This modifies records on the remote instance.

    Args:
        updates: Ordered update operations (table, sysId, data).
        instance: Instance auth alias. Falls back to NOWMCP_AUTH_ALIAS.
        stop_on_error: When true, stop at the first error (default false).

    Returns:
        Dict[str, Any]: Batch result with success, updated_count, total,
        errors (each with operation_index, table, sys_id, error) and
        execution_time_ms.
    """
    try:
        result = await get_container().batch_runner.batch_update(
            instance,
            [update.to_operation() for update in updates],
            stop_on_error=stop_on_error,
        )
    except Exception as e:
        logger.warning("batch_update_records failed: %s", e)
        return _error_result("Error in batch update", e)
    return result.to_dict()


@mcp.tool
async def reset_instance_session(instance: Optional[str] = None) -> Dict[str, Any]:
    """Drop the cached session for an instance so the next call logs in again.

    Args:
        instance: Instance auth alias. Falls back to NOWMCP_AUTH_ALIAS.
    """
    try:
        container = get_container()
        alias = container.connections.resolve_alias(instance)
        evicted = container.connections.evict(alias)
    except Exception as e:
        return _error_result("Error resetting session", e)
    return {"success": True, "instance": alias, "evicted": evicted}


def _install_shutdown_lifespan(container: ServiceContainer) -> None:
    """Attach a FastMCP lifespan that closes the container on server shutdown.

    Any lifespan already installed is chained inside it.
    """
    target = getattr(mcp, "_mcp_server", mcp)
    existing_lifespan = getattr(target, "lifespan", None)

    @asynccontextmanager
    async def shutdown_lifespan(server: FastMCP):  # type: ignore[override]
        try:
            if existing_lifespan is not None:
                async with existing_lifespan(server) as context:
                    yield context
            else:
                yield {}
        finally:
            await container.aclose()
            logger.info("Closed remote client and dropped cached sessions")

    target.lifespan = shutdown_lifespan  # type: ignore[attr-defined]


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Now Platform MCP server for batch record operations."
    )
    parser.add_argument(
        "--transport",
        dest="transport",
        choices=["stdio", "http", "sse"],
        help="Transport to use for the MCP server (default: stdio).",
    )
    parser.add_argument(
        "--host",
        dest="host",
        help="Host/interface for HTTP transport (default 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        help="Port for HTTP transport (default 8000).",
    )
    parser.add_argument(
        "--path",
        dest="path",
        help="Endpoint path for HTTP transport (default /mcp).",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for the server (default INFO).",
    )
    parser.add_argument(
        "--instance",
        dest="instance",
        help="Default instance auth alias (overrides NOWMCP_AUTH_ALIAS).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Start the now-mcp server."""

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    # stdout carries the stdio transport
    logging.basicConfig(
        level=getattr(logging, args.log_level or "INFO"),
        stream=sys.stderr,
    )

    if args.instance:
        set_container(
            ServiceContainer(_settings=load_connection_settings(default_alias=args.instance))
        )
    container = get_container()
    _install_shutdown_lifespan(container)

    settings = container.settings
    logger.info(
        "Starting now-mcp (default alias: %s, session TTL: %ss)",
        settings.default_alias or "<none>",
        int(settings.session_ttl_seconds),
    )

    try:
        run_kwargs: Dict[str, Any] = {}

        transport = args.transport or "stdio"
        run_kwargs["transport"] = transport

        if args.log_level:
            run_kwargs["log_level"] = args.log_level

        # Only pass host/port/path when using HTTP/SSE transports
        if transport != "stdio":
            if args.host:
                run_kwargs["host"] = args.host
            if args.port:
                run_kwargs["port"] = args.port
            if args.path:
                run_kwargs["path"] = args.path

        mcp.run(**run_kwargs)
    except KeyboardInterrupt:
        logger.info("now-mcp interrupted by user")


if __name__ == "__main__":
    main()
