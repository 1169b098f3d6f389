import argparse
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from adapters.base import AdapterError
from adapters.factory import create_adapter
from api.routes import SERVER_VERSION, router
from gateway.tools import ToolDispatcher
from utils.audit import JsonlAuditSink, resolve_log_dir
from utils.config import ConfigurationError, load_settings

logger = logging.getLogger(__name__)


def create_app(dispatcher: ToolDispatcher, connect_on_startup: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if connect_on_startup:
            try:
                dispatcher.adapter.connect()
            except AdapterError as exc:
                # already audited by the adapter; tools report NotConnected until restart
                logger.error("%s. Server will start in disconnected mode.", exc)
        yield
        dispatcher.adapter.close()

    app = FastAPI(
        title="Database MCP Gateway",
        version=SERVER_VERSION,
        description="Uniform tool-call access to MySQL, PostgreSQL, SQLite, SQL Server and Oracle",
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.include_router(router)
    return app


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve a database behind the MCP tool-call interface.")
    parser.add_argument("--host", default=None, help="Bind address (default: MCP_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: MCP_PORT or 8765)")
    parser.add_argument("--env-file", default=".env")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as exc:
        logger.error("Error: %s", exc)
        JsonlAuditSink(resolve_log_dir(os.getenv("MCP_LOG_PATH"))).record("system", duration_ms=0, success=False, error=str(exc))
        return 1

    audit_sink = JsonlAuditSink(resolve_log_dir(settings.log_path))
    try:
        adapter = create_adapter(settings.database_url, audit_sink=audit_sink)
    except AdapterError as exc:
        message = f"Configuration error: {exc}"
        logger.error(message)
        audit_sink.record("system", duration_ms=0, success=False, error=message)
        return 1

    if settings.read_only:
        logger.info("Starting in READ-ONLY mode. Write operations are disabled.")
    audit_sink.record("system", duration_ms=0, success=True, result_summary="Server starting")

    dispatcher = ToolDispatcher(adapter, audit_sink=audit_sink, read_only=settings.read_only)
    uvicorn.run(
        create_app(dispatcher),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level="info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
