#!/usr/bin/env python3
"""
designbridge - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Creates the command broker
3. Runs the executor-facing HTTP API and the MCP stdio server on one event loop

All queueing and correlation logic is in the broker module.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from designbridge import __version__
from designbridge.config import APIConfig, ConfigProvider, EnvConfigProvider
from designbridge.logging_config import configure_logging, get_logging_config
from designbridge.modules.api import (
    AckResponse,
    CommandResult,
    HealthResponse,
    PolledCommandResponse,
)
from designbridge.modules.broker import CommandBroker, CommandOutcome
from designbridge.modules.tools import ToolBridge, load_catalog

logger = logging.getLogger("designbridge.main")


def get_broker(request: Request) -> CommandBroker:
    """Dependency returning the broker owned by the app."""
    return request.app.state.broker


def create_app(broker: CommandBroker, api_config: Optional[APIConfig] = None) -> FastAPI:
    """
    Build the executor-facing HTTP application around a broker.

    The broker's timeout sweep runs for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting designbridge HTTP API...")
        broker.start()
        yield
        logger.info("Shutting down designbridge HTTP API...")
        await broker.stop()

    app = FastAPI(
        title="designbridge",
        description="Command broker between MCP tool calls and a polling design plugin",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.broker = broker

    # The plugin UI runs in a sandboxed iframe with a null origin.
    origins = api_config.cors_origins if api_config else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Executor Endpoints

    @app.get(
        "/commands/poll",
        response_model=PolledCommandResponse,
        responses={204: {"description": "No pending commands"}},
    )
    async def poll_command(broker: CommandBroker = Depends(get_broker)):
        """
        Return the oldest pending command without removing it.

        Returns:
            200: {id, kind, payload}
            204: Queue is empty
        """
        command = broker.poll_next()
        if command is None:
            return Response(status_code=204)
        return PolledCommandResponse(**command.to_dict())

    @app.post("/commands/{command_id}/result", response_model=AckResponse)
    async def post_result(
        command_id: str,
        payload: CommandResult,
        broker: CommandBroker = Depends(get_broker),
    ):
        """
        Accept the executor's outcome for a command.

        Returns:
            200: Result delivered to the waiting caller
            404: Command unknown, already completed or timed out
        """
        outcome = CommandOutcome(
            success=payload.success, result=payload.result, error=payload.error
        )
        if not broker.complete(command_id, outcome):
            return JSONResponse(
                status_code=404,
                content={"error": "Command not found or already resolved"},
            )
        return AckResponse()

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """Minimal liveness probe."""
        return {"status": "ok"}

    @app.get("/health", response_model=HealthResponse)
    async def health_check(broker: CommandBroker = Depends(get_broker)):
        """
        Health check with queue depth.

        Returns:
            200: {status, pendingCommands, capacity}
        """
        return HealthResponse(pending_commands=broker.pending_count, capacity=broker.capacity)

    @app.get("/metrics")
    async def metrics(broker: CommandBroker = Depends(get_broker)):
        """Prometheus-compatible metrics endpoint."""
        stats = broker.stats.to_dict()
        lines = [
            "# HELP designbridge_pending_commands Number of commands waiting for the executor",
            "# TYPE designbridge_pending_commands gauge",
            f"designbridge_pending_commands {broker.pending_count}",
            "# HELP designbridge_queue_capacity Maximum number of pending commands",
            "# TYPE designbridge_queue_capacity gauge",
            f"designbridge_queue_capacity {broker.capacity}",
        ]
        for name, value in stats.items():
            lines.extend([
                f"# HELP designbridge_commands_{name}_total Commands {name.replace('_', ' ')}",
                f"# TYPE designbridge_commands_{name}_total counter",
                f"designbridge_commands_{name}_total {value}",
            ])
        return Response(content="\n".join(lines) + "\n", media_type="text/plain")

    return app


async def serve(config_provider: Optional[ConfigProvider] = None) -> None:
    """
    Run the HTTP API and the MCP stdio server until the MCP client goes away.
    """
    provider = config_provider or EnvConfigProvider()
    broker_config = provider.get_broker_config()
    api_config = provider.get_api_config()

    broker = CommandBroker(
        capacity=broker_config.capacity,
        timeout_ms=broker_config.timeout_ms,
        sweep_interval_ms=broker_config.sweep_interval_ms,
    )
    app = create_app(broker, api_config)
    bridge = ToolBridge(broker, load_catalog())

    http_server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=api_config.host,
            port=api_config.port,
            log_level=api_config.log_level.lower(),
            log_config=get_logging_config(api_config.log_level),
        )
    )
    http_task = asyncio.create_task(http_server.serve())
    logger.info(f"HTTP server listening on {api_config.host}:{api_config.port}")

    try:
        await bridge.run_stdio()
    finally:
        http_server.should_exit = True
        await http_task
        logger.info("designbridge shutdown complete")


def main() -> None:
    """Console entry point."""
    api_config = EnvConfigProvider().get_api_config()
    configure_logging(api_config.log_level)
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    main()
