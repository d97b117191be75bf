"""FastAPI application for the nodeboard dashboard."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from nodeboard.api.routes import router
from nodeboard.config import DashboardConfig
from nodeboard.services.actions import ActionSubmitter
from nodeboard.services.orchestrator import PollingOrchestrator, build_default_sources
from nodeboard.services.plugin_client import PluginClient
from nodeboard.utils.logging import setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load configuration (once, from the environment)
    - Initialize logger
    - Build plugin client, action submitter and polling orchestrator
    - Start polling every source

    Shutdown:
    - Stop polling; in-flight responses are discarded
    """
    config = getattr(app.state, "config", None) or DashboardConfig.from_env()
    logger = setup_logger("nodeboard", config.log_file, level=config.log_level_value)
    logger.info("nodeboard starting up...")
    logger.info(f"Plugin backend: {config.plugin_base_url} (pool mode: {config.pool_mode})")

    client = PluginClient.from_config(config)
    orchestrator = PollingOrchestrator(build_default_sources(client, config))
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.submitter = ActionSubmitter(
        client,
        execution_client=config.execution_client,
        consensus_client=config.consensus_client,
    )

    orchestrator.start_all()
    logger.info(f"nodeboard ready on port {config.port}")

    yield

    logger.info("nodeboard shutting down...")
    await orchestrator.close()


app = FastAPI(
    title="nodeboard",
    description="Dashboard API for a Keepix blockchain-node plugin",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "nodeboard", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    config = DashboardConfig.from_env()
    app.state.config = config
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
