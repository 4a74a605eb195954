"""fxsignal — application entry point.

Boots the FastAPI internal server that exposes the signal engine.
"""

import logging

from fastapi import FastAPI

from fxsignal.api.routers import router

app = FastAPI(title="fxsignal Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("fxsignal")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, configure the routers and serve the API."""
    import argparse

    import uvicorn

    from fxsignal.api.routers import configure_routers
    from fxsignal.config import load_config

    parser = argparse.ArgumentParser(description="fxsignal signal API")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port (default: API_PORT or 8080)")
    args = parser.parse_args()

    config = load_config(args.env_file)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    configure_routers(config=config)

    port = args.port or config.api_port
    logger.info(
        "Starting fxsignal API on port %d (instrument %s, sweep variant %s, concurrent=%s)",
        port, config.instrument, config.sweep_variant, config.evaluate_concurrently,
    )
    uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
