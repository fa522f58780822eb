#!/usr/bin/env python3
"""
Argus Service Bus Server
------------------------
Runs the FastAPI service bus over the command registry.

Usage:
    python -m infra.server --port 8765
    python -m infra.server --storage /tmp/commands.json
"""

import argparse
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn
from rich.console import Console

from core.service import CommandService, ServiceConfig
from infra.config import load_config
from infra.logging import configure_logging
from infra.service_bus import ServiceBus

console = Console()


def main():
    parser = argparse.ArgumentParser(description="Command Argus Service Bus Server")
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--storage", default=None, help="Registry file path")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    config = load_config(args.config)
    if args.storage:
        config.storage_path = Path(args.storage)
    if args.log_level:
        config.log_level = args.log_level
    host = args.host or config.host
    port = args.port or config.port

    configure_logging(level=config.log_level, log_dir=config.log_dir)

    service = CommandService(ServiceConfig.from_argus_config(config))
    bus = ServiceBus(service)
    app = bus.create_app()

    console.print("\n[bold green]Command Argus Service Bus[/bold green]")
    console.print(f"Registry: {service.registry.storage_path}")
    console.print(f"Running on http://{host}:{port}")
    console.print(f"API docs: http://{host}:{port}/docs")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
