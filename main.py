"""
ScoutScore Engine - Main Entry Point
====================================
Run this file to start the FastAPI server.

Usage:
    python main.py                    # Start server on port 8000
    python main.py --port 8080        # Start server on custom port
    python main.py --reload           # Start with auto-reload (dev mode)
    python main.py --data-dir data    # Persist records as JSON files

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import os
import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from scout_engine.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="ScoutScore Engine API Server")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory for JSON record files (default: in-memory store)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL env or INFO)",
    )

    args = parser.parse_args()

    # Read by the API module when it builds the default engine
    if args.data_dir:
        os.environ["SCOUT_DATA_DIR"] = args.data_dir

    setup_logging(level=args.log_level)

    print(f"""
    ╔══════════════════════════════════════════════════════════════╗
    ║                   SCOUTSCORE ENGINE                          ║
    ║                      Version 2.0.0                           ║
    ╠══════════════════════════════════════════════════════════════╣
    ║  Server starting on http://{args.host}:{args.port}                    ║
    ║  API Docs: http://localhost:{args.port}/docs                       ║
    ║  Health:   http://localhost:{args.port}/api/health                 ║
    ╚══════════════════════════════════════════════════════════════╝
    """)

    # Single worker: scan jobs and their progress live in the process
    uvicorn.run(
        "scout_engine.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
