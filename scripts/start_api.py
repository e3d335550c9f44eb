#!/usr/bin/env python3
"""
Script to run the Ringwatch API server.

Usage:
    python scripts/start_api.py --host 0.0.0.0 --port 8080
    python scripts/start_api.py --port 8080 --reload
"""

import argparse
import os
import uvicorn
from dotenv import load_dotenv
from loguru import logger

from ringwatch import setup_logger


def main():
    parser = argparse.ArgumentParser(description='Run Ringwatch API')
    parser.add_argument(
        '--host',
        type=str,
        default=os.getenv("API_HOST", "0.0.0.0"),
        help='Host to bind to (default: 0.0.0.0 or API_HOST env var)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=int(os.getenv("API_PORT", "8080")),
        help='Port to listen on (default: 8080 or API_PORT env var)'
    )
    parser.add_argument(
        '--reload',
        action='store_true',
        help='Enable auto-reload for development'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Log level (default: INFO)'
    )

    args = parser.parse_args()

    load_dotenv()

    service_name = 'ringwatch-api'
    setup_logger(service_name)

    logger.info(
        "Starting Ringwatch API",
        extra={
            "host": args.host,
            "port": args.port,
            "reload": args.reload,
        }
    )
    logger.info(f"API will be available at http://{args.host}:{args.port}")
    logger.info("API docs available at http://{}:{}/docs".format(args.host, args.port))

    uvicorn.run(
        "ringwatch.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
