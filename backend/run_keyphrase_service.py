#!/usr/bin/env python3
"""
Run Keyphrase RW Neo4j - feed consumer + HTTP API in one process

Consumes ConceptSuggestion messages from the feed, extracts all keyphrases
and writes them to Neo4j, while serving the annotations API.

Usage:
    python run_keyphrase_service.py                  # settings from env/.env
    python run_keyphrase_service.py --port 9090
    python run_keyphrase_service.py --throttle 50    # max 50 messages/s
    python run_keyphrase_service.py --no-consumer    # API only
"""
import argparse
import logging
from pathlib import Path

# Load .env from project root (one level up from backend/)
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import uvicorn

from config import get_settings
from main import create_app


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Consume concept suggestions and serve keyphrase annotations"
    )
    parser.add_argument('--port', type=int, help='Port to listen on (PORT)')
    parser.add_argument('--throttle', type=float, help='Max messages per second (THROTTLE)')
    parser.add_argument('--no-consumer', action='store_true', help='Serve the API without consuming the feed')
    parser.add_argument('--log-level', help='Logging level (LOG_LEVEL)')
    return parser.parse_args(argv)


def build_settings(args):
    overrides = {}
    if args.port is not None:
        overrides['port'] = args.port
    if args.throttle is not None:
        if args.throttle <= 0:
            raise SystemExit("--throttle must be positive")
        overrides['throttle'] = args.throttle
    if args.no_consumer:
        overrides['consumer_enabled'] = False
    if args.log_level:
        overrides['log_level'] = args.log_level.upper()
    return get_settings().model_copy(update=overrides)


def main(argv=None):
    args = parse_args(argv)
    settings = build_settings(args)

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )
    log = logging.getLogger('keyphrase-rw-neo4j')
    log.info(f"keyphrase-rw-neo4j will listen on port: {settings.port}")

    uvicorn.run(
        create_app(settings),
        host='0.0.0.0',
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
