#!/usr/bin/env python3
"""
Run script for the supply chain inventory engine
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from supplychain import create_app  # noqa: E402
from supplychain.build import build_database  # noqa: E402
from supplychain.logger import get_logger  # noqa: E402

# Run 'python generate_env.py' to create a .env file with a secure SECRET_KEY.

logger = get_logger("supplychain.run")


def parse_arguments():
    """Parse command line arguments for the build step"""
    parser = argparse.ArgumentParser(description='Supply Chain Inventory Engine')
    parser.add_argument('--build-only', action='store_true',
                        help='Create the database tables and exit without starting the server')
    parser.add_argument('--seed-demo', action='store_true',
                        help='Insert the demo chair catalog (LEG-001, SEAT-001, CHAIR-001) if missing')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()

    app = create_app()
    build_database(seed_demo=args.seed_demo, app=app)

    if args.build_only:
        logger.info("Build completed. Exiting without starting web server.")
        sys.exit(0)

    # FLASK_DEBUG: Enable/disable debug mode (default: False)
    debug_mode = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes', 'on')

    # FLASK_HOST: Server host (default: 127.0.0.1)
    host = os.environ.get('FLASK_HOST', '127.0.0.1')

    # FLASK_PORT: Server port (default: 5000)
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode})")
    app.run(debug=debug_mode, host=host, port=port)
