#!/usr/bin/env python3
"""
Teller Entry Point

Starts the FastAPI server with the ledger and credential stores.
"""

import sys

from teller.api import run_server
from teller.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Teller...")
    print(f"Storage backend: {config.storage_backend} ({config.data_dir})")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False
        )
    except KeyboardInterrupt:
        print("\nShutting down Teller...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
