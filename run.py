#!/usr/bin/env python3
"""
Startup script for the Activity Trend application.
This script provides an easy way to run the application with different configurations.
"""

import argparse
import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="Run the Activity Trend application")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level (default: info)"
    )

    args = parser.parse_args()

    if not Path(".env").exists():
        print("Warning: .env file not found.")
        print("Client ID and secret can still be set later through PUT /api/v1/auth/client.")
        print("Get your credentials at: https://www.strava.com/settings/api")
        print()

    # Create the data directory for credentials and the activity database
    Path("data").mkdir(parents=True, exist_ok=True)

    print("Starting Activity Trend...")
    print(f"Server will be available at: http://{args.host}:{args.port}")
    print(f"API Documentation: http://{args.host}:{args.port}/docs")
    print()

    # One worker only: the in-memory activity set and the sync lock are per process
    try:
        import uvicorn
        uvicorn.run(
            "activity_trend.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,
            log_level=args.log_level,
            access_log=True
        )
    except KeyboardInterrupt:
        print("\nShutting down Activity Trend...")


if __name__ == "__main__":
    main()
