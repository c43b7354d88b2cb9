"""Run the training tracker API."""
import argparse
import logging
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn


def main():
    """Start the web server."""
    parser = argparse.ArgumentParser(description="Serve the training tracker API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db", type=Path, help="Path to database file")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    if args.db:
        os.environ["TRAINING_DB_PATH"] = str(args.db)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("Starting training tracker API...")
    print(f"Open http://{args.host}:{args.port}/docs in your browser")
    print("Press Ctrl+C to stop\n")

    uvicorn.run(
        "web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
