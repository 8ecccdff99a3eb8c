"""
Run the workflow API with uvicorn.

Usage:
    python run.py
    python run.py --reload              # Development mode with auto-reload
    python run.py --storage memory      # No MongoDB needed, state lost on exit
    python run.py --no-scheduler        # Leave dynamic instances to explicit execute calls
"""
import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the Advanced Workflow API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument(
        "--storage",
        choices=["mongo", "memory"],
        help="Override STORAGE_BACKEND for this run"
    )
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Do not start the dynamic-instance poller"
    )
    args = parser.parse_args()

    # Settings are read when the app module is imported, so overrides go through the environment
    if args.storage:
        os.environ["STORAGE_BACKEND"] = args.storage
    if args.no_scheduler:
        os.environ["SCHEDULER_ENABLED"] = "false"

    print(f"Starting Advanced Workflow API server on {args.host}:{args.port}")
    if args.storage == "memory":
        print("  Storage: in-memory (not persisted)")

    # Single process only: a second worker would run a second poller
    uvicorn.run(
        "advanced_workflow.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
