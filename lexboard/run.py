#!/usr/bin/env python3
"""
Development server for Lexboard
===============================

Usage:
    python -m lexboard.run [--host 0.0.0.0] [--port 8000] [--no-reload]

Report jobs run in-process unless an RQ worker is started alongside
(`python -m lexboard.jobs.worker`).
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the Lexboard API with uvicorn")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    print(f"Lexboard API on http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run("lexboard.api:app", host=args.host, port=args.port, reload=not args.no_reload)


if __name__ == "__main__":
    main()
