#!/usr/bin/env python3
"""
Venue Lead Generation Engine - Main Entry Point

Convenience wrapper that serves the FastAPI backend with uvicorn.
For batch work use the scripts in scripts/ directly.

Usage:
    python main.py
    python main.py --port 8080 --reload

Environment Variables:
    LEADGEN_DB_PATH, PLACES_PROVIDER, GEOAPIFY_API_KEY or FOURSQUARE_API_KEY,
    GEMINI_API_KEY, GROQ_API_KEY (read from .env on startup)
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the lead generation API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    uvicorn.run("backend.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
