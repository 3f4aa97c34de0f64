#!/usr/bin/env python3
"""
Run script for the Identity API.
Loads a .env file if present and launches the FastAPI server with uvicorn.
"""
import os
import sys
import traceback
import uvicorn
from dotenv import load_dotenv

if __name__ == "__main__":
    try:
        # Settings are read from the environment when the app is imported
        load_dotenv()
        port = int(os.getenv("PORT", 8000))

        print("Starting Identity API server...")
        print(f"Access the API at http://localhost:{port}")
        print(f"API documentation at http://localhost:{port}/docs")

        uvicorn.run(
            "identity.main:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            reload=os.getenv("RELOAD", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "info").lower()
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
