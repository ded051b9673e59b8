#!/usr/bin/env python3
"""
Run the energy audit API server
"""
import uvicorn
import sys
import os

# Add the backend directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print("Starting Energy Audit API server...")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API documentation: http://localhost:{port}/docs")
    print(f"Health check: http://localhost:{port}/healthz")
    print("\nPress Ctrl+C to stop the server\n")

    try:
        uvicorn.run(
            "app.main:app",
            host="0.0.0.0",
            port=port,
            reload=os.getenv("DEBUG", "false").lower() == "true",
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\nServer stopped")
