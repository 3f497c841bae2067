#!/usr/bin/env python3
"""
Startup script for the DCA chat service
"""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from dca_chat.config import get_settings
from dca_chat.infrastructure.logging import setup_logging


def main():
    """Main startup function"""

    # Load .env file first
    env_file = Path(__file__).parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    settings = get_settings()
    setup_logging(level=settings.log_level, format_type=settings.log_format)

    if not os.getenv("OPENAI_API_KEY"):
        print("⚠️  OPENAI_API_KEY is not set, plan extraction will use the rule-based fallback.")

    # Configuration
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    print("🚀 Starting DCA chat service...")
    print(f"🌐 Server will be available at: http://{host}:{port}")
    print(f"📚 API documentation: http://{host}:{port}/docs")

    uvicorn.run(
        "dca_chat.app:app",
        host=host,
        port=port,
        reload=debug,
        log_config=None,
    )


if __name__ == "__main__":
    main()
