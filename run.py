#!/usr/bin/env python3
"""
Cooperative Lending Engine Entry Point

Starts the FastAPI server with host, port and logging taken from COOP_* settings.
"""

import sys

from coop_lending.api import run_server
from coop_lending.config import get_config
from coop_lending.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(
        level=config.log_level,
        format_type=config.log_format,
        log_file=config.log_file
    )
    
    print("🤝 Starting Cooperative Lending Engine...")
    print("📅 Bi-monthly schedule: installments due on the 10th and 25th")
    print("🔒 Audit trail " + ("active" if config.enable_audit_logging else "disabled"))
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()
    
    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Cooperative Lending Engine...")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
