import logging
import os
import sys

# Configure a single application logger. The level is read straight from the
# environment so the logger can be imported before config is loaded.
log_format = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format=log_format,
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Get a single logger for the entire application
logger = logging.getLogger("app")

# python-socketio and engineio are chatty at INFO
logging.getLogger("socketio").setLevel(logging.WARNING)
logging.getLogger("engineio").setLevel(logging.WARNING)

# Export only the logger instance
__all__ = ["logger"]
