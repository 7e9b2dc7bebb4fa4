"""Logging utilities for the application."""

import logging
import os
import sys

from azure.monitor.opentelemetry import configure_azure_monitor
from opentelemetry.instrumentation.logging import LoggingInstrumentor

# Application logger shared by every module
logger = logging.getLogger("chatsync")

logging_level = getattr(logging, os.environ.get("LOGGING_LEVEL", "INFO").upper(), logging.INFO)

logger.setLevel(logging_level)

# Process and thread IDs identify the uvicorn worker
formatter = logging.Formatter("%(asctime)s - PID:%(process)d - Thread:%(thread)d - %(name)s - %(levelname)s - %(message)s")

# Container platforms collect stdout
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)

# Ship logs to Azure Monitor when a connection string is configured
appinsights_connection_string = os.environ.get("APPLICATIONINSIGHTS_CONNECTION_STRING")
if appinsights_connection_string:
    configure_azure_monitor(
        connection_string=appinsights_connection_string,
    )
    LoggingInstrumentor().instrument(level=logging_level, excluded_loggers=["azure"])  # Avoid recursive logging

# Handlers are attached here; propagating to the root logger would print every record twice under uvicorn
logger.propagate = False
