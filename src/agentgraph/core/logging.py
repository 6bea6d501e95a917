"""Logging configuration with pretty formatting for agentgraph."""

import logging
import sys
from typing import Optional, Dict, Any
from enum import Enum, IntEnum
from datetime import datetime
from pydantic import BaseModel, Field

# ANSI Color Codes
class Colors:
    """ANSI color codes for pretty terminal output."""
    HEADER = '\033[95m'      # Pink
    INFO = '\033[94m'        # Blue
    SUCCESS = '\033[92m'     # Green
    WARNING = '\033[93m'     # Yellow
    ERROR = '\033[91m'       # Red
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

PLAIN_FORMAT = (
    "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
)

DETAILED_FORMAT = (
    f"{Colors.DIM}%(asctime)s{Colors.RESET} │ "
    f"%(colored_level)-30s │ "
    f"%(message)s"
)

class PrettyFormatter(logging.Formatter):
    """Formatter that colors the level name and separates warnings."""

    level_colors = {
        'DEBUG': Colors.DIM,
        'VERBOSE': Colors.DIM,
        'INFO': Colors.INFO,
        'WARNING': Colors.WARNING,
        'ERROR': Colors.ERROR,
        'CRITICAL': Colors.ERROR + Colors.BOLD,
    }

    def format(self, record):
        color = self.level_colors.get(record.levelname, Colors.RESET)
        record.colored_level = f"{color}{record.levelname}{Colors.RESET}"

        message = super().format(record)

        if record.levelno >= logging.WARNING:
            message = f"{message}\n{Colors.DIM}{'─' * 80}{Colors.RESET}"

        return message

class PrettyLogHandler(logging.StreamHandler):
    """Stream handler that stamps records with a short wall-clock time."""

    def emit(self, record):
        try:
            record.asctime = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
            msg = self.format(record)
            self.stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)

class LogComponent(str, Enum):
    """Components that can be logged."""
    GRAPH = "agentgraph.core.graph"
    NODES = "agentgraph.core.graph.nodes"
    TOOLS = "agentgraph.core.tools"
    COMPLETION = "agentgraph.core.completion"
    TRACING = "agentgraph.core.tracing"

class LogLevel(IntEnum):
    """Log levels mapped to logging module levels."""
    DEBUG = logging.DEBUG
    VERBOSE = 15  # Lower than INFO, used for per-step transitions
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

logging.addLevelName(LogLevel.VERBOSE, "VERBOSE")

class AgentGraphLoggingConfig(BaseModel):
    """Per-graph logging switches."""
    level: LogLevel = Field(default=LogLevel.INFO)
    show_node_transitions: bool = Field(default=True)
    show_state: bool = Field(default=False)

def configure_logging(
    default_level: LogLevel = LogLevel.INFO,
    component_levels: Optional[Dict[LogComponent, LogLevel]] = None,
    pretty: bool = True,
    log_file: Optional[str] = None
) -> None:
    """Configure root logging with pretty console output.

    Args:
        default_level: Level for the root logger
        component_levels: Optional per-component overrides
        pretty: Use colored output on the console
        log_file: Optional path for an additional uncolored file log
    """
    handlers = []

    console_handler = PrettyLogHandler(sys.stderr) if pretty else logging.StreamHandler()
    console_handler.setFormatter(
        PrettyFormatter(DETAILED_FORMAT) if pretty else logging.Formatter(PLAIN_FORMAT)
    )
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(default_level.value)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    if not component_levels:
        component_levels = {
            LogComponent.GRAPH: LogLevel.INFO,
            LogComponent.NODES: LogLevel.INFO,
            LogComponent.TOOLS: LogLevel.INFO,
        }

    for component, level in component_levels.items():
        logging.getLogger(component.value).setLevel(level.value)

def get_logger(component: LogComponent) -> logging.Logger:
    """Get a logger for a specific component."""
    return logging.getLogger(component.value)

def log_verbose(logger: logging.Logger, message: str) -> None:
    """Log a message at VERBOSE level."""
    if logger.isEnabledFor(LogLevel.VERBOSE):
        logger.log(LogLevel.VERBOSE, message)

def log_state(logger: logging.Logger, state: Dict[str, Any], prefix: str = "") -> None:
    """Log a state dictionary in a readable format at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for key, value in state.items():
        if isinstance(value, dict):
            logger.debug(f"{prefix}{key}:")
            log_state(logger, value, prefix + "  ")
        else:
            logger.debug(f"{prefix}{key}: {value}")
