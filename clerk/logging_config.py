"""Logging configuration using Loguru for structured logging.

Provides component-aware logging with JSON formatting, rotation, and retention policies.
"""

import sys
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable
from loguru import logger


# Remove default handler
logger.remove()


def setup_logging(
    log_dir: str = "logs",
    level: str = "DEBUG",
    rotation: str = "100 MB",
    retention: str = "30 days",
    compression: str = "zip"
) -> None:
    """Configure Loguru logging with structured JSON format.

    Args:
        log_dir: Directory for log files
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rotation: When to rotate log files
        retention: How long to keep old logs
        compression: Compression format for rotated logs
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Console handler with colored output
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        level=level,
        colorize=True
    )

    logger.add(
        log_path / "judicial_clerk_{time}.log",
        format="{time} | {level} | {name}:{function}:{line} | {message}",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=False
    )

    # JSON structured log for parsing and analysis
    logger.add(
        log_path / "judicial_clerk_json_{time}.log",
        format="{time} | {level} | {name}:{function}:{line} | {message}",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=True
    )

    def component_format(record):
        component = record["extra"].get("component", "unknown")
        filename = record["extra"].get("filename", "-")
        return f"{record['time']} | {record['level'].name} | {component} | {filename} | {record['message']}\n"

    logger.add(
        log_path / "components_{time}.log",
        format=component_format,
        level="INFO",
        rotation=rotation,
        retention=retention,
        compression=compression,
        filter=lambda record: "component" in record["extra"]
    )

    # Error-only log file
    logger.add(
        log_path / "errors_{time}.log",
        format="{time} | {level} | {name}:{function}:{line} | {message}",
        level="ERROR",
        rotation=rotation,
        retention=retention,
        compression=compression
    )

    logger.info("Logging system initialized", log_dir=log_dir, level=level)


def get_component_logger(component: str, **context: Any):
    """Get a logger bound to a component and optional extra context.

    Args:
        component: Component name (e.g. "IngestionAgent", "CorpusStore")
        **context: Additional values bound to every record (e.g. filename)

    Returns:
        Logger instance with component context
    """
    return logger.bind(component=component, **context)


def log_agent_execution(agent_name: str) -> Callable:
    """Decorator to log async agent method execution with timing.

    Args:
        agent_name: Name of the agent being executed

    Returns:
        Decorated coroutine function with logging
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            agent_logger = get_component_logger(agent_name)

            agent_logger.info(f"Starting {agent_name} execution", function=func.__name__)

            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                agent_logger.error(
                    f"{agent_name} failed with error",
                    function=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise

            agent_logger.info(
                f"{agent_name} completed successfully",
                function=func.__name__,
                duration_seconds=round(time.time() - start_time, 3)
            )
            return result

        return wrapper
    return decorator


def log_tool_execution(tool_name: str) -> Callable:
    """Decorator to log tool execution.

    Args:
        tool_name: Name of the tool being executed

    Returns:
        Decorated function with logging
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger.debug(f"Executing tool: {tool_name}", function=func.__name__)

            try:
                result = func(*args, **kwargs)
                logger.debug(f"Tool {tool_name} completed", function=func.__name__)
                return result

            except Exception as e:
                logger.error(
                    f"Tool {tool_name} failed",
                    function=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise

        return wrapper
    return decorator
