"""Logging utilities for the supervisor graph."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

ROOT_LOGGER_NAME = "supervisorAgent"


def setup_logging(level: Union[int, str] = logging.INFO, log_dir: Optional[str] = "logs") -> logging.Logger:
    """Setup logging configuration for the supervisor package.

    Args:
        level: Console logging level, as a number or a name like "WARNING"
        log_dir: Directory for the detailed log file, or None for console only

    Returns:
        Configured package logger
    """
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Capture all child logs
    logger.propagate = False

    logger.handlers = []

    log_file = None
    if log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        log_file = logs_path / f"supervisor_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("Supervisor session started")
    if log_file:
        logger.info(f"Log file: {log_file}")
    logger.info("=" * 80)

    return logger


def log_tool_call(logger: logging.Logger, action: str, args: Dict[str, Any]) -> None:
    """Log a local action call; arguments go to DEBUG."""
    logger.info(f"Local action -> {action}")
    logger.debug(f"  args={json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(logger: logging.Logger, action: str, result: Any, success: bool = True) -> None:
    """Log a local action result; the preview is cut at 500 chars."""
    logger.info(f"Local action <- {action} [{'ok' if success else 'error'}]")
    logger.debug(f"  result={_preview(result, 500)}")


def log_classification(
    logger: logging.Logger,
    actor: str,
    routing: Iterable[str],
    local: Iterable[str],
    delegated: Iterable[str],
) -> None:
    """Log how a model turn's action requests were partitioned."""
    logger.info(
        f"[{actor}] requests: routing={list(routing)} local={list(local)} delegated={list(delegated)}"
    )


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log an error with context and its traceback.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Where the error occurred
    """
    where = f" during {context}" if context else ""
    logger.error(f"{type(error).__name__}{where}: {error}")
    logger.debug("Traceback:", exc_info=error)


def log_prompt(logger: logging.Logger, actor: str, prompt: str, max_length: int = 500) -> None:
    """Log the system prompt used for a model invocation."""
    logger.debug(f"[{actor}] system prompt:\n{_preview(prompt, max_length)}")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log a routing decision.

    Args:
        logger: Logger instance
        from_node: Node (or edge) making the decision
        decision: Next node
        reason: Why this destination was chosen
    """
    suffix = f" ({reason})" if reason else ""
    logger.info(f"Route {from_node} => {decision}{suffix}")


def log_node_entry(logger: logging.Logger, node_name: str, state: Dict[str, Any]) -> None:
    """Log node entry with a compact state snapshot."""
    thread_id = state.get("thread_id") or "N/A"
    logger.info(f">>> {node_name} [thread {thread_id[:8]}]")
    logger.debug(
        f"    status={state.get('status')} loops={state.get('loops')}/{state.get('max_loops')} "
        f"entries={len(state.get('messages') or [])} worker={state.get('current_worker')} "
        f"phases={sorted((state.get('worker_phases') or {}).keys())}"
    )


def log_node_exit(logger: logging.Logger, node_name: str, updates: Dict[str, Any]) -> None:
    """Log node exit with the keys it updated."""
    summary = []
    for key, value in updates.items():
        if key == "messages":
            summary.append(f"messages+={len(value)}")
        else:
            summary.append(f"{key}={_preview(value, 120)}")
    logger.info(f"<<< {node_name}: {', '.join(summary) or 'no updates'}")


def _preview(value: Any, limit: int) -> str:
    text = str(value)
    return text if len(text) <= limit else text[:limit] + "... (truncated)"
