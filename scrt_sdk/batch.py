"""
Run one SDK operation over many input items.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List

from .exceptions import ScrtError

logger = logging.getLogger(__name__)


def _error_item(error: Exception, index: int) -> Dict[str, Any]:
    if isinstance(error, ScrtError):
        payload = error.to_dict()
    else:
        payload = {"error": str(error), "type": type(error).__name__}
    return {"json": payload, "paired_item": index}


def run_batch(
    items: Iterable[Any],
    operation: Callable[[Any], Any],
    continue_on_fail: bool = False
) -> List[Dict[str, Any]]:
    """
    Apply an operation to each item in order.

    Args:
        items: Input items
        operation: Callable invoked once per item; its return value is the result
        continue_on_fail: Report failures in place instead of aborting

    Returns:
        One {"json": result, "paired_item": index} entry per item

    Raises:
        Exception: The first failure, unless continue_on_fail is set
    """
    results: List[Dict[str, Any]] = []
    for index, item in enumerate(items):
        try:
            result = operation(item)
        except Exception as e:
            if not continue_on_fail:
                raise
            logger.warning(f"Batch item {index} failed: {e}")
            results.append(_error_item(e, index))
            continue
        results.append({"json": result, "paired_item": index})
    return results
