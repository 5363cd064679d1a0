"""Time-limited calls into external collaborators (gateway, notifier)."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from sandbox.exceptions import CollaboratorTimeoutError

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="sandbox-collaborator")


def run_with_timeout(func, timeout_seconds: float, *args, **kwargs):
    """Run ``func`` and return its result, or raise CollaboratorTimeoutError.

    Exceptions raised by ``func`` propagate unchanged. A call that times out
    keeps running in the background; its result is discarded.
    """
    future = _executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        future.cancel()
        name = getattr(func, "__qualname__", repr(func))
        raise CollaboratorTimeoutError(
            f"{name} did not respond within {timeout_seconds}s",
            collaborator=name,
            timeout_seconds=timeout_seconds,
        ) from exc
